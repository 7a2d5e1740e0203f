"""
Show/hide derivation for UI controls.

These answers are coarse (no instance data) and advisory: they decide what a
client renders, while the route handlers still enforce instance-level checks
at the point of mutation. Prefer the ``show_*`` family; ``hide_if_no_permission``
is its negation and exists for callers that render conditionally on absence.
"""
from typing import Iterable, Optional

from app.features.permissions.abac import Actor
from app.features.permissions.engine import (
    PermissionCheck,
    can_create,
    can_delete,
    can_edit,
    can_perform_action,
    can_view,
    has_all_permissions,
    has_any_permission,
)
from app.features.permissions.rbac import Action, Resource


def show_create_button(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_create(resource, actor)


def show_edit_button(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_edit(resource, actor)


def show_delete_button(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_delete(resource, actor)


def show_view_button(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_view(resource, actor)


def show_action_buttons(resource: Resource, actions: Iterable[Action], actor: Optional[Actor] = None) -> bool:
    """Whether a toolbar holding ``actions`` should render at all."""
    return has_any_permission([PermissionCheck(action, resource) for action in actions], actor)


def hide_if_no_permission(resource: Resource, action: Action, actor: Optional[Actor] = None) -> bool:
    """True when the control should be hidden (negation of the check)."""
    return not can_perform_action(action, resource, actor)


def show_if_has_all_permissions(checks: Iterable[PermissionCheck], actor: Optional[Actor] = None) -> bool:
    return has_all_permissions(checks, actor)


def visibility(resource: Resource, actor: Optional[Actor] = None, actions: Optional[Iterable[Action]] = None) -> dict:
    """All show flags for one resource, as consumed by GET /permissions/ui/{resource}."""
    toolbar_actions = list(actions) if actions is not None else list(Action)
    return {
        "resource": resource,
        "show_view_button": show_view_button(resource, actor),
        "show_create_button": show_create_button(resource, actor),
        "show_edit_button": show_edit_button(resource, actor),
        "show_delete_button": show_delete_button(resource, actor),
        "show_action_buttons": show_action_buttons(resource, toolbar_actions, actor),
    }
