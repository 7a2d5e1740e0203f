"""
Permission facade: the single entry point for authorization questions.

Every function is pure. ``actor`` is always an explicit argument; passing
``None`` evaluates as the anonymous guest. Decisions are computed fresh on
each call and never cached.

Usage:
    from app.features.permissions.engine import can_edit
    from app.features.permissions.rbac import Resource

    if not can_edit(Resource.COLLEGE, actor, ResourceInstance(owner_id=college.owner_id)):
        raise HTTPException(status_code=403, ...)
"""
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from app.features.permissions.abac import (
    ANONYMOUS,
    Actor,
    GrantDecision,
    GrantReason,
    ResourceInstance,
    refine,
)
from app.features.permissions.rbac import (
    Action,
    Resource,
    Role,
    accessible_resources,
    allowed_actions,
    is_allowed,
    level_of,
)
from app.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class PermissionCheck:
    """One (action, resource) question, optionally about a specific instance."""
    action: Action
    resource: Resource
    instance: Optional[ResourceInstance] = None


def _resolve(actor: Optional[Actor]) -> Actor:
    return ANONYMOUS if actor is None else actor


# ============================================================================
# Core decision
# ============================================================================

def check(
    action: Action,
    resource: Resource,
    actor: Optional[Actor] = None,
    instance: Optional[ResourceInstance] = None,
) -> GrantDecision:
    """
    Decide whether ``actor`` may perform ``action`` on ``resource``.

    The matrix is consulted first, then the actor's explicit grants. ABAC
    refinement runs only when the coarse check allowed the request and an
    instance is supplied.
    """
    actor = _resolve(actor)

    if is_allowed(actor.role, resource, action):
        decision = GrantDecision(True, GrantReason.MATRIX_ALLOWED, action, resource)
    elif (action, resource) in actor.grants:
        decision = GrantDecision(True, GrantReason.EXPLICIT_GRANT, action, resource)
    else:
        decision = GrantDecision(False, GrantReason.MATRIX_DENIED, action, resource)

    decision = refine(decision, actor, action, instance)

    if not decision.allowed:
        log.debug(
            "Denied %s on %s for actor=%s role=%s reason=%s",
            action.value, resource.value, actor.id, actor.role.value, decision.reason.value,
        )
    return decision


def can_perform_action(
    action: Action,
    resource: Resource,
    actor: Optional[Actor] = None,
    instance: Optional[ResourceInstance] = None,
) -> bool:
    return check(action, resource, actor, instance).allowed


def can_view(resource: Resource, actor: Optional[Actor] = None, instance: Optional[ResourceInstance] = None) -> bool:
    return can_perform_action(Action.VIEW, resource, actor, instance)


def can_create(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_perform_action(Action.CREATE, resource, actor)


def can_edit(resource: Resource, actor: Optional[Actor] = None, instance: Optional[ResourceInstance] = None) -> bool:
    return can_perform_action(Action.EDIT, resource, actor, instance)


def can_delete(resource: Resource, actor: Optional[Actor] = None, instance: Optional[ResourceInstance] = None) -> bool:
    return can_perform_action(Action.DELETE, resource, actor, instance)


# ============================================================================
# Composition
# ============================================================================

def evaluate_checks(checks: Iterable[PermissionCheck], actor: Optional[Actor] = None) -> list[GrantDecision]:
    """Per-check breakdown, in input order."""
    return [check(c.action, c.resource, actor, c.instance) for c in checks]


def has_any_permission(checks: Iterable[PermissionCheck], actor: Optional[Actor] = None) -> bool:
    """True iff at least one check passes. An empty list is False."""
    return any(check(c.action, c.resource, actor, c.instance).allowed for c in checks)


def has_all_permissions(checks: Iterable[PermissionCheck], actor: Optional[Actor] = None) -> bool:
    """True iff every check passes. An empty list is True."""
    return all(check(c.action, c.resource, actor, c.instance).allowed for c in checks)


# ============================================================================
# Role predicates (exact equality, not "at least")
# ============================================================================

def is_owner(actor: Optional[Actor] = None) -> bool:
    return _resolve(actor).role is Role.OWNER


def is_super_admin(actor: Optional[Actor] = None) -> bool:
    return _resolve(actor).role is Role.SUPERADMIN


def is_admin(actor: Optional[Actor] = None) -> bool:
    return _resolve(actor).role is Role.ADMIN


def is_guest(actor: Optional[Actor] = None) -> bool:
    return _resolve(actor).role is Role.GUEST


def get_role_level(actor: Optional[Actor] = None) -> int:
    return level_of(_resolve(actor).role)


# ============================================================================
# User management
# ============================================================================

def can_manage_user(actor: Optional[Actor], target_role: Role) -> bool:
    """
    Whether the actor's role may act on an account holding ``target_role``.

    OWNER manages anyone, SUPERADMIN anyone but an OWNER, ADMIN only guests.
    """
    role = _resolve(actor).role
    if role is Role.OWNER:
        return True
    if role is Role.SUPERADMIN:
        return target_role is not Role.OWNER
    if role is Role.ADMIN:
        return target_role is Role.GUEST
    return False


def can_assign_role(actor: Optional[Actor], new_role: Role) -> bool:
    """Whether the actor may hand out ``new_role`` to someone else."""
    role = _resolve(actor).role
    if role is Role.OWNER:
        return True
    if role is Role.SUPERADMIN:
        return new_role is not Role.OWNER
    if role is Role.ADMIN:
        return new_role in (Role.GUEST, Role.ADMIN)
    return False


def can_edit_user(actor: Optional[Actor], target: Actor) -> bool:
    return can_edit(Resource.USER, actor) and can_manage_user(actor, target.role)


def can_delete_user(actor: Optional[Actor], target: Actor) -> bool:
    return can_delete(Resource.USER, actor) and can_manage_user(actor, target.role)


def can_delegate_grant(actor: Optional[Actor], target: Actor, action: Action, resource: Resource) -> bool:
    """
    Whether the actor may give (or re-activate) an explicit grant for ``target``.

    The actor's role must itself allow the pair; explicit grants held by the
    actor do not count. Only OWNER may grant to itself, and anyone else needs
    ``can_manage_user`` over the target.
    """
    actor = _resolve(actor)
    if not is_allowed(actor.role, resource, action):
        return False
    if actor.id is not None and target.id == actor.id:
        return actor.role is Role.OWNER
    return can_manage_user(actor, target.role)


# ============================================================================
# Resource conveniences (pre-bound instance contexts, no new rules)
# ============================================================================

def can_edit_college(actor: Optional[Actor], college_owner_id: Optional[str] = None) -> bool:
    return can_edit(Resource.COLLEGE, actor, ResourceInstance(owner_id=college_owner_id))


def can_delete_college(actor: Optional[Actor], college_owner_id: Optional[str] = None) -> bool:
    return can_delete(Resource.COLLEGE, actor, ResourceInstance(owner_id=college_owner_id))


def can_edit_section(actor: Optional[Actor], section_owner_id: Optional[str] = None) -> bool:
    return can_edit(Resource.SECTION, actor, ResourceInstance(owner_id=section_owner_id))


def can_delete_section(actor: Optional[Actor], section_owner_id: Optional[str] = None) -> bool:
    return can_delete(Resource.SECTION, actor, ResourceInstance(owner_id=section_owner_id))


def can_manage_colleges(actor: Optional[Actor] = None) -> bool:
    return can_edit(Resource.COLLEGE, actor)


def can_manage_sections(actor: Optional[Actor] = None) -> bool:
    return can_edit(Resource.SECTION, actor)


def can_manage_statistics(actor: Optional[Actor] = None) -> bool:
    return can_edit(Resource.STATISTIC, actor)


def can_manage_users(actor: Optional[Actor] = None) -> bool:
    return can_edit(Resource.USER, actor) or can_delete(Resource.USER, actor)


def can_manage_permissions(actor: Optional[Actor] = None) -> bool:
    return can_edit(Resource.PERMISSION, actor) or can_delete(Resource.PERMISSION, actor)


def can_view_audit_logs(actor: Optional[Actor] = None) -> bool:
    return can_view(Resource.AUDIT_LOG, actor)


def can_manage_settings(actor: Optional[Actor] = None) -> bool:
    return can_edit(Resource.SETTINGS, actor)


def can_access_dashboard(actor: Optional[Actor] = None) -> bool:
    return can_view(Resource.DASHBOARD, actor)


# ============================================================================
# Feature helpers
# ============================================================================

FEATURE_RESOURCES: dict[str, Resource] = {
    "dashboard": Resource.DASHBOARD,
    "users": Resource.USER,
    "colleges": Resource.COLLEGE,
    "programs": Resource.PROGRAM,
    "blogs": Resource.BLOG,
    "sections": Resource.SECTION,
    "statistics": Resource.STATISTIC,
    "audit-logs": Resource.AUDIT_LOG,
    "permissions": Resource.PERMISSION,
    "settings": Resource.SETTINGS,
}

BULK_OPERATIONS = frozenset({"bulk-edit", "bulk-delete", "bulk-export"})


def can_access_feature(feature: str, actor: Optional[Actor] = None) -> bool:
    """Navigation check by feature slug. Unknown slugs are denied."""
    resource = FEATURE_RESOURCES.get(feature)
    if resource is None:
        return False
    return can_view(resource, actor)


def can_export(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_view(resource, actor)


def can_import(resource: Resource, actor: Optional[Actor] = None) -> bool:
    return can_create(resource, actor)


def can_perform_bulk_operation(operation: str, resource: Resource, actor: Optional[Actor] = None) -> bool:
    if operation not in BULK_OPERATIONS:
        return False
    return can_edit(resource, actor)


def permission_summary(actor: Optional[Actor] = None) -> dict[str, Any]:
    """
    Everything the actor may do, by resource.

    Role-derived actions come from the matrix; explicit grants are merged on
    top and counted separately.
    """
    actor = _resolve(actor)

    permissions: dict[Resource, list[Action]] = {}
    for resource in Resource:
        actions = [a for a in Action if can_perform_action(a, resource, actor)]
        if actions:
            permissions[resource] = actions

    role_count = sum(len(allowed_actions(actor.role, r)) for r in accessible_resources(actor.role))
    explicit_count = sum(1 for action, resource in actor.grants if not is_allowed(actor.role, resource, action))

    return {
        "role": actor.role,
        "level": level_of(actor.role),
        "is_owner": is_owner(actor),
        "is_super_admin": is_super_admin(actor),
        "is_admin": is_admin(actor),
        "is_guest": is_guest(actor),
        "resources": list(permissions),
        "permissions": permissions,
        "role_permissions": role_count,
        "explicit_permissions": explicit_count,
        "total_permissions": role_count + explicit_count,
    }
