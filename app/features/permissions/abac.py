"""
Attribute-based refinement of coarse matrix decisions.

ABAC is consulted only after the matrix (or an explicit grant) allowed the
request and only for instance-scoped actions:

- EDIT / DELETE on an instance with an ``owner_id``: the owner passes,
  SUPERADMIN and above bypass ownership, everyone else is denied.
- VIEW on an instance with ``is_public=False``: the owner or ADMIN and above
  pass, everyone else is denied.

Refinement can only narrow a grant. Absent attributes mean the rule does not
apply; they are never treated as failures.
"""
import enum
from dataclasses import dataclass, field
from typing import Optional

from app.features.permissions.rbac import Action, Resource, Role, is_at_least


# Roles at or above these skip the instance rules
OWNERSHIP_BYPASS_ROLE = Role.SUPERADMIN
PRIVATE_VIEW_ROLE = Role.ADMIN


@dataclass(frozen=True)
class Actor:
    """
    Authenticated caller as seen by the authorization engine.

    ``grants`` holds explicit (action, resource) pairs assigned to this actor
    on top of what the role gives.
    """
    id: Optional[str]
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None
    grants: frozenset[tuple[Action, Resource]] = field(default_factory=frozenset)


ANONYMOUS = Actor(id=None, role=Role.GUEST)


@dataclass(frozen=True)
class ResourceInstance:
    """Read-only snapshot of the instance attributes relevant to authorization."""
    owner_id: Optional[str] = None
    is_public: Optional[bool] = None
    is_active: Optional[bool] = None


class GrantReason(str, enum.Enum):
    """Why a decision was reached (observability only)."""
    MATRIX_DENIED = "matrix_denied"
    MATRIX_ALLOWED = "matrix_allowed"
    EXPLICIT_GRANT = "explicit_grant"
    ABAC_ALLOWED_BY_OWNERSHIP = "abac_allowed_by_ownership"
    ABAC_ALLOWED_BY_ROLE = "abac_allowed_by_role"
    ABAC_DENIED_OWNERSHIP = "abac_denied_ownership"
    ABAC_DENIED_VISIBILITY = "abac_denied_visibility"


@dataclass(frozen=True)
class GrantDecision:
    allowed: bool
    reason: GrantReason
    action: Action
    resource: Resource

    def __bool__(self) -> bool:
        return self.allowed


def is_instance_scoped(action: Action, instance: Optional[ResourceInstance]) -> bool:
    """True when the instance carries an attribute that a rule for this action reads."""
    if instance is None:
        return False
    if action in (Action.EDIT, Action.DELETE):
        return instance.owner_id is not None
    if action is Action.VIEW:
        return instance.is_public is False
    return False


def _is_owner_of(actor: Actor, instance: ResourceInstance) -> bool:
    return instance.owner_id is not None and instance.owner_id == actor.id


def refine(
    decision: GrantDecision,
    actor: Actor,
    action: Action,
    instance: Optional[ResourceInstance],
) -> GrantDecision:
    """
    Narrow a coarse decision using instance attributes.

    Args:
        decision: coarse decision from the matrix / explicit grants
        actor: caller
        action: requested action
        instance: attributes of the targeted record, if any

    Returns:
        ``decision`` unchanged when it is already a denial or no rule applies,
        otherwise a new decision carrying the ABAC reason.
    """
    if not decision.allowed or not is_instance_scoped(action, instance):
        return decision

    def _decide(allowed: bool, reason: GrantReason) -> GrantDecision:
        return GrantDecision(allowed=allowed, reason=reason, action=decision.action, resource=decision.resource)

    if _is_owner_of(actor, instance):
        return _decide(True, GrantReason.ABAC_ALLOWED_BY_OWNERSHIP)

    if action is Action.VIEW:
        if is_at_least(actor.role, PRIVATE_VIEW_ROLE):
            return _decide(True, GrantReason.ABAC_ALLOWED_BY_ROLE)
        return _decide(False, GrantReason.ABAC_DENIED_VISIBILITY)

    if is_at_least(actor.role, OWNERSHIP_BYPASS_ROLE):
        return _decide(True, GrantReason.ABAC_ALLOWED_BY_ROLE)
    return _decide(False, GrantReason.ABAC_DENIED_OWNERSHIP)
