"""
Role hierarchy and the static permission matrix.

The matrix is stored as "minimum role required for (resource, action)".
A role inherits every grant of the roles below it, so ``is_allowed`` reduces
to a level comparison. Pairs absent from the table are denied for every role
except OWNER.

The table is built once at import and exposed read-only; changing it is a
code change, not configuration.
"""
import enum
from types import MappingProxyType
from typing import Mapping, NamedTuple


class Role(str, enum.Enum):
    """Account roles, lowest privilege first."""
    GUEST = "GUEST"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"
    OWNER = "OWNER"


class Resource(str, enum.Enum):
    """Protected entity types."""
    USER = "USER"
    UNIVERSITY = "UNIVERSITY"
    COLLEGE = "COLLEGE"
    PROGRAM = "PROGRAM"
    BLOG = "BLOG"
    SECTION = "SECTION"
    STATISTIC = "STATISTIC"
    AUDIT_LOG = "AUDIT_LOG"
    PERMISSION = "PERMISSION"
    DASHBOARD = "DASHBOARD"
    SETTINGS = "SETTINGS"


class Action(str, enum.Enum):
    """Closed action vocabulary. New operations must map onto one of these."""
    VIEW = "VIEW"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"


ROLE_LEVELS: Mapping[Role, int] = MappingProxyType({
    Role.GUEST: 0,
    Role.ADMIN: 1,
    Role.SUPERADMIN: 2,
    Role.OWNER: 3,
})


def level_of(role: Role) -> int:
    """
    Hierarchy level of a role (higher number = more privilege).

    Raises:
        ValueError: role is not one of the known variants
    """
    try:
        return ROLE_LEVELS[role]
    except KeyError:
        raise ValueError(f"Unknown role: {role!r}") from None


def is_at_least(role: Role, threshold: Role) -> bool:
    """True when ``role`` sits at or above ``threshold`` in the hierarchy."""
    return level_of(role) >= level_of(threshold)


def is_role_higher(role: Role, other: Role) -> bool:
    """True when ``role`` is strictly above ``other``."""
    return level_of(role) > level_of(other)


# ============================================================================
# Permission Matrix
# ============================================================================

_PUBLIC_CONTENT = (
    Resource.UNIVERSITY,
    Resource.COLLEGE,
    Resource.PROGRAM,
    Resource.BLOG,
    Resource.SECTION,
    Resource.STATISTIC,
)


def _build_matrix() -> Mapping[tuple[Resource, Action], Role]:
    table: dict[tuple[Resource, Action], Role] = {
        (Resource.DASHBOARD, Action.VIEW): Role.GUEST,

        # University records can be edited but only the owner removes one
        (Resource.UNIVERSITY, Action.CREATE): Role.ADMIN,
        (Resource.UNIVERSITY, Action.EDIT): Role.ADMIN,

        # Admins author blogs and may remove their own
        (Resource.BLOG, Action.CREATE): Role.ADMIN,
        (Resource.BLOG, Action.EDIT): Role.ADMIN,
        (Resource.BLOG, Action.DELETE): Role.ADMIN,

        (Resource.USER, Action.VIEW): Role.ADMIN,
        (Resource.USER, Action.CREATE): Role.SUPERADMIN,
        (Resource.USER, Action.EDIT): Role.SUPERADMIN,

        (Resource.AUDIT_LOG, Action.VIEW): Role.SUPERADMIN,

        (Resource.PERMISSION, Action.VIEW): Role.SUPERADMIN,
        (Resource.PERMISSION, Action.CREATE): Role.SUPERADMIN,
        (Resource.PERMISSION, Action.EDIT): Role.SUPERADMIN,
        (Resource.PERMISSION, Action.DELETE): Role.SUPERADMIN,
    }

    # Guests see public-facing content only through these explicit entries
    for resource in _PUBLIC_CONTENT:
        table[(resource, Action.VIEW)] = Role.GUEST

    for resource in (Resource.COLLEGE, Resource.PROGRAM, Resource.SECTION, Resource.STATISTIC):
        table[(resource, Action.CREATE)] = Role.ADMIN
        table[(resource, Action.EDIT)] = Role.ADMIN
        table[(resource, Action.DELETE)] = Role.SUPERADMIN

    for (resource, action), role in table.items():
        if not isinstance(resource, Resource) or not isinstance(action, Action) or not isinstance(role, Role):
            raise TypeError(f"Malformed matrix entry: {(resource, action)!r} -> {role!r}")

    return MappingProxyType(table)


PERMISSION_MATRIX: Mapping[tuple[Resource, Action], Role] = _build_matrix()


class MatrixEntry(NamedTuple):
    resource: Resource
    action: Action
    minimum_role: Role | None


def minimum_role_for(resource: Resource, action: Action) -> Role | None:
    """Lowest role granted (resource, action), or None when only OWNER may."""
    return PERMISSION_MATRIX.get((resource, action))


def is_allowed(role: Role, resource: Resource, action: Action) -> bool:
    """
    Coarse (role, resource, action) check with default deny.

    OWNER is always allowed. Any other role needs an explicit table entry
    whose minimum role it meets.
    """
    if level_of(role) == ROLE_LEVELS[Role.OWNER]:
        return True

    minimum = minimum_role_for(resource, action)
    if minimum is None:
        return False
    return is_at_least(role, minimum)


def allowed_actions(role: Role, resource: Resource) -> list[Action]:
    """Actions the role may perform on the resource type, in Action order."""
    return [action for action in Action if is_allowed(role, resource, action)]


def accessible_resources(role: Role) -> list[Resource]:
    """Resource types on which the role holds at least one action."""
    return [resource for resource in Resource if allowed_actions(role, resource)]


def matrix_entries() -> list[MatrixEntry]:
    """Every (resource, action) pair with its minimum role, for display."""
    return [
        MatrixEntry(resource, action, minimum_role_for(resource, action))
        for resource in Resource
        for action in Action
    ]
