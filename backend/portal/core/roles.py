"""Portal roles and the permissions each one grants."""

from enum import StrEnum


class UserRole(StrEnum):
    ADMIN = "admin"
    AGENT = "agent"
    BROKER = "broker"
    POLICYHOLDER = "policyholder"
    WHOLESALE = "wholesale"


class Permission(StrEnum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    MANAGE_USERS = "manage-users"
    MANAGE_BROKERS = "manage-brokers"


ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.ADMIN: frozenset(
        {Permission.READ, Permission.WRITE, Permission.DELETE, Permission.MANAGE_USERS}
    ),
    UserRole.AGENT: frozenset({Permission.READ}),
    UserRole.BROKER: frozenset({Permission.READ, Permission.WRITE}),
    UserRole.POLICYHOLDER: frozenset({Permission.READ}),
    UserRole.WHOLESALE: frozenset(
        {Permission.READ, Permission.WRITE, Permission.MANAGE_BROKERS}
    ),
}


def permissions_for(role: UserRole) -> frozenset[Permission]:
    """Permissions granted to role (empty for unknown roles)."""
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check whether role grants permission.

    Args:
        role: The user's role.
        permission: Permission required by the endpoint.

    Returns:
        True if the role's permission set includes it.
    """
    return permission in permissions_for(role)
