"""Profile roles and permission hierarchy.

- owner: everything, including organization settings
- admin: manage employees, rules, storage, requests and imports
- member: read access and own document requests
"""

from enum import Enum


class ProfileRole(str, Enum):
    """Values are stored as TEXT in profile.role and must match exactly."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Each role includes the permissions of all roles below it
ROLE_HIERARCHY = {
    ProfileRole.OWNER: {ProfileRole.OWNER, ProfileRole.ADMIN, ProfileRole.MEMBER},
    ProfileRole.ADMIN: {ProfileRole.ADMIN, ProfileRole.MEMBER},
    ProfileRole.MEMBER: {ProfileRole.MEMBER},
}

VALID_ROLES = {role.value for role in ProfileRole}


def has_permission(user_role: ProfileRole, required_role: ProfileRole) -> bool:
    """Check whether user_role satisfies required_role.

    Examples:
        >>> has_permission(ProfileRole.OWNER, ProfileRole.ADMIN)
        True
        >>> has_permission(ProfileRole.MEMBER, ProfileRole.ADMIN)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())
