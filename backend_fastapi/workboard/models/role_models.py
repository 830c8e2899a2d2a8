from enum import Enum
from typing import FrozenSet, Iterable

class RoleEnum(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"

# Roles allowed to create/edit/delete categories and tasks
EDITOR_ROLES: FrozenSet[RoleEnum] = frozenset({RoleEnum.ADMIN, RoleEnum.MEMBER})
ADMIN_ROLES: FrozenSet[RoleEnum] = frozenset({RoleEnum.ADMIN})

INVALID_ROLE_MESSAGE = "Invalid role. Must be: admin, member, or viewer"

def parse_role(value: str) -> RoleEnum:
    try:
        return RoleEnum(value)
    except ValueError:
        raise ValueError(INVALID_ROLE_MESSAGE)

def format_roles(roles: Iterable[RoleEnum]) -> str:
    # Stable, most-privileged first
    order = [RoleEnum.ADMIN, RoleEnum.MEMBER, RoleEnum.VIEWER]
    wanted = set(roles)
    return ", ".join(r.value for r in order if r in wanted)
