from __future__ import annotations

from enum import StrEnum


class RoleSide(StrEnum):
    INTERNAL = "internal"
    CUSTOMER = "customer"


class Role(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    TEAM_LEAD = "team_lead"
    EMPLOYEE = "employee"
    CUSTOMER_HEAD = "customer_head"
    CUSTOMER_EMPLOYEE = "customer_employee"

    @property
    def side(self) -> RoleSide:
        return ROLE_SIDES[self]


ROLE_SIDES: dict[Role, RoleSide] = {
    Role.ADMIN: RoleSide.INTERNAL,
    Role.MANAGER: RoleSide.INTERNAL,
    Role.TEAM_LEAD: RoleSide.INTERNAL,
    Role.EMPLOYEE: RoleSide.INTERNAL,
    Role.CUSTOMER_HEAD: RoleSide.CUSTOMER,
    Role.CUSTOMER_EMPLOYEE: RoleSide.CUSTOMER,
}

# Roles that see and manage every work item regardless of team or company.
UNRESTRICTED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER})
DELETE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER})
TEAM_CREATE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER, Role.TEAM_LEAD})
CUSTOMER_CREATE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER, Role.CUSTOMER_HEAD})


def parse_role(value: object) -> Role | None:
    if not isinstance(value, str):
        return None
    try:
        return Role(value)
    except ValueError:
        return None
