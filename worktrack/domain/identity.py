from __future__ import annotations

from dataclasses import dataclass

from worktrack.domain.roles import Role, RoleSide


@dataclass(frozen=True)
class IdentityContext:
    """Resolved caller: the JWT subject, its role and its directory relationships."""

    user_id: str
    role: Role
    employee_id: str | None = None
    customer_employee_id: str | None = None
    customer_company_id: str | None = None
    led_team_ids: frozenset[str] = frozenset()
    managed_project_ids: frozenset[str] = frozenset()

    @property
    def side(self) -> RoleSide:
        return self.role.side

    @property
    def person_id(self) -> str:
        if self.side == RoleSide.CUSTOMER and self.customer_employee_id is not None:
            return self.customer_employee_id
        if self.side == RoleSide.INTERNAL and self.employee_id is not None:
            return self.employee_id
        return self.user_id
