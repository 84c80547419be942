from __future__ import annotations

from sqlmodel import Session, select

from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import CustomerEmployee, Employee, Project, Team
from worktrack.domain.roles import Role, RoleSide


class IdentityService:
    """Builds an IdentityContext from token claims and the directory tables."""

    def resolve(self, session: Session, user_id: str, role: Role) -> IdentityContext:
        if role.side == RoleSide.CUSTOMER:
            return self._resolve_customer(session, user_id, role)
        return self._resolve_internal(session, user_id, role)

    def _resolve_internal(self, session: Session, user_id: str, role: Role) -> IdentityContext:
        employee = session.exec(select(Employee).where(Employee.user_id == user_id)).first()
        if employee is None:
            return IdentityContext(user_id=user_id, role=role)
        led_team_ids = session.exec(select(Team.id).where(Team.lead_id == employee.id)).all()
        managed_project_ids = session.exec(
            select(Project.id).where(Project.manager_id == employee.id)
        ).all()
        return IdentityContext(
            user_id=user_id,
            role=role,
            employee_id=employee.id,
            led_team_ids=frozenset(led_team_ids),
            managed_project_ids=frozenset(managed_project_ids),
        )

    def _resolve_customer(self, session: Session, user_id: str, role: Role) -> IdentityContext:
        customer = session.exec(
            select(CustomerEmployee).where(CustomerEmployee.user_id == user_id)
        ).first()
        if customer is None:
            return IdentityContext(user_id=user_id, role=role)
        return IdentityContext(
            user_id=user_id,
            role=role,
            customer_employee_id=customer.id,
            customer_company_id=customer.customer_company_id,
        )
