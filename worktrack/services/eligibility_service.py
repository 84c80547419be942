from __future__ import annotations

from sqlmodel import Session, col, select

from worktrack.domain.models import (
    CustomerCompany,
    CustomerEmployee,
    Employee,
    OrgKind,
    PersonKind,
    PersonRead,
    Project,
    ProjectTeamMember,
    Team,
)
from worktrack.services.errors import ValidationError


class EligibilityService:
    """Who may be assigned work in a project/team or project/customer-company scope.

    Callers pass their own session so that membership is read in the same transaction
    as the write that depends on it.
    """

    def ensure_scope(self, session: Session, project_id: str, org_kind: OrgKind, org_id: str) -> Project:
        project = session.get(Project, project_id)
        if project is None:
            raise ValidationError("project not found")
        if org_kind == OrgKind.TEAM:
            if session.get(Team, org_id) is None:
                raise ValidationError("team not found")
            return project
        if session.get(CustomerCompany, org_id) is None:
            raise ValidationError("customer company not found")
        if project.customer_company_id != org_id:
            raise ValidationError("project does not belong to this customer company")
        return project

    def assignable(
        self,
        session: Session,
        project_id: str,
        org_kind: OrgKind,
        org_id: str,
        *,
        excluding: str | None = None,
    ) -> list[PersonRead]:
        if org_kind == OrgKind.TEAM:
            people = self._team_members(session, project_id, org_id)
        else:
            people = self._company_members(session, project_id, org_id)
        if excluding is not None:
            people = [item for item in people if item.id != excluding]
        return sorted(people, key=lambda item: (item.name, item.id))

    def is_assignable(
        self,
        session: Session,
        project_id: str,
        org_kind: OrgKind,
        org_id: str,
        person_id: str,
        *,
        excluding: str | None = None,
    ) -> bool:
        candidates = self.assignable(session, project_id, org_kind, org_id, excluding=excluding)
        return any(item.id == person_id for item in candidates)

    def ensure_assignable(
        self,
        session: Session,
        project_id: str,
        org_kind: OrgKind,
        org_id: str,
        person_id: str,
        *,
        excluding: str | None = None,
    ) -> None:
        if not self.is_assignable(session, project_id, org_kind, org_id, person_id, excluding=excluding):
            scope = "team" if org_kind == OrgKind.TEAM else "customer company"
            raise ValidationError(f"assignee is not eligible for this project/{scope}")

    def _team_members(self, session: Session, project_id: str, team_id: str) -> list[PersonRead]:
        rows = session.exec(
            select(Employee)
            .join(ProjectTeamMember, col(ProjectTeamMember.employee_id) == col(Employee.id))
            .where(ProjectTeamMember.project_id == project_id)
            .where(ProjectTeamMember.team_id == team_id)
        ).all()
        return [PersonRead(id=row.id, name=row.name, kind=PersonKind.EMPLOYEE) for row in rows]

    def _company_members(self, session: Session, project_id: str, company_id: str) -> list[PersonRead]:
        project = session.get(Project, project_id)
        if project is None or project.customer_company_id != company_id:
            return []
        rows = session.exec(
            select(CustomerEmployee).where(CustomerEmployee.customer_company_id == company_id)
        ).all()
        return [PersonRead(id=row.id, name=row.name, kind=PersonKind.CUSTOMER_EMPLOYEE) for row in rows]
