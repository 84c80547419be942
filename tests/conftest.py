from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from worktrack import main as app_main
from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import (
    CustomerCompany,
    CustomerEmployee,
    Employee,
    Project,
    ProjectTeamMember,
    Team,
)
from worktrack.domain.roles import Role
from worktrack.infra import audit, db
from worktrack.infra.auth import create_access_token
from worktrack.services.identity_service import IdentityService

# Directory fixture shared by the suites:
#   P1 (manager emp-mgr, customer co-x): TeamA = emp-7, emp-8, emp-lead-a; TeamB = emp-55
#   P2 (customer co-y): TeamA = emp-99
#   co-x: cx-head, cx-emp-1, cx-emp-2; co-y: cy-head, cy-emp-1
USERS: dict[str, tuple[str, Role]] = {
    "admin": ("u-admin", Role.ADMIN),
    "manager": ("u-mgr", Role.MANAGER),
    "lead_a": ("u-lead-a", Role.TEAM_LEAD),
    "lead_b": ("u-lead-b", Role.TEAM_LEAD),
    "emp7": ("u-emp-7", Role.EMPLOYEE),
    "emp8": ("u-emp-8", Role.EMPLOYEE),
    "emp55": ("u-emp-55", Role.EMPLOYEE),
    "emp99": ("u-emp-99", Role.EMPLOYEE),
    "cx_head": ("u-cx-head", Role.CUSTOMER_HEAD),
    "cx_emp1": ("u-cx-emp-1", Role.CUSTOMER_EMPLOYEE),
    "cx_emp2": ("u-cx-emp-2", Role.CUSTOMER_EMPLOYEE),
    "cy_head": ("u-cy-head", Role.CUSTOMER_HEAD),
}


def _seed_directory(session: Session) -> None:
    employees = [
        Employee(id="emp-mgr", user_id="u-mgr", name="Morgan Manager"),
        Employee(id="emp-lead-a", user_id="u-lead-a", name="Alex Lead"),
        Employee(id="emp-lead-b", user_id="u-lead-b", name="Blake Lead"),
        Employee(id="emp-7", user_id="u-emp-7", name="Emp Seven"),
        Employee(id="emp-8", user_id="u-emp-8", name="Emp Eight"),
        Employee(id="emp-55", user_id="u-emp-55", name="Emp Fifty-Five"),
        Employee(id="emp-99", user_id="u-emp-99", name="Emp Ninety-Nine"),
    ]
    session.add_all(employees)
    session.flush()
    session.add_all(
        [
            Team(id="team-a", name="TeamA", lead_id="emp-lead-a"),
            Team(id="team-b", name="TeamB", lead_id="emp-lead-b"),
            CustomerCompany(id="co-x", name="CompanyX"),
            CustomerCompany(id="co-y", name="CompanyY"),
        ]
    )
    session.flush()
    session.add_all(
        [
            CustomerEmployee(id="cx-head", user_id="u-cx-head", customer_company_id="co-x", name="Casey Head"),
            CustomerEmployee(id="cx-emp-1", user_id="u-cx-emp-1", customer_company_id="co-x", name="Cam One"),
            CustomerEmployee(id="cx-emp-2", user_id="u-cx-emp-2", customer_company_id="co-x", name="Cam Two"),
            CustomerEmployee(id="cy-head", user_id="u-cy-head", customer_company_id="co-y", name="Yael Head"),
            CustomerEmployee(id="cy-emp-1", user_id="u-cy-emp-1", customer_company_id="co-y", name="Yuri One"),
            Project(id="p1", name="P1", manager_id="emp-mgr", customer_company_id="co-x"),
            Project(id="p2", name="P2", customer_company_id="co-y"),
        ]
    )
    session.flush()
    session.add_all(
        [
            ProjectTeamMember(project_id="p1", team_id="team-a", employee_id="emp-7"),
            ProjectTeamMember(project_id="p1", team_id="team-a", employee_id="emp-8"),
            ProjectTeamMember(project_id="p1", team_id="team-a", employee_id="emp-lead-a"),
            ProjectTeamMember(project_id="p1", team_id="team-b", employee_id="emp-55"),
            ProjectTeamMember(project_id="p2", team_id="team-a", employee_id="emp-99"),
        ]
    )
    session.commit()


@pytest.fixture()
def test_engine(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Engine:
    db_path = tmp_path / "worktrack_test.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection: object, _connection_record: object) -> None:
        cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(audit, "engine", engine)
    with Session(engine) as session:
        _seed_directory(session)
    return engine


@pytest.fixture()
def client(test_engine: Engine) -> Generator[TestClient, None, None]:
    test_client = TestClient(app_main.app)
    yield test_client
    test_client.close()


@pytest.fixture()
def identity_of(test_engine: Engine) -> Callable[[str], IdentityContext]:
    def _resolve(name: str) -> IdentityContext:
        user_id, role = USERS[name]
        with Session(test_engine) as session:
            return IdentityService().resolve(session, user_id, role)

    return _resolve


def auth_header(name: str) -> dict[str, str]:
    user_id, role = USERS[name]
    token = create_access_token(user_id=user_id, role=role)
    return {"Authorization": f"Bearer {token}"}


def create_item(client: TestClient, as_user: str, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "project_id": "p1",
        "org_kind": "team",
        "org_id": "team-a",
        "assignee_id": "emp-7",
        "title": "Fix login bug",
    }
    payload.update(overrides)
    response = client.post("/api/work-items", json=payload, headers=auth_header(as_user))
    assert response.status_code == 201, response.text
    return response.json()
