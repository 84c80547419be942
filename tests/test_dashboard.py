from __future__ import annotations

from collections.abc import Callable

from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session

from conftest import auth_header, create_item
from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import OrgKind, WorkItem
from worktrack.domain.state_machine import WorkItemStatus
from worktrack.services.dashboard_service import DashboardService


def _customer_item(client: TestClient, as_user: str, org_id: str, assignee_id: str | None, project_id: str) -> dict[str, object]:
    return create_item(
        client,
        as_user,
        org_kind="customer_company",
        org_id=org_id,
        project_id=project_id,
        assignee_id=assignee_id,
    )


def test_customer_head_dashboard_covers_whole_company(client: TestClient) -> None:
    company_ids = {
        _customer_item(client, "manager", "co-x", "cx-emp-1", "p1")["id"],
        _customer_item(client, "manager", "co-x", "cx-emp-2", "p1")["id"],
        _customer_item(client, "manager", "co-x", None, "p1")["id"],
        _customer_item(client, "cx_head", "co-x", "cx-head", "p1")["id"],
    }
    _customer_item(client, "manager", "co-y", "cy-emp-1", "p2")
    create_item(client, "manager")

    response = client.get("/api/work-items/dashboard", headers=auth_header("cx_head"))
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "customer_head"
    assert {item["id"] for item in body["company_tasks"]} == company_ids
    assert [item["assignee_id"] for item in body["my_tasks"]] == ["cx-head"]
    assert len(body["assigned_by_me"]) == 1
    assert body["team_tasks"] is None
    assert body["project_tasks"] is None
    assert body["statistics"]["total"] == 4


def test_dashboard_groups_by_role(client: TestClient) -> None:
    create_item(client, "manager")
    create_item(client, "lead_a", assignee_id="emp-8")
    create_item(client, "manager", org_id="team-b", assignee_id="emp-55")
    create_item(client, "manager", project_id="p2", assignee_id="emp-99")

    employee = client.get("/api/work-items/dashboard", headers=auth_header("emp7")).json()
    assert len(employee["my_tasks"]) == 1
    for group in ("team_tasks", "project_tasks", "company_tasks", "assigned_by_me"):
        assert employee[group] is None

    lead = client.get("/api/work-items/dashboard", headers=auth_header("lead_a")).json()
    assert lead["my_tasks"] == []
    assert len(lead["team_tasks"]) == 3
    assert [item["assignee_id"] for item in lead["assigned_by_me"]] == ["emp-8"]
    assert lead["project_tasks"] is None

    manager = client.get("/api/work-items/dashboard", headers=auth_header("manager")).json()
    assert len(manager["assigned_by_me"]) == 3
    assert len(manager["project_tasks"]) == 3
    assert all(item["project_id"] == "p1" for item in manager["project_tasks"])
    assert manager["my_tasks"] is None
    assert manager["statistics"]["total"] == 4

    admin = client.get("/api/work-items/dashboard", headers=auth_header("admin")).json()
    assert admin["assigned_by_me"] == []
    assert admin["project_tasks"] == []
    assert admin["statistics"]["total"] == 4


def test_statistics_agree_with_listing(client: TestClient) -> None:
    create_item(client, "manager", status="Done", hours_estimated=4)
    create_item(client, "manager", status="Blocked", hours_estimated=2)
    create_item(client, "manager", assignee_id="emp-8", hours_estimated=1)
    create_item(client, "manager", project_id="p2", assignee_id="emp-99", status="In Progress")
    first = client.get("/api/work-items", headers=auth_header("emp7")).json()["items"][0]
    client.post(f"/api/work-items/{first['id']}/log-hours", json={"hours": 3}, headers=auth_header("emp7"))

    for name in ("emp7", "lead_a", "manager", "cx_head"):
        stats = client.get("/api/work-items/statistics", headers=auth_header(name)).json()
        listing = client.get("/api/work-items", headers=auth_header(name)).json()
        assert stats["total"] == listing["pagination"]["totalItems"], name
        assert (
            stats["todo_count"] + stats["in_progress_count"] + stats["blocked_count"] + stats["done_count"]
            == stats["total"]
        )

    emp7 = client.get("/api/work-items/statistics", headers=auth_header("emp7")).json()
    assert emp7 == {
        "total": 2,
        "todo_count": 0,
        "in_progress_count": 0,
        "blocked_count": 1,
        "done_count": 1,
        "total_hours_estimated": 6.0,
        "total_hours_spent": 3.0,
    }

    scoped = client.get("/api/work-items/statistics", params={"project_id": "p2"}, headers=auth_header("manager")).json()
    assert scoped["total"] == 1
    assert scoped["in_progress_count"] == 1


def test_dashboard_collects_beyond_one_page(
    test_engine: Engine,
    identity_of: Callable[[str], IdentityContext],
) -> None:
    with Session(test_engine) as session:
        for index in range(130):
            session.add(
                WorkItem(
                    org_kind=OrgKind.TEAM,
                    project_id="p1",
                    org_id="team-a",
                    assignee_id="emp-7",
                    assigner_id="emp-mgr",
                    title=f"bulk-{index}",
                    status=WorkItemStatus.DONE if index % 2 else WorkItemStatus.TODO,
                )
            )
        session.commit()

    dashboard = DashboardService().dashboard(identity_of("emp7"))
    assert dashboard.my_tasks is not None
    assert len(dashboard.my_tasks) == 130
    assert len({item.id for item in dashboard.my_tasks}) == 130
    assert dashboard.statistics.done_count == 65
    assert dashboard.statistics.todo_count == 65
