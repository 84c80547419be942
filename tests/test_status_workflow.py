from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from conftest import auth_header, create_item
from worktrack.domain.identity import IdentityContext
from worktrack.domain.state_machine import ALLOWED_TRANSITIONS, WorkItemStatus, can_transition
from worktrack.services.errors import ValidationError
from worktrack.services.work_item_service import WorkItemService

STATUSES = [status.value for status in WorkItemStatus]


def test_every_transition_is_allowed() -> None:
    for source in WorkItemStatus:
        assert ALLOWED_TRANSITIONS[source] == set(WorkItemStatus)
        for target in WorkItemStatus:
            assert can_transition(source, target)


@pytest.mark.parametrize("source", STATUSES)
@pytest.mark.parametrize("target", STATUSES)
def test_assignee_can_move_between_any_statuses(client: TestClient, source: str, target: str) -> None:
    item = create_item(client, "manager", status=source)
    response = client.put(
        f"/api/work-items/{item['id']}/status",
        json={"status": target},
        headers=auth_header("emp7"),
    )
    assert response.status_code == 200
    assert response.json()["status"] == target


def test_unknown_status_is_rejected(client: TestClient) -> None:
    item = create_item(client, "manager")
    response = client.put(
        f"/api/work-items/{item['id']}/status",
        json={"status": "Archived"},
        headers=auth_header("emp7"),
    )
    assert response.status_code == 422


def test_service_rejects_unknown_status_string(identity_of: Callable[[str], IdentityContext], client: TestClient) -> None:
    item = create_item(client, "manager")
    with pytest.raises(ValidationError):
        WorkItemService().set_status(identity_of("emp7"), item["id"], "in progress")


def test_log_hours_accumulates(client: TestClient) -> None:
    item = create_item(client, "manager", hours_estimated=8)
    url = f"/api/work-items/{item['id']}/log-hours"

    first = client.post(url, json={"hours": 1.5}, headers=auth_header("emp7"))
    assert first.status_code == 200
    second = client.post(url, json={"hours": 2}, headers=auth_header("emp7"))
    assert second.json()["hours_spent"] == 3.5
    assert second.json()["hours_estimated"] == 8

    for bad in (0, -1):
        rejected = client.post(url, json={"hours": bad}, headers=auth_header("emp7"))
        assert rejected.status_code == 422

    outsider = client.post(url, json={"hours": 1}, headers=auth_header("emp99"))
    assert outsider.status_code == 404


def test_service_log_hours_rejects_non_positive(identity_of: Callable[[str], IdentityContext], client: TestClient) -> None:
    item = create_item(client, "manager")
    service = WorkItemService()
    for bad in (0, -0.5, float("nan")):
        with pytest.raises(ValidationError):
            service.log_hours(identity_of("emp7"), item["id"], bad)
