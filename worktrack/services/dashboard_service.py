from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import DashboardRead, WorkItem, WorkItemRead, WorkItemStatistics
from worktrack.domain.roles import Role
from worktrack.domain.state_machine import WorkItemStatus
from worktrack.infra.db import get_engine
from worktrack.services.errors import InternalError
from worktrack.services.visibility_service import QueryIntent
from worktrack.services.work_item_service import (
    MAX_PAGE_LIMIT,
    WorkItemFilters,
    WorkItemService,
    build_filter_clauses,
)

logger = logging.getLogger(__name__)

_MY_TASKS = ("my_tasks", QueryIntent.MY_TASKS)
_ASSIGNED_BY_ME = ("assigned_by_me", QueryIntent.ASSIGNED_BY_ME)

DASHBOARD_GROUPS: dict[Role, tuple[tuple[str, QueryIntent], ...]] = {
    Role.EMPLOYEE: (_MY_TASKS,),
    Role.CUSTOMER_EMPLOYEE: (_MY_TASKS,),
    Role.TEAM_LEAD: (_MY_TASKS, ("team_tasks", QueryIntent.TEAM), _ASSIGNED_BY_ME),
    Role.MANAGER: (_ASSIGNED_BY_ME, ("project_tasks", QueryIntent.PROJECT)),
    Role.ADMIN: (_ASSIGNED_BY_ME, ("project_tasks", QueryIntent.PROJECT)),
    Role.CUSTOMER_HEAD: (_MY_TASKS, ("company_tasks", QueryIntent.COMPANY), _ASSIGNED_BY_ME),
}

_STATUS_COUNT_FIELDS = {
    WorkItemStatus.TODO: "todo_count",
    WorkItemStatus.IN_PROGRESS: "in_progress_count",
    WorkItemStatus.BLOCKED: "blocked_count",
    WorkItemStatus.DONE: "done_count",
}


class DashboardService:
    def __init__(self, work_items: WorkItemService | None = None) -> None:
        self._work_items = work_items or WorkItemService()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def statistics(self, identity: IdentityContext, project_id: str | None = None) -> WorkItemStatistics:
        clauses = build_filter_clauses(identity, WorkItemFilters(project_id=project_id))
        statement = (
            select(
                col(WorkItem.status),
                func.count(col(WorkItem.id)),
                func.coalesce(func.sum(col(WorkItem.hours_estimated)), 0.0),
                func.coalesce(func.sum(col(WorkItem.hours_spent)), 0.0),
            )
            .where(*clauses)
            .group_by(col(WorkItem.status))
        )
        try:
            with self._session() as session:
                rows = session.exec(statement).all()
        except SQLAlchemyError as exc:
            logger.exception("work item statistics failed")
            raise InternalError("internal error") from exc

        counts: dict[str, int] = {}
        total = 0
        hours_estimated = 0.0
        hours_spent = 0.0
        for status, count, estimated, spent in rows:
            counts[_STATUS_COUNT_FIELDS[WorkItemStatus(status)]] = int(count)
            total += int(count)
            hours_estimated += float(estimated)
            hours_spent += float(spent)
        return WorkItemStatistics(
            total=total,
            total_hours_estimated=hours_estimated,
            total_hours_spent=hours_spent,
            **counts,
        )

    def dashboard(self, identity: IdentityContext) -> DashboardRead:
        groups: dict[str, list[WorkItemRead]] = {}
        for name, intent in DASHBOARD_GROUPS[identity.role]:
            groups[name] = [WorkItemRead.model_validate(item) for item in self._collect(identity, intent)]
        return DashboardRead(
            role=identity.role,
            statistics=self.statistics(identity),
            **groups,
        )

    def _collect(self, identity: IdentityContext, intent: QueryIntent) -> list[WorkItem]:
        rows: list[WorkItem] = []
        page = 1
        while True:
            result = self._work_items.list_items(identity, page=page, limit=MAX_PAGE_LIMIT, intent=intent)
            rows.extend(result.items)
            if page >= result.total_pages:
                return rows
            page += 1
