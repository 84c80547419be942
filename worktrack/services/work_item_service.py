from __future__ import annotations

import logging
import math
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, col, select

from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import (
    OrgKind,
    PersonRead,
    WorkItem,
    WorkItemCreate,
    WorkItemHistory,
    WorkItemPriority,
    WorkItemUpdate,
    now_utc,
)
from worktrack.domain.state_machine import WorkItemStatus, can_transition
from worktrack.infra.db import get_engine
from worktrack.services.eligibility_service import EligibilityService
from worktrack.services.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from worktrack.services.visibility_service import (
    QueryIntent,
    can_create,
    can_delete,
    can_edit,
    can_progress,
    has_management_authority,
    scope_clause,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = int(os.getenv("WORKTRACK_DEFAULT_PAGE_LIMIT", "10"))
MAX_PAGE_LIMIT = int(os.getenv("WORKTRACK_MAX_PAGE_LIMIT", "100"))
MAX_PAGE = int(os.getenv("WORKTRACK_MAX_PAGE", "1000000"))


@dataclass(frozen=True)
class WorkItemFilters:
    project_id: str | None = None
    org_kind: OrgKind | None = None
    org_id: str | None = None
    assignee_id: str | None = None
    assigner_id: str | None = None
    status: WorkItemStatus | None = None
    priority: WorkItemPriority | None = None
    item_type: str | None = None
    due_from: date | None = None
    due_to: date | None = None


@dataclass(frozen=True)
class WorkItemPage:
    items: list[WorkItem]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


def clamp_pagination(page: int | None, limit: int | None) -> tuple[int, int]:
    resolved_page = min(max(1, page or 1), MAX_PAGE)
    resolved_limit = DEFAULT_PAGE_LIMIT if limit is None else limit
    resolved_limit = min(max(1, resolved_limit), MAX_PAGE_LIMIT)
    return resolved_page, resolved_limit


def build_filter_clauses(
    identity: IdentityContext,
    filters: WorkItemFilters,
    intent: QueryIntent = QueryIntent.ALL,
) -> list[ColumnElement[bool]]:
    """Scope predicate plus every supplied filter; shared by listing and statistics."""
    if filters.due_from is not None and filters.due_to is not None and filters.due_from > filters.due_to:
        raise ValidationError("due_from must not be later than due_to")
    clauses: list[ColumnElement[bool]] = [scope_clause(identity, intent)]
    if filters.project_id is not None:
        clauses.append(col(WorkItem.project_id) == filters.project_id)
    if filters.org_kind is not None:
        clauses.append(col(WorkItem.org_kind) == filters.org_kind)
    if filters.org_id is not None:
        clauses.append(col(WorkItem.org_id) == filters.org_id)
    if filters.assignee_id is not None:
        clauses.append(col(WorkItem.assignee_id) == filters.assignee_id)
    if filters.assigner_id is not None:
        clauses.append(col(WorkItem.assigner_id) == filters.assigner_id)
    if filters.status is not None:
        clauses.append(col(WorkItem.status) == filters.status)
    if filters.priority is not None:
        clauses.append(col(WorkItem.priority) == filters.priority)
    if filters.item_type is not None:
        clauses.append(col(WorkItem.item_type) == filters.item_type)
    if filters.due_from is not None:
        clauses.append(col(WorkItem.due_date) >= filters.due_from)
    if filters.due_to is not None:
        clauses.append(col(WorkItem.due_date) <= filters.due_to)
    return clauses


def _json_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


class WorkItemService:
    _PROGRESS_FIELDS: ClassVar[frozenset[str]] = frozenset({"status", "hours_spent"})
    _NON_NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"title", "item_type", "priority", "status", "hours_estimated", "hours_spent"}
    )

    def __init__(self, eligibility: EligibilityService | None = None) -> None:
        self._eligibility = eligibility or EligibilityService()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    @contextmanager
    def _session_scope(self, operation: str) -> Iterator[Session]:
        try:
            with self._session() as session:
                yield session
        except IntegrityError as exc:
            logger.warning("%s rejected by integrity constraint", operation)
            raise ConflictError(f"{operation} conflict") from exc
        except SQLAlchemyError as exc:
            logger.exception("%s failed", operation)
            raise InternalError("internal error") from exc

    def _get_visible(self, session: Session, identity: IdentityContext, item_id: str) -> WorkItem:
        row = session.exec(
            select(WorkItem)
            .where(WorkItem.id == item_id)
            .where(scope_clause(identity))
        ).first()
        if row is None:
            raise NotFoundError("work item not found")
        return row

    def _record_history(
        self,
        session: Session,
        *,
        work_item_id: str,
        action: str,
        from_status: WorkItemStatus | None,
        to_status: WorkItemStatus | None,
        actor_id: str,
        note: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        session.add(
            WorkItemHistory(
                work_item_id=work_item_id,
                action=action,
                from_status=from_status,
                to_status=to_status,
                actor_id=actor_id,
                note=note,
                detail=detail or {},
            )
        )

    def create_item(self, identity: IdentityContext, payload: WorkItemCreate) -> WorkItem:
        if not can_create(identity, payload.org_kind, payload.org_id):
            raise ForbiddenError("not allowed to create work items in this scope")

        with self._session_scope("work item create") as session:
            self._eligibility.ensure_scope(session, payload.project_id, payload.org_kind, payload.org_id)
            if payload.assignee_id is not None:
                self._eligibility.ensure_assignable(
                    session,
                    payload.project_id,
                    payload.org_kind,
                    payload.org_id,
                    payload.assignee_id,
                )
            now = now_utc()
            row = WorkItem(
                org_kind=payload.org_kind,
                project_id=payload.project_id,
                org_id=payload.org_id,
                assignee_id=payload.assignee_id,
                assigner_id=identity.person_id,
                title=payload.title,
                description=payload.description,
                item_type=payload.item_type,
                priority=payload.priority,
                status=payload.status,
                due_date=payload.due_date,
                hours_estimated=payload.hours_estimated,
                hours_spent=0.0,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            self._record_history(
                session,
                work_item_id=row.id,
                action="created",
                from_status=None,
                to_status=row.status,
                actor_id=identity.person_id,
                detail={"assignee_id": row.assignee_id, "org_kind": row.org_kind},
            )
            session.commit()
            session.refresh(row)

        logger.info("work item %s created by %s in %s %s", row.id, identity.person_id, row.org_kind, row.org_id)
        return row

    def get_item(self, identity: IdentityContext, item_id: str) -> WorkItem:
        with self._session_scope("work item read") as session:
            return self._get_visible(session, identity, item_id)

    def update_item(self, identity: IdentityContext, item_id: str, payload: WorkItemUpdate) -> WorkItem:
        changes = {name: getattr(payload, name) for name in payload.model_fields_set}
        for name in sorted(self._NON_NULLABLE_FIELDS & changes.keys()):
            if changes[name] is None:
                raise ValidationError(f"{name} cannot be null")

        with self._session_scope("work item update") as session:
            row = self._get_visible(session, identity, item_id)
            if not can_edit(identity, row):
                if not can_progress(identity, row):
                    raise ForbiddenError("not allowed to modify this work item")
                restricted = sorted(set(changes) - self._PROGRESS_FIELDS)
                if restricted:
                    raise ForbiddenError(f"not allowed to modify fields: {', '.join(restricted)}")

            new_assignee = changes.get("assignee_id")
            if new_assignee is not None and new_assignee != row.assignee_id:
                self._eligibility.ensure_assignable(
                    session,
                    row.project_id,
                    row.org_kind,
                    row.org_id,
                    new_assignee,
                )
            new_status = changes.get("status")
            if new_status is not None and not can_transition(row.status, new_status):
                raise ValidationError(f"illegal transition: {row.status} -> {new_status}")

            diff: dict[str, dict[str, Any]] = {}
            for name, value in changes.items():
                current = getattr(row, name)
                if current == value:
                    continue
                diff[name] = {"from": _json_value(current), "to": _json_value(value)}
                setattr(row, name, value)
            if not diff:
                return row

            source = WorkItemStatus(diff["status"]["from"]) if "status" in diff else row.status
            row.updated_at = now_utc()
            session.add(row)
            self._record_history(
                session,
                work_item_id=row.id,
                action="updated",
                from_status=source,
                to_status=row.status,
                actor_id=identity.person_id,
                detail={"fields": diff},
            )
            session.commit()
            session.refresh(row)
            return row

    def delete_item(self, identity: IdentityContext, item_id: str) -> None:
        with self._session_scope("work item delete") as session:
            row = self._get_visible(session, identity, item_id)
            if not can_delete(identity):
                raise ForbiddenError("only admin or manager may delete work items")
            history = session.exec(
                select(WorkItemHistory).where(WorkItemHistory.work_item_id == row.id)
            ).all()
            for entry in history:
                session.delete(entry)
            session.flush()
            session.delete(row)
            session.commit()
        logger.info("work item %s deleted by %s", item_id, identity.person_id)

    def list_items(
        self,
        identity: IdentityContext,
        filters: WorkItemFilters | None = None,
        *,
        page: int | None = 1,
        limit: int | None = None,
        intent: QueryIntent = QueryIntent.ALL,
    ) -> WorkItemPage:
        resolved_page, resolved_limit = clamp_pagination(page, limit)
        clauses = build_filter_clauses(identity, filters or WorkItemFilters(), intent)
        with self._session_scope("work item list") as session:
            total = session.exec(select(func.count(col(WorkItem.id))).where(*clauses)).one()
            rows = session.exec(
                select(WorkItem)
                .where(*clauses)
                .order_by(desc(col(WorkItem.created_at)), desc(col(WorkItem.id)))
                .offset((resolved_page - 1) * resolved_limit)
                .limit(resolved_limit)
            ).all()
        return WorkItemPage(items=list(rows), total=int(total), page=resolved_page, limit=resolved_limit)

    def set_status(
        self,
        identity: IdentityContext,
        item_id: str,
        status: WorkItemStatus | str,
        *,
        note: str | None = None,
    ) -> WorkItem:
        try:
            target = WorkItemStatus(status)
        except ValueError as exc:
            raise ValidationError(f"unsupported status: {status}") from exc

        with self._session_scope("work item status change") as session:
            row = self._get_visible(session, identity, item_id)
            if not can_progress(identity, row):
                raise ForbiddenError("not allowed to change the status of this work item")
            if not can_transition(row.status, target):
                raise ValidationError(f"illegal transition: {row.status} -> {target}")

            source = row.status
            row.status = target
            row.updated_at = now_utc()
            session.add(row)
            self._record_history(
                session,
                work_item_id=row.id,
                action="status_changed",
                from_status=source,
                to_status=target,
                actor_id=identity.person_id,
                note=note,
            )
            session.commit()
            session.refresh(row)
            return row

    def log_hours(
        self,
        identity: IdentityContext,
        item_id: str,
        hours: float,
        *,
        note: str | None = None,
    ) -> WorkItem:
        if isinstance(hours, bool) or not isinstance(hours, int | float) or not math.isfinite(hours) or hours <= 0:
            raise ValidationError("hours must be a positive number")

        with self._session_scope("work item hours log") as session:
            row = self._get_visible(session, identity, item_id)
            if not can_progress(identity, row):
                raise ForbiddenError("not allowed to log hours on this work item")

            previous = row.hours_spent
            row.hours_spent = previous + float(hours)
            row.updated_at = now_utc()
            session.add(row)
            self._record_history(
                session,
                work_item_id=row.id,
                action="hours_logged",
                from_status=row.status,
                to_status=row.status,
                actor_id=identity.person_id,
                note=note,
                detail={"hours": float(hours), "hours_spent": row.hours_spent},
            )
            session.commit()
            session.refresh(row)
            return row

    def transfer(
        self,
        identity: IdentityContext,
        item_id: str,
        new_assignee_id: str,
        *,
        note: str | None = None,
    ) -> WorkItem:
        with self._session_scope("work item transfer") as session:
            row = self._get_visible(session, identity, item_id)
            if not has_management_authority(identity, row):
                raise ForbiddenError("not allowed to transfer this work item")
            self._eligibility.ensure_assignable(
                session,
                row.project_id,
                row.org_kind,
                row.org_id,
                new_assignee_id,
                excluding=row.assignee_id,
            )

            previous = row.assignee_id
            row.assignee_id = new_assignee_id
            row.updated_at = now_utc()
            session.add(row)
            self._record_history(
                session,
                work_item_id=row.id,
                action="transferred",
                from_status=row.status,
                to_status=row.status,
                actor_id=identity.person_id,
                note=note,
                detail={"from_assignee_id": previous, "to_assignee_id": new_assignee_id},
            )
            session.commit()
            session.refresh(row)

        logger.info("work item %s transferred from %s to %s by %s", row.id, previous, new_assignee_id, identity.person_id)
        return row

    def transfer_candidates(self, identity: IdentityContext, item_id: str) -> list[PersonRead]:
        with self._session_scope("transfer candidate lookup") as session:
            row = self._get_visible(session, identity, item_id)
            if not has_management_authority(identity, row):
                raise ForbiddenError("not allowed to transfer this work item")
            return self._eligibility.assignable(
                session,
                row.project_id,
                row.org_kind,
                row.org_id,
                excluding=row.assignee_id,
            )

    def list_assignable(
        self,
        identity: IdentityContext,
        project_id: str,
        org_kind: OrgKind,
        org_id: str,
    ) -> list[PersonRead]:
        if not can_create(identity, org_kind, org_id):
            raise ForbiddenError("not allowed to assign work in this scope")
        with self._session_scope("assignable lookup") as session:
            self._eligibility.ensure_scope(session, project_id, org_kind, org_id)
            return self._eligibility.assignable(session, project_id, org_kind, org_id)

    def list_history(self, identity: IdentityContext, item_id: str) -> list[WorkItemHistory]:
        with self._session_scope("work item history") as session:
            row = self._get_visible(session, identity, item_id)
            rows = session.exec(
                select(WorkItemHistory).where(WorkItemHistory.work_item_id == row.id)
            ).all()
            return sorted(rows, key=lambda item: item.created_at)
