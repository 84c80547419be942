from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from worktrack.api.deps import get_identity
from worktrack.domain.identity import IdentityContext
from worktrack.domain.models import (
    DashboardRead,
    OrgKind,
    PaginationRead,
    PersonRead,
    WorkItemCreate,
    WorkItemHistoryRead,
    WorkItemListRead,
    WorkItemLogHoursRequest,
    WorkItemPriority,
    WorkItemRead,
    WorkItemStatistics,
    WorkItemStatusRequest,
    WorkItemTransferRequest,
    WorkItemUpdate,
)
from worktrack.domain.state_machine import WorkItemStatus
from worktrack.infra.audit import set_audit_context
from worktrack.services.dashboard_service import DashboardService
from worktrack.services.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
    WorkItemError,
)
from worktrack.services.visibility_service import QueryIntent
from worktrack.services.work_item_service import WorkItemFilters, WorkItemService

router = APIRouter()


def get_work_item_service() -> WorkItemService:
    return WorkItemService()


def get_dashboard_service() -> DashboardService:
    return DashboardService()


Identity = Annotated[IdentityContext, Depends(get_identity)]
Service = Annotated[WorkItemService, Depends(get_work_item_service)]
Dashboard = Annotated[DashboardService, Depends(get_dashboard_service)]


def _handle_error(exc: WorkItemError) -> None:
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, InternalError):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error") from exc
    raise exc


@router.post(
    "",
    response_model=WorkItemRead,
    status_code=status.HTTP_201_CREATED,
)
def create_work_item(
    payload: WorkItemCreate,
    request: Request,
    identity: Identity,
    service: Service,
) -> WorkItemRead:
    set_audit_context(
        request,
        "work_item.create",
        project_id=payload.project_id,
        org_kind=payload.org_kind,
        org_id=payload.org_id,
        assignee_id=payload.assignee_id,
    )
    try:
        row = service.create_item(identity, payload)
        return WorkItemRead.model_validate(row)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.get("", response_model=WorkItemListRead)
def list_work_items(
    identity: Identity,
    service: Service,
    project_id: str | None = None,
    org_kind: OrgKind | None = None,
    org_id: str | None = None,
    assignee_id: str | None = None,
    assigner_id: str | None = None,
    item_status: Annotated[WorkItemStatus | None, Query(alias="status")] = None,
    priority: WorkItemPriority | None = None,
    item_type: str | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
    page: int | None = None,
    limit: int | None = None,
    view: QueryIntent = QueryIntent.ALL,
) -> WorkItemListRead:
    filters = WorkItemFilters(
        project_id=project_id,
        org_kind=org_kind,
        org_id=org_id,
        assignee_id=assignee_id,
        assigner_id=assigner_id,
        status=item_status,
        priority=priority,
        item_type=item_type,
        due_from=due_from,
        due_to=due_to,
    )
    try:
        result = service.list_items(identity, filters, page=page, limit=limit, intent=view)
    except WorkItemError as exc:
        _handle_error(exc)
        raise
    return WorkItemListRead(
        items=[WorkItemRead.model_validate(item) for item in result.items],
        pagination=PaginationRead(
            current_page=result.page,
            items_per_page=result.limit,
            total_items=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/dashboard", response_model=DashboardRead)
def get_dashboard(identity: Identity, dashboard: Dashboard) -> DashboardRead:
    try:
        return dashboard.dashboard(identity)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.get("/statistics", response_model=WorkItemStatistics)
def get_statistics(
    identity: Identity,
    dashboard: Dashboard,
    project_id: str | None = None,
) -> WorkItemStatistics:
    try:
        return dashboard.statistics(identity, project_id=project_id)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.get("/assignable", response_model=list[PersonRead])
def list_assignable(
    identity: Identity,
    service: Service,
    project_id: str,
    org_id: str,
    org_kind: OrgKind = OrgKind.TEAM,
) -> list[PersonRead]:
    try:
        return service.list_assignable(identity, project_id, org_kind, org_id)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.get("/{item_id}", response_model=WorkItemRead)
def get_work_item(item_id: str, identity: Identity, service: Service) -> WorkItemRead:
    try:
        row = service.get_item(identity, item_id)
        return WorkItemRead.model_validate(row)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.patch("/{item_id}", response_model=WorkItemRead)
def update_work_item(
    item_id: str,
    payload: WorkItemUpdate,
    request: Request,
    identity: Identity,
    service: Service,
) -> WorkItemRead:
    set_audit_context(request, "work_item.update", work_item_id=item_id, fields=sorted(payload.model_fields_set))
    try:
        row = service.update_item(identity, item_id, payload)
        return WorkItemRead.model_validate(row)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_work_item(
    item_id: str,
    request: Request,
    identity: Identity,
    service: Service,
) -> Response:
    set_audit_context(request, "work_item.delete", work_item_id=item_id)
    try:
        service.delete_item(identity, item_id)
    except WorkItemError as exc:
        _handle_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{item_id}/status", response_model=WorkItemRead)
def set_work_item_status(
    item_id: str,
    payload: WorkItemStatusRequest,
    request: Request,
    identity: Identity,
    service: Service,
) -> WorkItemRead:
    set_audit_context(request, "work_item.status", work_item_id=item_id, status=payload.status)
    try:
        row = service.set_status(identity, item_id, payload.status, note=payload.note)
        return WorkItemRead.model_validate(row)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.post("/{item_id}/log-hours", response_model=WorkItemRead)
def log_work_item_hours(
    item_id: str,
    payload: WorkItemLogHoursRequest,
    request: Request,
    identity: Identity,
    service: Service,
) -> WorkItemRead:
    set_audit_context(request, "work_item.log_hours", work_item_id=item_id, hours=payload.hours)
    try:
        row = service.log_hours(identity, item_id, payload.hours, note=payload.note)
        return WorkItemRead.model_validate(row)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.post("/{item_id}/transfer", response_model=WorkItemRead)
def transfer_work_item(
    item_id: str,
    payload: WorkItemTransferRequest,
    request: Request,
    identity: Identity,
    service: Service,
) -> WorkItemRead:
    set_audit_context(request, "work_item.transfer", work_item_id=item_id, assignee_id=payload.assignee_id)
    try:
        row = service.transfer(identity, item_id, payload.assignee_id, note=payload.note)
        return WorkItemRead.model_validate(row)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.get("/{item_id}/transfer-candidates", response_model=list[PersonRead])
def list_transfer_candidates(item_id: str, identity: Identity, service: Service) -> list[PersonRead]:
    try:
        return service.transfer_candidates(identity, item_id)
    except WorkItemError as exc:
        _handle_error(exc)
        raise


@router.get("/{item_id}/history", response_model=list[WorkItemHistoryRead])
def list_work_item_history(item_id: str, identity: Identity, service: Service) -> list[WorkItemHistoryRead]:
    try:
        rows = service.list_history(identity, item_id)
        return [WorkItemHistoryRead.model_validate(item) for item in rows]
    except WorkItemError as exc:
        _handle_error(exc)
        raise
