from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column, ForeignKeyConstraint, Index
from sqlmodel import Field, SQLModel

from worktrack.domain.state_machine import WorkItemStatus


def now_utc() -> datetime:
    return datetime.now(UTC)


class OrgKind(StrEnum):
    TEAM = "team"
    CUSTOMER_COMPANY = "customer_company"


class PersonKind(StrEnum):
    EMPLOYEE = "employee"
    CUSTOMER_EMPLOYEE = "customer_employee"


class WorkItemPriority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    actor_id: str | None = Field(default=None, index=True)
    action: str
    resource: str
    method: str
    status_code: int
    ts: datetime = Field(default_factory=now_utc, index=True)
    detail: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )


# Directory tables. They are owned by the directory collaborator; this core only reads them.


class Employee(SQLModel, table=True):
    __tablename__ = "employees"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str | None = Field(default=None, index=True, unique=True)
    name: str = Field(max_length=255, index=True)
    email: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=now_utc, index=True)


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, index=True)
    lead_id: str | None = Field(default=None, foreign_key="employees.id", index=True)
    created_at: datetime = Field(default_factory=now_utc, index=True)


class CustomerCompany(SQLModel, table=True):
    __tablename__ = "customer_companies"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, index=True)
    created_at: datetime = Field(default_factory=now_utc, index=True)


class CustomerEmployee(SQLModel, table=True):
    __tablename__ = "customer_employees"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str | None = Field(default=None, index=True, unique=True)
    customer_company_id: str = Field(foreign_key="customer_companies.id", index=True)
    name: str = Field(max_length=255, index=True)
    email: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=now_utc, index=True)


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, index=True)
    manager_id: str | None = Field(default=None, foreign_key="employees.id", index=True)
    customer_company_id: str | None = Field(
        default=None,
        foreign_key="customer_companies.id",
        index=True,
    )
    created_at: datetime = Field(default_factory=now_utc, index=True)


class ProjectTeamMember(SQLModel, table=True):
    __tablename__ = "project_team_members"
    __table_args__ = (
        Index("ix_project_team_members_project_team", "project_id", "team_id"),
    )

    project_id: str = Field(foreign_key="projects.id", primary_key=True)
    team_id: str = Field(foreign_key="teams.id", primary_key=True)
    employee_id: str = Field(foreign_key="employees.id", primary_key=True)
    created_at: datetime = Field(default_factory=now_utc, index=True)


class WorkItem(SQLModel, table=True):
    __tablename__ = "work_items"
    __table_args__ = (
        ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="RESTRICT"),
        Index("ix_work_items_kind_org", "org_kind", "org_id"),
        Index("ix_work_items_created_id", "created_at", "id"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    org_kind: OrgKind = Field(default=OrgKind.TEAM, index=True)
    project_id: str = Field(index=True)
    org_id: str = Field(index=True)
    assignee_id: str | None = Field(default=None, index=True)
    assigner_id: str = Field(index=True)
    title: str = Field(max_length=255)
    description: str | None = None
    item_type: str = Field(default="Task", max_length=50, index=True)
    priority: WorkItemPriority = Field(default=WorkItemPriority.MEDIUM, index=True)
    status: WorkItemStatus = Field(default=WorkItemStatus.TODO, index=True)
    due_date: date | None = Field(default=None, index=True)
    hours_estimated: float = Field(default=0.0)
    hours_spent: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=now_utc, index=True)
    updated_at: datetime = Field(default_factory=now_utc, index=True)


class WorkItemHistory(SQLModel, table=True):
    __tablename__ = "work_item_history"
    __table_args__ = (
        ForeignKeyConstraint(["work_item_id"], ["work_items.id"], ondelete="CASCADE"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    work_item_id: str = Field(index=True)
    action: str = Field(max_length=50, index=True)
    from_status: WorkItemStatus | None = None
    to_status: WorkItemStatus | None = None
    actor_id: str | None = Field(default=None, index=True)
    note: str | None = None
    detail: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(default_factory=now_utc, index=True)


class ORMReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class WorkItemCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    org_kind: OrgKind = OrgKind.TEAM
    project_id: str = PydanticField(min_length=1)
    org_id: str = PydanticField(min_length=1)
    assignee_id: str | None = None
    title: str = PydanticField(min_length=1, max_length=255)
    description: str | None = None
    item_type: str = PydanticField(default="Task", min_length=1, max_length=50)
    priority: WorkItemPriority = WorkItemPriority.MEDIUM
    status: WorkItemStatus = WorkItemStatus.TODO
    due_date: date | None = None
    hours_estimated: float = PydanticField(default=0.0, ge=0, allow_inf_nan=False)


class WorkItemUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str | None = PydanticField(default=None, min_length=1, max_length=255)
    description: str | None = None
    item_type: str | None = PydanticField(default=None, min_length=1, max_length=50)
    priority: WorkItemPriority | None = None
    status: WorkItemStatus | None = None
    due_date: date | None = None
    hours_estimated: float | None = PydanticField(default=None, ge=0, allow_inf_nan=False)
    hours_spent: float | None = PydanticField(default=None, ge=0, allow_inf_nan=False)
    assignee_id: str | None = None


class WorkItemStatusRequest(BaseModel):
    status: WorkItemStatus
    note: str | None = None


class WorkItemLogHoursRequest(BaseModel):
    hours: float = PydanticField(gt=0, allow_inf_nan=False)
    note: str | None = None


class WorkItemTransferRequest(BaseModel):
    assignee_id: str = PydanticField(min_length=1)
    note: str | None = None


class WorkItemRead(ORMReadModel):
    id: str
    org_kind: OrgKind
    project_id: str
    org_id: str
    assignee_id: str | None
    assigner_id: str
    title: str
    description: str | None
    item_type: str
    priority: WorkItemPriority
    status: WorkItemStatus
    due_date: date | None
    hours_estimated: float
    hours_spent: float
    created_at: datetime
    updated_at: datetime


class WorkItemHistoryRead(ORMReadModel):
    id: str
    work_item_id: str
    action: str
    from_status: WorkItemStatus | None
    to_status: WorkItemStatus | None
    actor_id: str | None
    note: str | None
    detail: dict[str, Any]
    created_at: datetime


class PaginationRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = PydanticField(alias="currentPage")
    items_per_page: int = PydanticField(alias="itemsPerPage")
    total_items: int = PydanticField(alias="totalItems")
    total_pages: int = PydanticField(alias="totalPages")


class WorkItemListRead(BaseModel):
    items: list[WorkItemRead]
    pagination: PaginationRead


class WorkItemStatistics(BaseModel):
    total: int = 0
    todo_count: int = 0
    in_progress_count: int = 0
    blocked_count: int = 0
    done_count: int = 0
    total_hours_estimated: float = 0.0
    total_hours_spent: float = 0.0


class DashboardRead(BaseModel):
    role: str
    my_tasks: list[WorkItemRead] | None = None
    team_tasks: list[WorkItemRead] | None = None
    project_tasks: list[WorkItemRead] | None = None
    company_tasks: list[WorkItemRead] | None = None
    assigned_by_me: list[WorkItemRead] | None = None
    statistics: WorkItemStatistics


class PersonRead(BaseModel):
    id: str
    name: str
    kind: PersonKind
