"""directory, work item and audit tables

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("resource", sa.String(), nullable=False),
        sa.Column("method", sa.String(), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("detail", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_ts", "audit_logs", ["ts"])

    op.create_table(
        "employees",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_employees_user_id", "employees", ["user_id"], unique=True)
    op.create_index("ix_employees_name", "employees", ["name"])
    op.create_index("ix_employees_created_at", "employees", ["created_at"])

    op.create_table(
        "teams",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("lead_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["lead_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_teams_name", "teams", ["name"])
    op.create_index("ix_teams_lead_id", "teams", ["lead_id"])
    op.create_index("ix_teams_created_at", "teams", ["created_at"])

    op.create_table(
        "customer_companies",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customer_companies_name", "customer_companies", ["name"])
    op.create_index("ix_customer_companies_created_at", "customer_companies", ["created_at"])

    op.create_table(
        "customer_employees",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("customer_company_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["customer_company_id"], ["customer_companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customer_employees_user_id", "customer_employees", ["user_id"], unique=True)
    op.create_index(
        "ix_customer_employees_customer_company_id",
        "customer_employees",
        ["customer_company_id"],
    )
    op.create_index("ix_customer_employees_name", "customer_employees", ["name"])
    op.create_index("ix_customer_employees_created_at", "customer_employees", ["created_at"])

    op.create_table(
        "projects",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("manager_id", sa.String(), nullable=True),
        sa.Column("customer_company_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["manager_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["customer_company_id"], ["customer_companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_name", "projects", ["name"])
    op.create_index("ix_projects_manager_id", "projects", ["manager_id"])
    op.create_index("ix_projects_customer_company_id", "projects", ["customer_company_id"])
    op.create_index("ix_projects_created_at", "projects", ["created_at"])

    op.create_table(
        "project_team_members",
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("employee_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("project_id", "team_id", "employee_id"),
    )
    op.create_index(
        "ix_project_team_members_project_team",
        "project_team_members",
        ["project_id", "team_id"],
    )
    op.create_index("ix_project_team_members_created_at", "project_team_members", ["created_at"])

    op.create_table(
        "work_items",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("org_kind", sa.String(), nullable=False),
        sa.Column("project_id", sa.String(), nullable=False),
        sa.Column("org_id", sa.String(), nullable=False),
        sa.Column("assignee_id", sa.String(), nullable=True),
        sa.Column("assigner_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("item_type", sa.String(length=50), nullable=False),
        sa.Column("priority", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("hours_estimated", sa.Float(), nullable=False),
        sa.Column("hours_spent", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_items_org_kind", "work_items", ["org_kind"])
    op.create_index("ix_work_items_project_id", "work_items", ["project_id"])
    op.create_index("ix_work_items_org_id", "work_items", ["org_id"])
    op.create_index("ix_work_items_assignee_id", "work_items", ["assignee_id"])
    op.create_index("ix_work_items_assigner_id", "work_items", ["assigner_id"])
    op.create_index("ix_work_items_item_type", "work_items", ["item_type"])
    op.create_index("ix_work_items_priority", "work_items", ["priority"])
    op.create_index("ix_work_items_status", "work_items", ["status"])
    op.create_index("ix_work_items_due_date", "work_items", ["due_date"])
    op.create_index("ix_work_items_created_at", "work_items", ["created_at"])
    op.create_index("ix_work_items_updated_at", "work_items", ["updated_at"])
    op.create_index("ix_work_items_kind_org", "work_items", ["org_kind", "org_id"])
    op.create_index("ix_work_items_created_id", "work_items", ["created_at", "id"])

    op.create_table(
        "work_item_history",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("work_item_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("from_status", sa.String(), nullable=True),
        sa.Column("to_status", sa.String(), nullable=True),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("note", sa.String(), nullable=True),
        sa.Column("detail", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["work_item_id"], ["work_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_item_history_work_item_id", "work_item_history", ["work_item_id"])
    op.create_index("ix_work_item_history_action", "work_item_history", ["action"])
    op.create_index("ix_work_item_history_actor_id", "work_item_history", ["actor_id"])
    op.create_index("ix_work_item_history_created_at", "work_item_history", ["created_at"])


def downgrade() -> None:
    op.drop_table("work_item_history")
    op.drop_table("work_items")
    op.drop_table("project_team_members")
    op.drop_table("projects")
    op.drop_table("customer_employees")
    op.drop_table("customer_companies")
    op.drop_table("teams")
    op.drop_table("employees")
    op.drop_index("ix_audit_logs_ts", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")
