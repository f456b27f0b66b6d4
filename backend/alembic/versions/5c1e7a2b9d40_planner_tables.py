"""Planner tables: org, clients, projects, members, resource allocations

Revision ID: 5c1e7a2b9d40
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5c1e7a2b9d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 1) Org
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_index("ix_departments_name", "departments", ["name"], unique=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("initials", sa.String(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("job_title", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_employees_department_id", "employees", ["department_id"], unique=False)

    # 2) Clients and projects; job numbers and client names are unique by convention only
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_index("ix_clients_name", "clients", ["name"], unique=False)

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("job_number", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="in_progress"),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("project_manager_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["project_manager_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_projects_title", "projects", ["title"], unique=False)
    op.create_index("ix_projects_job_number", "projects", ["job_number"], unique=False)

    # 3) Membership, one row per (project, employee)
    op.create_table(
        "project_members",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("project_id", "employee_id", name="uq_project_members_project_id_employee_id"),
    )
    op.create_index("ix_project_members_project_id", "project_members", ["project_id"], unique=False)
    op.create_index("ix_project_members_employee_id", "project_members", ["employee_id"], unique=False)

    # 4) Weekly allocations. No cascade from projects: a dangling project
    #    reference is rendered as an orphaned row.
    op.create_table(
        "resource_allocations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("monday", sa.Float(), nullable=False, server_default="0"),
        sa.Column("tuesday", sa.Float(), nullable=False, server_default="0"),
        sa.Column("wednesday", sa.Float(), nullable=False, server_default="0"),
        sa.Column("thursday", sa.Float(), nullable=False, server_default="0"),
        sa.Column("friday", sa.Float(), nullable=False, server_default="0"),
        sa.Column("task_description", sa.String(), nullable=False, server_default=""),
        sa.Column("comment", sa.String(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
        sa.CheckConstraint("week_number BETWEEN 1 AND 53", name="ck_resource_allocations_week_number"),
    )
    op.create_index("ix_resource_allocations_employee_id", "resource_allocations", ["employee_id"], unique=False)
    op.create_index("ix_resource_allocations_project_id", "resource_allocations", ["project_id"], unique=False)
    op.create_index("ix_resource_allocations_year", "resource_allocations", ["year"], unique=False)
    op.create_index("ix_resource_allocations_week_number", "resource_allocations", ["week_number"], unique=False)


def downgrade() -> None:
    op.drop_table("resource_allocations")
    op.drop_table("project_members")
    op.drop_index("ix_projects_job_number", table_name="projects")
    op.drop_index("ix_projects_title", table_name="projects")
    op.drop_table("projects")
    op.drop_index("ix_clients_name", table_name="clients")
    op.drop_table("clients")
    op.drop_index("ix_employees_department_id", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_departments_name", table_name="departments")
    op.drop_table("departments")
