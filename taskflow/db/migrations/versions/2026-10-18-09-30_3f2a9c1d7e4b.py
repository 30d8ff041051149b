"""initial workflow and credential tables.

Revision ID: 3f2a9c1d7e4b
Revises:
Create Date: 2026-10-18 09:30:12.418532

"""

import sqlalchemy as sa
from alembic import op

role_enum = sa.Enum("STAFF", "ADMIN", "SUPERADMIN", name="role")
task_status_enum = sa.Enum(
    "PENDING", "IN_PROGRESS", "COMPLETED", "ON_HOLD", name="taskstatus",
)
approval_status_enum = sa.Enum(
    "ASSIGNED",
    "IN_REVIEW",
    "ADMIN_APPROVED",
    "SUPERADMIN_APPROVED",
    "REJECTED",
    name="approvalstatus",
)
priority_enum = sa.Enum("LOW", "MEDIUM", "HIGH", name="priority")

# revision identifiers, used by Alembic.
revision = "3f2a9c1d7e4b"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Run the migration."""
    op.create_table(
        "team_members",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("job_role", sa.String(length=120), nullable=False),
        sa.Column("is_doer", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_team_members_email"), "team_members", ["email"], unique=True,
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=7), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", priority_enum, nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("project_id", sa.String(length=32), nullable=True),
        sa.Column("assigned_to", sa.String(length=255), nullable=False),
        sa.Column("assigned_by", sa.String(length=255), nullable=False),
        sa.Column("status", task_status_enum, nullable=False),
        sa.Column("approval_status", approval_status_enum, nullable=False),
        sa.Column("completion_notes", sa.Text(), nullable=True),
        sa.Column("admin_comments", sa.Text(), nullable=True),
        sa.Column("admin_reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("admin_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superadmin_comments", sa.Text(), nullable=True),
        sa.Column("superadmin_reviewed_by", sa.String(length=255), nullable=True),
        sa.Column(
            "superadmin_reviewed_at", sa.DateTime(timezone=True), nullable=True,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("priority", "project_id", "assigned_to", "status", "approval_status"):
        op.create_index(op.f(f"ix_tasks_{column}"), "tasks", [column], unique=False)

    op.create_table(
        "credentials",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("otp", sa.String(length=6), nullable=False),
        sa.Column("system_role", role_enum, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("session_version", sa.Integer(), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("email", "system_role", name="uq_credentials_email_role"),
    )
    op.create_index(op.f("ix_credentials_email"), "credentials", ["email"], unique=False)
    op.create_index(
        op.f("ix_credentials_system_role"), "credentials", ["system_role"], unique=False,
    )


def downgrade() -> None:
    """Undo the migration."""
    op.drop_index(op.f("ix_credentials_system_role"), table_name="credentials")
    op.drop_index(op.f("ix_credentials_email"), table_name="credentials")
    op.drop_table("credentials")
    for column in ("priority", "project_id", "assigned_to", "status", "approval_status"):
        op.drop_index(op.f(f"ix_tasks_{column}"), table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("projects")
    op.drop_index(op.f("ix_team_members_email"), table_name="team_members")
    op.drop_table("team_members")

    bind = op.get_bind()
    for enum in (role_enum, priority_enum, approval_status_enum, task_status_enum):
        enum.drop(bind, checkfirst=True)
