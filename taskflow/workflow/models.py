from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Date, DateTime, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.db.base import Base
from taskflow.workflow.enums import ApprovalStatus, Priority, TaskStatus


def new_id() -> str:
    return uuid4().hex


# --- team roster ---
class TeamMember(Base):
    """A person who can be assigned work. Not the logged-in identity."""

    __tablename__ = "team_members"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True,
    )
    job_role: Mapped[str] = mapped_column(String(120), nullable=False)  # free text
    is_doer: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# --- project ---
class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    color: Mapped[Optional[str]] = mapped_column(String(7))  # hex color


# --- task ---
class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[Priority] = mapped_column(
        SQLEnum(Priority), default=Priority.MEDIUM, index=True, nullable=False,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Plain references: deleting a member or project leaves them dangling.
    project_id: Mapped[Optional[str]] = mapped_column(String(32), index=True)
    assigned_to: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[TaskStatus] = mapped_column(
        SQLEnum(TaskStatus), default=TaskStatus.PENDING, index=True, nullable=False,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        SQLEnum(ApprovalStatus),
        default=ApprovalStatus.ASSIGNED,
        index=True,
        nullable=False,
    )

    completion_notes: Mapped[Optional[str]] = mapped_column(Text)

    admin_comments: Mapped[Optional[str]] = mapped_column(Text)
    admin_reviewed_by: Mapped[Optional[str]] = mapped_column(String(255))
    admin_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
    )

    superadmin_comments: Mapped[Optional[str]] = mapped_column(Text)
    superadmin_reviewed_by: Mapped[Optional[str]] = mapped_column(String(255))
    superadmin_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
    )
