from datetime import date, datetime
from typing import Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from taskflow.workflow.enums import ApprovalStatus, Priority, TaskStatus


class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class ProjectOut(BaseModel):
    id: str
    name: str
    description: Optional[str]
    color: Optional[str]

    model_config = {"from_attributes": True}


class TeamMemberCreate(BaseModel):
    name: str = Field(..., max_length=200)
    email: EmailStr
    job_role: str = Field(..., max_length=120)
    is_doer: bool = True
    is_active: bool = True


class TeamMemberOut(BaseModel):
    id: str
    name: str
    email: str
    job_role: str
    is_doer: bool
    is_active: bool

    model_config = {"from_attributes": True}


class TaskCreate(BaseModel):
    title: str = Field(..., max_length=300)
    description: str
    assigned_to: str = Field(..., max_length=255)
    due_date: date
    priority: Priority = Priority.MEDIUM
    project_id: Optional[str] = None


class TaskUpdate(BaseModel):
    """Editable task fields. Review fields only move through the workflow routes."""

    title: Optional[str] = Field(None, max_length=300)
    description: Optional[str] = None
    assigned_to: Optional[str] = Field(None, max_length=255)
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    project_id: Optional[str] = None
    status: Optional[TaskStatus] = None


class CompletionIn(BaseModel):
    notes: str


class ReviewIn(BaseModel):
    approved: bool
    comments: Optional[str] = None


class TaskOut(BaseModel):
    id: str
    title: str
    description: str
    priority: Priority
    due_date: date
    created_at: datetime
    project_id: Optional[str]
    assigned_to: str
    assigned_by: str
    status: TaskStatus
    approval_status: ApprovalStatus
    completion_notes: Optional[str]
    admin_comments: Optional[str]
    admin_reviewed_by: Optional[str]
    admin_reviewed_at: Optional[datetime]
    superadmin_comments: Optional[str]
    superadmin_reviewed_by: Optional[str]
    superadmin_reviewed_at: Optional[datetime]

    model_config = {"from_attributes": True}


class TaskDetailOut(TaskOut):
    """Task with its references resolved to display labels."""

    assignee_name: str
    project_name: str
    is_overdue: bool


class TaskStatsOut(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_approval_status: Dict[str, int]
    progress: float  # percent of tasks with status completed
