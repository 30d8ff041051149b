from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.schemas import Actor
from taskflow.utils import (
    Conflict,
    InvalidStateTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
    _get_or_404,
    normalize_email,
    validate_email,
)
from taskflow.workflow.enums import ApprovalStatus, Priority, Role, TaskStatus
from taskflow.workflow.models import Project, Task, TeamMember
from taskflow.workflow.permissions import MANAGERS, PermissionChecker, require_role

UNKNOWN_MEMBER = "Unknown member"
NO_PROJECT = "No Project"
UNKNOWN_PROJECT = "Unknown Project"

# Workflow fields (approval status, notes, review stamps) are not listed:
# they change only through the transitions below.
EDITABLE_FIELDS = frozenset(
    {"title", "description", "priority", "due_date", "project_id", "assigned_to", "status"},
)
ASSIGNEE_EDITABLE_FIELDS = frozenset({"status"})

SUBMITTABLE = (ApprovalStatus.ASSIGNED, ApprovalStatus.REJECTED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def _require_future_date(value: Optional[date]) -> date:
    if not value:
        raise ValidationError("Due date is required")
    if value < date.today():
        raise ValidationError("Due date cannot be in the past")
    return value


# ---- Team roster ----
async def create_team_member(
    session: AsyncSession,
    actor: Actor,
    *,
    name: str,
    email: str,
    job_role: str,
    is_doer: bool = True,
    is_active: bool = True,
) -> TeamMember:
    require_role(actor, {Role.SUPERADMIN})
    name = _require_text(name, "Name")
    email = validate_email(_require_text(email, "Email"))
    job_role = _require_text(job_role, "Job role")

    if await get_team_member_by_email(session, email) is not None:
        raise Conflict(f"A team member with email {email} already exists")

    member = TeamMember(
        name=name,
        email=email,
        job_role=job_role,
        is_doer=is_doer,
        is_active=is_active,
    )
    session.add(member)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise Conflict(f"A team member with email {email} already exists") from exc
    await session.refresh(member)
    logger.info("Team member {} ({}) added by {}", member.id, email, actor.email)
    return member


async def get_team_member(session: AsyncSession, member_id: str) -> TeamMember:
    return await _get_or_404(session, TeamMember, member_id)


async def get_team_member_by_email(
    session: AsyncSession, email: str,
) -> Optional[TeamMember]:
    q = select(TeamMember).where(TeamMember.email == normalize_email(email))
    result = await session.execute(q)
    return result.scalars().first()


async def list_team_members(
    session: AsyncSession,
    *,
    doers_only: bool = False,
) -> List[TeamMember]:
    q = select(TeamMember)
    if doers_only:
        q = q.where(TeamMember.is_doer.is_(True), TeamMember.is_active.is_(True))
    q = q.order_by(TeamMember.created_at, TeamMember.id)
    result = await session.execute(q)
    return list(result.scalars().all())


async def delete_team_member(
    session: AsyncSession, member_id: str, actor: Actor,
) -> None:
    """Unconditional. Tasks assigned to the member keep the dangling email."""
    require_role(actor, {Role.SUPERADMIN})
    member = await _get_or_404(session, TeamMember, member_id)
    orphaned = await count_tasks_for_member(session, member.email)
    await session.delete(member)
    await session.flush()
    logger.info(
        "Team member {} deleted by {}; {} task(s) left without a roster entry",
        member_id,
        actor.email,
        orphaned,
    )


async def count_tasks_for_member(session: AsyncSession, email: str) -> int:
    q = select(func.count(Task.id)).where(Task.assigned_to == normalize_email(email))
    result = await session.execute(q)
    return result.scalar_one()


async def _require_assignable(session: AsyncSession, email: str) -> TeamMember:
    member = await get_team_member_by_email(session, email)
    if member is None or not member.is_doer or not member.is_active:
        raise ValidationError(f"{email} is not an active doer on the team roster")
    return member


# ---- Projects ----
async def create_project(
    session: AsyncSession,
    actor: Actor,
    *,
    name: str,
    description: Optional[str] = None,
    color: Optional[str] = None,
) -> Project:
    require_role(actor, MANAGERS)
    project = Project(
        name=_require_text(name, "Project name"),
        description=description,
        color=color,
    )
    session.add(project)
    await session.flush()
    await session.refresh(project)
    logger.info("Project {} created by {}", project.id, actor.email)
    return project


async def get_project(session: AsyncSession, project_id: str) -> Project:
    return await _get_or_404(session, Project, project_id)


async def list_projects(session: AsyncSession) -> List[Project]:
    q = select(Project).order_by(Project.created_at, Project.id)
    result = await session.execute(q)
    return list(result.scalars().all())


async def delete_project(session: AsyncSession, project_id: str, actor: Actor) -> None:
    """Unconditional. Tasks keep their project_id, which then resolves to a fallback."""
    require_role(actor, MANAGERS)
    project = await _get_or_404(session, Project, project_id)
    await session.delete(project)
    await session.flush()
    logger.info("Project {} deleted by {}", project_id, actor.email)


# ---- Tasks ----
async def create_task(
    session: AsyncSession,
    actor: Actor,
    *,
    title: str,
    description: str,
    assigned_to: str,
    due_date: Optional[date],
    priority: Priority = Priority.MEDIUM,
    project_id: Optional[str] = None,
) -> Task:
    require_role(actor, MANAGERS)
    title = _require_text(title, "Title")
    description = _require_text(description, "Description")
    assigned_to = normalize_email(_require_text(assigned_to, "Assignee"))
    due_date = _require_future_date(due_date)
    await _require_assignable(session, assigned_to)
    if project_id:
        await _get_or_404(session, Project, project_id)

    task = Task(
        title=title,
        description=description,
        assigned_to=assigned_to,
        assigned_by=actor.email,
        due_date=due_date,
        priority=priority,
        project_id=project_id or None,
        status=TaskStatus.PENDING,
        approval_status=ApprovalStatus.ASSIGNED,
    )
    session.add(task)
    await session.flush()
    await session.refresh(task)
    logger.info(
        "Task {} created by {} and assigned to {}", task.id, actor.email, assigned_to,
    )
    return task


async def task_by_id(session: AsyncSession, task_id: str) -> Task:
    return await _get_or_404(session, Task, task_id)


async def update_task(
    session: AsyncSession,
    task_id: str,
    actor: Actor,
    **patch: Any,
) -> Task:
    """
    Edit task fields outside the approval workflow.

    Admins and superadmins may change any editable field; the assignee may
    only move the work status between pending, in-progress and on-hold.
    """
    task = await task_by_id(session, task_id)

    locked = set(patch) - EDITABLE_FIELDS
    if locked:
        raise ValidationError(
            f"Fields cannot be edited directly: {', '.join(sorted(locked))}",
        )

    if PermissionChecker.is_manager(actor):
        allowed = EDITABLE_FIELDS
    elif PermissionChecker.is_assignee(actor, task):
        allowed = ASSIGNEE_EDITABLE_FIELDS
    else:
        raise PermissionDenied("Only admins or the assignee may edit this task")
    denied = set(patch) - allowed
    if denied:
        raise PermissionDenied(
            f"You may not edit: {', '.join(sorted(denied))}",
        )

    changes: Dict[str, Any] = {}
    for field, value in patch.items():
        if field == "project_id":
            if value:
                await _get_or_404(session, Project, value)
            changes[field] = value or None
        elif field == "status":
            changes[field] = _check_status_change(task, value)
        elif field == "due_date":
            changes[field] = _require_future_date(value)
        elif field == "priority":
            if value is None:
                raise ValidationError("Priority is required")
            changes[field] = Priority(value)
        elif field == "assigned_to":
            value = normalize_email(_require_text(value, "Assignee"))
            await _require_assignable(session, value)
            changes[field] = value
        else:
            changes[field] = _require_text(value, field.capitalize())

    for field, value in changes.items():
        setattr(task, field, value)
    session.add(task)
    await session.flush()
    await session.refresh(task)
    logger.info("Task {} updated by {}: {}", task.id, actor.email, sorted(changes))
    return task


def _check_status_change(task: Task, value: Any) -> TaskStatus:
    if value is None:
        raise ValidationError("Status is required")
    new_status = TaskStatus(value)
    if new_status == TaskStatus.COMPLETED:
        raise ValidationError("Tasks are completed by submitting completion notes")
    if task.approval_status not in SUBMITTABLE:
        raise InvalidStateTransition(
            f"Status of task {task.id} is locked while it is "
            f"{task.approval_status.value}",
        )
    return new_status


async def delete_task(session: AsyncSession, task_id: str, actor: Actor) -> None:
    """Unconditional and irreversible."""
    require_role(actor, MANAGERS)
    task = await task_by_id(session, task_id)
    await session.delete(task)
    await session.flush()
    logger.info("Task {} deleted by {}", task_id, actor.email)


# ---- Approval workflow ----
async def _transition(
    session: AsyncSession,
    task: Task,
    event: str,
    actor: Actor,
    allowed_from: Tuple[ApprovalStatus, ...],
    **values: Any,
) -> Task:
    """
    Apply a state-machine event as a compare-and-swap on approval_status.

    The UPDATE only matches while the row is still in one of ``allowed_from``;
    zero matched rows means another request moved the task first.
    """
    previous = task.approval_status
    if previous not in allowed_from:
        logger.warning(
            "Rejected {} on task {} in state {} by {}",
            event, task.id, previous.value, actor.email,
        )
        raise InvalidStateTransition(
            f"Cannot {event} task {task.id} while it is {previous.value}",
        )

    stmt = (
        update(Task)
        .where(Task.id == task.id, Task.approval_status.in_(allowed_from))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        raise Conflict(f"Task {task.id} was changed by someone else, reload it")

    await session.refresh(task)
    logger.info(
        "Task {} {}: {} -> {} by {}",
        task.id, event, previous.value, task.approval_status.value, actor.email,
    )
    return task


async def submit_completion(
    session: AsyncSession,
    task_id: str,
    notes: str,
    actor: Actor,
) -> Task:
    """Assignee hands the task in; also the resubmission path after a rejection."""
    task = await task_by_id(session, task_id)
    if not PermissionChecker.is_assignee(actor, task):
        logger.warning("{} tried to submit task {} of {}", actor.email, task.id, task.assigned_to)
        raise PermissionDenied("Cannot submit a task that is not assigned to you")
    notes = _require_text(notes, "Completion notes")
    return await _transition(
        session,
        task,
        "submit completion of",
        actor,
        SUBMITTABLE,
        status=TaskStatus.COMPLETED,
        approval_status=ApprovalStatus.IN_REVIEW,
        completion_notes=notes,
    )


async def _review(
    session: AsyncSession,
    task_id: str,
    approved: bool,
    comments: Optional[str],
    actor: Actor,
    *,
    reviewer: Role,
    pending: ApprovalStatus,
    approved_status: ApprovalStatus,
) -> Task:
    require_role(actor, {reviewer})
    comments = (comments or "").strip() or None
    if not approved and comments is None:
        raise ValidationError("Comments are required when rejecting a task")
    task = await task_by_id(session, task_id)

    stage = reviewer.value
    values: Dict[str, Any] = {
        f"{stage}_reviewed_by": actor.email,
        f"{stage}_reviewed_at": _utcnow(),
        f"{stage}_comments": comments,
    }
    if approved:
        values["approval_status"] = approved_status
    else:
        values["approval_status"] = ApprovalStatus.REJECTED
        values["status"] = TaskStatus.IN_PROGRESS

    event = f"{stage} {'approve' if approved else 'reject'}"
    return await _transition(session, task, event, actor, (pending,), **values)


async def review_as_admin(
    session: AsyncSession,
    task_id: str,
    approved: bool,
    comments: Optional[str],
    actor: Actor,
) -> Task:
    return await _review(
        session,
        task_id,
        approved,
        comments,
        actor,
        reviewer=Role.ADMIN,
        pending=ApprovalStatus.IN_REVIEW,
        approved_status=ApprovalStatus.ADMIN_APPROVED,
    )


async def review_as_superadmin(
    session: AsyncSession,
    task_id: str,
    approved: bool,
    comments: Optional[str],
    actor: Actor,
) -> Task:
    return await _review(
        session,
        task_id,
        approved,
        comments,
        actor,
        reviewer=Role.SUPERADMIN,
        pending=ApprovalStatus.ADMIN_APPROVED,
        approved_status=ApprovalStatus.SUPERADMIN_APPROVED,
    )


# ---- Queries ----
async def list_tasks(
    session: AsyncSession,
    *,
    status: Optional[TaskStatus] = None,
    approval_status: Optional[ApprovalStatus] = None,
    priority: Optional[Priority] = None,
    project_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Task]:
    """Tasks in insertion order."""
    q = select(Task)
    if status is not None:
        q = q.where(Task.status == status)
    if approval_status is not None:
        q = q.where(Task.approval_status == approval_status)
    if priority is not None:
        q = q.where(Task.priority == priority)
    if project_id is not None:
        q = q.where(Task.project_id == project_id)
    if assigned_to is not None:
        q = q.where(Task.assigned_to == normalize_email(assigned_to))
    q = q.order_by(Task.created_at, Task.id).offset(offset)
    if limit is not None:
        q = q.limit(limit)
    result = await session.execute(q)
    return list(result.scalars().all())


async def tasks_assigned_to(session: AsyncSession, email: str) -> List[Task]:
    return await list_tasks(session, assigned_to=email)


async def tasks_pending_admin_review(session: AsyncSession) -> List[Task]:
    return await list_tasks(session, approval_status=ApprovalStatus.IN_REVIEW)


async def tasks_pending_superadmin_approval(session: AsyncSession) -> List[Task]:
    return await list_tasks(session, approval_status=ApprovalStatus.ADMIN_APPROVED)


def is_overdue(task: Task, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return (
        task.due_date < today
        and task.approval_status != ApprovalStatus.SUPERADMIN_APPROVED
    )


async def get_tasks_past_due_date(
    session: AsyncSession, today: Optional[date] = None,
) -> List[Task]:
    """Tasks past their due date that have not been given final approval."""
    today = today or date.today()
    q = (
        select(Task)
        .where(Task.due_date < today)
        .where(Task.approval_status != ApprovalStatus.SUPERADMIN_APPROVED)
        .order_by(Task.due_date, Task.created_at)
    )
    result = await session.execute(q)
    return list(result.scalars().all())


# ---- Simple reporting / counts ----
async def count_tasks_by_status(
    session: AsyncSession,
    *,
    assigned_to: Optional[str] = None,
) -> List[Tuple[TaskStatus, int]]:
    q = select(Task.status, func.count(Task.id)).group_by(Task.status)
    if assigned_to is not None:
        q = q.where(Task.assigned_to == normalize_email(assigned_to))
    res = await session.execute(q)
    return [(row[0], row[1]) for row in res.all()]


async def count_tasks_by_approval_status(
    session: AsyncSession,
    *,
    assigned_to: Optional[str] = None,
) -> List[Tuple[ApprovalStatus, int]]:
    q = select(Task.approval_status, func.count(Task.id)).group_by(Task.approval_status)
    if assigned_to is not None:
        q = q.where(Task.assigned_to == normalize_email(assigned_to))
    res = await session.execute(q)
    return [(row[0], row[1]) for row in res.all()]


async def get_task_stats(
    session: AsyncSession,
    *,
    assigned_to: Optional[str] = None,
) -> dict:
    """Dashboard counters, over every task or one assignee's."""
    by_status = {s.value: 0 for s in TaskStatus}
    for s, count in await count_tasks_by_status(session, assigned_to=assigned_to):
        by_status[s.value] = count

    by_approval = {s.value: 0 for s in ApprovalStatus}
    for s, count in await count_tasks_by_approval_status(
        session, assigned_to=assigned_to,
    ):
        by_approval[s.value] = count

    total = sum(by_status.values())
    completed = by_status[TaskStatus.COMPLETED.value]
    return {
        "total": total,
        "by_status": by_status,
        "by_approval_status": by_approval,
        "progress": round(completed / total * 100, 1) if total else 0.0,
    }


# ---- Display labels ----
async def resolve_assignee_name(session: AsyncSession, email: str) -> str:
    member = await get_team_member_by_email(session, email)
    return member.name if member else UNKNOWN_MEMBER


async def resolve_project_name(session: AsyncSession, project_id: Optional[str]) -> str:
    if not project_id:
        return NO_PROJECT
    try:
        project = await get_project(session, project_id)
    except NotFound:
        return UNKNOWN_PROJECT
    return project.name


async def describe_task(session: AsyncSession, task: Task) -> dict:
    """Task references resolved to labels; dangling ones fall back, never raise."""
    return {
        "assignee_name": await resolve_assignee_name(session, task.assigned_to),
        "project_name": await resolve_project_name(session, task.project_id),
        "is_overdue": is_overdue(task),
    }
