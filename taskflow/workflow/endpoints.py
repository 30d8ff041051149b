from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.dependencies import get_current_actor
from taskflow.auth.schemas import Actor
from taskflow.db.dependencies import get_db_session
from taskflow.utils import translate_service_errors
from taskflow.workflow import services
from taskflow.workflow.enums import ApprovalStatus, Priority, TaskStatus
from taskflow.workflow.models import Task
from taskflow.workflow.permissions import (
    PermissionChecker,
    require_admin,
    require_superadmin,
)
from taskflow.workflow.schemas import (
    CompletionIn,
    ProjectCreate,
    ProjectOut,
    ReviewIn,
    TaskCreate,
    TaskDetailOut,
    TaskOut,
    TaskStatsOut,
    TaskUpdate,
    TeamMemberCreate,
    TeamMemberOut,
)

router = APIRouter()


async def _detail(session: AsyncSession, task: Task) -> TaskDetailOut:
    labels = await services.describe_task(session, task)
    return TaskDetailOut(**TaskOut.model_validate(task).model_dump(), **labels)


# -----------------------
# Task endpoints
# -----------------------
@router.post(
    "/tasks",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    tags=["tasks"],
)
@translate_service_errors
async def create_task(
    payload: TaskCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    """Assign a new task. Admins and superadmins only."""
    return await services.create_task(
        session,
        actor,
        title=payload.title,
        description=payload.description,
        assigned_to=payload.assigned_to,
        due_date=payload.due_date,
        priority=payload.priority,
        project_id=payload.project_id,
    )


@router.get("/tasks", response_model=List[TaskOut], tags=["tasks"])
@translate_service_errors
async def list_tasks(
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    approval_status: Optional[ApprovalStatus] = None,
    priority: Optional[Priority] = None,
    project_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.list_tasks(
        session,
        status=task_status,
        approval_status=approval_status,
        priority=priority,
        project_id=project_id,
        assigned_to=assigned_to,
        limit=limit,
        offset=offset,
    )


@router.get("/tasks/mine", response_model=List[TaskOut], tags=["tasks"])
@translate_service_errors
async def my_tasks(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.tasks_assigned_to(session, actor.email)


@router.get("/tasks/pending-review", response_model=List[TaskOut], tags=["tasks"])
@translate_service_errors
async def pending_admin_review(
    _: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Tasks waiting on the first (admin) review."""
    return await services.tasks_pending_admin_review(session)


@router.get("/tasks/pending-approval", response_model=List[TaskOut], tags=["tasks"])
@translate_service_errors
async def pending_superadmin_approval(
    _: Actor = Depends(require_superadmin),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.tasks_pending_superadmin_approval(session)


@router.get("/tasks/overdue", response_model=List[TaskOut], tags=["tasks"])
@translate_service_errors
async def overdue_tasks(
    _: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.get_tasks_past_due_date(session)


@router.get("/tasks/stats", response_model=TaskStatsOut, tags=["tasks"])
@translate_service_errors
async def task_stats(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    """Dashboard counters: staff see their own tasks, admins see everything."""
    assigned_to = None if PermissionChecker.is_manager(actor) else actor.email
    return await services.get_task_stats(session, assigned_to=assigned_to)


@router.get("/tasks/{task_id}", response_model=TaskDetailOut, tags=["tasks"])
@translate_service_errors
async def get_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    task = await services.task_by_id(session, task_id)
    if not PermissionChecker.can_view_task(actor, task):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view tasks assigned to you",
        )
    return await _detail(session, task)


@router.patch("/tasks/{task_id}", response_model=TaskOut, tags=["tasks"])
@translate_service_errors
async def patch_task(
    task_id: str,
    payload: TaskUpdate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    data = payload.model_dump(exclude_unset=True)
    return await services.update_task(session, task_id, actor, **data)


@router.delete(
    "/tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["tasks"],
)
@translate_service_errors
async def delete_task(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    await services.delete_task(session, task_id, actor)


@router.post("/tasks/{task_id}/complete", response_model=TaskOut, tags=["workflow"])
@translate_service_errors
async def submit_completion(
    task_id: str,
    payload: CompletionIn,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    """Hand in (or resubmit) a task for review."""
    return await services.submit_completion(session, task_id, payload.notes, actor)


@router.post("/tasks/{task_id}/admin-review", response_model=TaskOut, tags=["workflow"])
@translate_service_errors
async def admin_review(
    task_id: str,
    payload: ReviewIn,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.review_as_admin(
        session, task_id, payload.approved, payload.comments, actor,
    )


@router.post(
    "/tasks/{task_id}/superadmin-review",
    response_model=TaskOut,
    tags=["workflow"],
)
@translate_service_errors
async def superadmin_review(
    task_id: str,
    payload: ReviewIn,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.review_as_superadmin(
        session, task_id, payload.approved, payload.comments, actor,
    )


# -----------------------
# Team roster endpoints
# -----------------------
@router.get("/team", response_model=List[TeamMemberOut], tags=["team"])
@translate_service_errors
async def list_team(
    doers_only: bool = False,
    _: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.list_team_members(session, doers_only=doers_only)


@router.post(
    "/team",
    response_model=TeamMemberOut,
    status_code=status.HTTP_201_CREATED,
    tags=["team"],
)
@translate_service_errors
async def create_team_member(
    payload: TeamMemberCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.create_team_member(session, actor, **payload.model_dump())


@router.get("/team/{member_id}", response_model=TeamMemberOut, tags=["team"])
@translate_service_errors
async def get_team_member(
    member_id: str,
    _: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.get_team_member(session, member_id)


@router.delete(
    "/team/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["team"],
)
@translate_service_errors
async def delete_team_member(
    member_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove from the roster. Their tasks stay, shown as "Unknown member"."""
    await services.delete_team_member(session, member_id, actor)


# -----------------------
# Project endpoints
# -----------------------
@router.get("/projects", response_model=List[ProjectOut], tags=["projects"])
@translate_service_errors
async def list_projects(
    _: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.list_projects(session)


@router.post(
    "/projects",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
    tags=["projects"],
)
@translate_service_errors
async def create_project(
    payload: ProjectCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.create_project(
        session,
        actor,
        name=payload.name,
        description=payload.description,
        color=payload.color,
    )


@router.get("/projects/{project_id}", response_model=ProjectOut, tags=["projects"])
@translate_service_errors
async def get_project(
    project_id: str,
    _: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await services.get_project(session, project_id)


@router.delete(
    "/projects/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["projects"],
)
@translate_service_errors
async def delete_project(
    project_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
):
    await services.delete_project(session, project_id, actor)
