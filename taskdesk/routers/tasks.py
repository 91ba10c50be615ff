# taskdesk/routers/tasks.py
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from taskdesk.database import get_db
from taskdesk.exceptions import AuthorizationError, TaskValidationError
from taskdesk.models.task import DurationType
from taskdesk.schemas.task import (
    CommentCreate, ForwardRequest, ForwardResponse, TaskBoardOut, TaskCreate, TaskListResponse,
    TaskResponse, TaskStats, TaskStatusUpdate, TaskUpdate,
)
from taskdesk.schemas.user import UserListResponse, UserOut
from taskdesk.services.forwarding import TaskForwarder, fresh_duration
from taskdesk.services.task_repository import RepositoryBackend, TaskRepository, user_snapshot
from taskdesk.services.workflow import TaskWorkflow
from taskdesk.utils import permissions as perms
from taskdesk.utils.auth import get_acting_user
from taskdesk.utils.hierarchy import HierarchyManager, department_id_of, forward_candidates, resolve_assignable
from taskdesk.utils.task_filters import TaskFilters, apply_pipeline, naive_utc, restrict_filters, summarize
from taskdesk.utils.visibility import (
    TaskView, can_delete_task, can_edit_task, can_view_task, classify, permitted_views,
    select_view, tasks_for_view, view_counts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _visible_task(repo: TaskRepository, acting_user: UserOut, task_id: int):
    task = repo.get_snapshot(task_id)
    if not can_view_task(acting_user, task):
        raise AuthorizationError("You do not have access to this task")
    return task


def _directory(db: Session):
    return [user_snapshot(u) for u in HierarchyManager(db).get_all_users()]


@router.get("", response_model=TaskListResponse)
def list_tasks(
    scope: str = Query("all"),
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    """The visible task set, already narrowed by role and department"""
    if scope != "all":
        raise HTTPException(status_code=400, detail=f"Unsupported scope: {scope}")
    return TaskListResponse(tasks=TaskRepository(db).list_visible_tasks(acting_user))


@router.get("/board", response_model=TaskBoardOut)
def task_board(
    view: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    department: Optional[str] = None,
    priority: Optional[str] = None,
    role: Optional[str] = None,
    assignee: Optional[str] = None,
    sort_by: Optional[str] = None,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    tasks = TaskRepository(db).list_visible_tasks(acting_user)
    users = _directory(db)

    buckets = classify(acting_user, tasks)
    tabs = permitted_views(acting_user)
    selected = select_view(acting_user, view)

    filters = TaskFilters(
        status=status_filter or "all",
        search=search or "",
        department=department or "all",
        priority=priority or "all",
        role=role or "all",
        assignee=assignee or "all",
    )
    strict_department = None
    if selected == TaskView.DEPARTMENT_TASKS and perms.role_key(acting_user) == perms.RoleName.DEPARTMENT_HEAD.value:
        strict_department = department_id_of(acting_user)

    result = apply_pipeline(
        tasks_for_view(acting_user, buckets, selected),
        restrict_filters(acting_user, filters),
        sort_by,
        users,
        strict_department,
    )
    return TaskBoardOut(
        view=selected.value if selected else None,
        tabs=[t.value for t in tabs],
        counts=view_counts(acting_user, buckets, tabs),
        tasks=result,
    )


@router.get("/stats", response_model=TaskStats)
def task_stats(db: Session = Depends(get_db), acting_user: UserOut = Depends(get_acting_user)):
    return TaskStats(**summarize(TaskRepository(db).list_visible_tasks(acting_user)))


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(task_id: int, db: Session = Depends(get_db), acting_user: UserOut = Depends(get_acting_user)):
    return TaskResponse(task=_visible_task(TaskRepository(db), acting_user, task_id))


@router.get("/{task_id}/forward-candidates", response_model=UserListResponse)
def get_forward_candidates(
    task_id: int,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    task = _visible_task(TaskRepository(db), acting_user, task_id)
    return UserListResponse(users=forward_candidates(acting_user, task, _directory(db)))


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    if not perms.user_has_permission(acting_user, perms.CREATE_TASKS):
        raise AuthorizationError("You do not have permission to create tasks")

    hierarchy = HierarchyManager(db)
    is_self_task = payload.is_self_task
    if is_self_task:
        assignee = acting_user
    else:
        if payload.assigned_to is not None:
            record = hierarchy.get_user(payload.assigned_to)
        elif payload.assigned_to_email:
            record = hierarchy.get_user_by_email(payload.assigned_to_email.strip())
        else:
            raise TaskValidationError("Please select a user to assign the task to")
        if record is None:
            raise TaskValidationError("Assigned user not found or inactive")

        assignee = user_snapshot(record)
        if assignee.id == acting_user.id:
            is_self_task = True
        else:
            allowed = resolve_assignable(
                acting_user, [user_snapshot(u) for u in hierarchy.get_assignable_users(acting_user)]
            )
            if assignee.id not in {u.id for u in allowed}:
                raise AuthorizationError(f"You cannot assign tasks to {assignee.name}")

    due_date = payload.due_date
    duration_type = payload.duration_type
    duration_value = payload.duration_value
    if due_date is not None:
        due_date = naive_utc(due_date)
        if due_date < datetime.utcnow():
            raise TaskValidationError("Target date/time cannot be in the past")
        duration_type = DurationType.HOURS
        duration_value = fresh_duration(due_date)
    elif not duration_value:
        raise TaskValidationError("A target date/time or duration is required")

    task = TaskRepository(db).create_task(acting_user, {
        "task": payload.task,
        "priority": payload.priority,
        "due_date": due_date,
        "duration_type": duration_type or DurationType.HOURS,
        "duration_value": duration_value,
        "notes": payload.notes,
        "assigned_to": assignee.id,
        "assigned_to_email": assignee.email,
        "is_self_task": is_self_task,
        "task_given_by": payload.task_given_by,
    })
    return TaskResponse(task=task)


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    repo = TaskRepository(db)
    task = repo.get_snapshot(task_id)
    if not can_edit_task(acting_user, task):
        raise AuthorizationError("You do not have permission to edit this task")

    changes = payload.model_dump(exclude_unset=True)
    # required columns cannot be cleared
    if "priority" in changes and changes["priority"] is None:
        changes.pop("priority")
    if "task" in changes:
        if not changes["task"] or not changes["task"].strip():
            raise TaskValidationError("Task description is required")
        changes["task"] = changes["task"].strip()
    if changes.get("due_date") is not None:
        changes["due_date"] = naive_utc(changes["due_date"])

    updated = repo.update_task(task_id, changes)
    logger.info("Task %s edited by user %s (%s)", task.sno, acting_user.id, ", ".join(sorted(changes)))
    return TaskResponse(task=updated)


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), acting_user: UserOut = Depends(get_acting_user)):
    repo = TaskRepository(db)
    task = repo.get_snapshot(task_id)
    if not can_delete_task(acting_user, task):
        raise AuthorizationError("You do not have permission to delete this task")
    repo.delete_task(task_id)
    logger.info("Task %s deleted by user %s", task.sno, acting_user.id)
    return {"success": True, "message": "Task deleted successfully"}


@router.patch("/{task_id}/status", response_model=TaskResponse)
def update_task_status(
    task_id: int,
    payload: TaskStatusUpdate,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    workflow = TaskWorkflow(TaskRepository(db))
    return TaskResponse(task=workflow.change_status(acting_user, task_id, payload.status))


@router.post("/{task_id}/comments", response_model=TaskResponse)
def add_comment(
    task_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    repo = TaskRepository(db)
    task = _visible_task(repo, acting_user, task_id)
    updated = repo.add_comment(task_id, acting_user.id, payload.text)
    logger.info("Comment added to task %s by user %s", task.sno, acting_user.id)
    return TaskResponse(task=updated)


@router.post("/{task_id}/forward", response_model=ForwardResponse)
async def forward_task(
    task_id: int,
    payload: ForwardRequest,
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    repo = TaskRepository(db)
    task = await run_in_threadpool(_visible_task, repo, acting_user, task_id)

    users = await run_in_threadpool(_directory, db)
    by_id = {u.id: u for u in users}
    missing = [i for i in payload.recipient_ids if i not in by_id]
    if missing:
        raise TaskValidationError("Recipient not found or inactive: " + ", ".join(str(i) for i in missing))
    recipients = [by_id[i] for i in payload.recipient_ids]

    result = await TaskForwarder(RepositoryBackend(repo)).forward(
        acting_user, task, recipients, payload.note, users=users
    )
    return ForwardResponse(task=result.updated_original, clones=result.created_clones)
