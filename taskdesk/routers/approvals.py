# taskdesk/routers/approvals.py
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from taskdesk.database import get_db
from taskdesk.schemas.task import ApprovalAction, ApprovalItem, ApprovalListResponse, TaskResponse
from taskdesk.schemas.user import UserOut
from taskdesk.services.task_repository import TaskRepository
from taskdesk.services.workflow import TaskWorkflow, approval_action_label, approval_stage
from taskdesk.utils.auth import get_acting_user

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("", response_model=ApprovalListResponse)
def list_approvals(db: Session = Depends(get_db), acting_user: UserOut = Depends(get_acting_user)):
    """Tasks waiting on this user, with the stage they are in and the button to show"""
    repo = TaskRepository(db)
    pending = TaskWorkflow(repo).pending_for(acting_user, repo.list_visible_tasks(acting_user))
    return ApprovalListResponse(tasks=[
        ApprovalItem(task=t, stage=approval_stage(t).value, action_label=approval_action_label(t))
        for t in pending
    ])


@router.post("/{task_id}/approve", response_model=TaskResponse)
def approve_task(
    task_id: int,
    payload: Optional[ApprovalAction] = Body(None),
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    comments = payload.comments if payload else None
    return TaskResponse(task=TaskWorkflow(TaskRepository(db)).approve(acting_user, task_id, comments))


@router.post("/{task_id}/reject", response_model=TaskResponse)
def reject_task(
    task_id: int,
    payload: Optional[ApprovalAction] = Body(None),
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    """Send the task back to its holder; it returns to In Progress as Returned"""
    comments = payload.comments if payload else None
    return TaskResponse(task=TaskWorkflow(TaskRepository(db)).reject(acting_user, task_id, comments))
