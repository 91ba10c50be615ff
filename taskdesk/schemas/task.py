# taskdesk/schemas/task.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Dict, List, Optional

from taskdesk.models.task import TaskStatus, TaskPriority, ApprovalStatus, DurationType
from .user import UserOut


class CommentOut(BaseModel):
    id: int
    author_id: int
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    text: str
    created_at: datetime

    model_config = {
        "from_attributes": True
    }


class TaskOut(BaseModel):
    id: int
    sno: int
    task: str
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    duration_type: Optional[DurationType] = None
    duration_value: Optional[int] = None
    notes: Optional[str] = None

    # Who created it and who holds it now
    created_by: int
    creator: UserOut
    assigned_to: int
    assigned_to_email: str
    assignee: UserOut
    is_self_task: bool = False
    task_given_by: Optional[int] = None

    is_forwarded: bool = False
    forwarded_by: Optional[int] = None
    forwarded_by_email: Optional[str] = None
    forwarder_approved: bool = False

    approval_status: Optional[ApprovalStatus] = None
    comments: List[CommentOut] = []

    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class TaskCreate(BaseModel):
    task: str
    assigned_to: Optional[int] = None
    assigned_to_email: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    duration_type: Optional[DurationType] = None
    duration_value: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    is_self_task: bool = False
    task_given_by: Optional[int] = None

    @field_validator("task")
    @classmethod
    def description_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Task description is required")
        return v.strip()


class TaskUpdate(BaseModel):
    task: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    task_given_by: Optional[int] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class CommentCreate(BaseModel):
    text: str


class ForwardRequest(BaseModel):
    recipient_ids: List[int] = []
    note: Optional[str] = None


class ApprovalAction(BaseModel):
    comments: Optional[str] = None


class TaskResponse(BaseModel):
    success: bool = True
    task: TaskOut


class TaskListResponse(BaseModel):
    success: bool = True
    tasks: List[TaskOut]


class ForwardResponse(BaseModel):
    success: bool = True
    task: TaskOut
    clones: List[TaskOut] = []


class TaskBuckets(BaseModel):
    """Named views of one task snapshot; a task may sit in several buckets"""

    assigned_to_me: List[TaskOut] = []
    i_assigned: List[TaskOut] = []
    self_tasks: List[TaskOut] = []
    forwarded_by_me: List[TaskOut] = []
    all_dept_tasks: List[TaskOut] = []


class TaskBoardOut(BaseModel):
    success: bool = True
    view: Optional[str] = None
    tabs: List[str] = []
    counts: Dict[str, int] = {}
    tasks: List[TaskOut] = []


class ApprovalItem(BaseModel):
    task: TaskOut
    stage: str
    action_label: str


class ApprovalListResponse(BaseModel):
    success: bool = True
    tasks: List[ApprovalItem]


class TaskStats(BaseModel):
    success: bool = True
    total: int
    pending: int
    in_progress: int
    waiting_for_approval: int
    completed: int
    overdue: int
    upcoming: int
