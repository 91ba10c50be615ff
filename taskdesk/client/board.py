# taskdesk/client/board.py
"""
Client-side task board.

Holds the last fetched snapshot and runs the same visibility, filter and
workflow functions the server runs. The snapshot is only ever replaced
wholesale by ``refresh``; mutations never patch it locally. Every status
changing call goes through ``confirm`` first, and every failure ends up in
``notifications`` instead of propagating.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from taskdesk.client.api import ApiError, TaskDeskAPI
from taskdesk.exceptions import TaskDeskError, TaskValidationError
from taskdesk.models.task import TaskStatus
from taskdesk.schemas.department import DepartmentOut
from taskdesk.schemas.task import TaskBoardOut, TaskBuckets, TaskOut
from taskdesk.schemas.user import UserOut
from taskdesk.services.forwarding import validate_recipients
from taskdesk.services.workflow import (
    allowed_status_transitions, approval_action_label, plan_approval, plan_rejection, plan_status_change,
)
from taskdesk.utils.hierarchy import department_id_of
from taskdesk.utils.permissions import RoleName, role_key
from taskdesk.utils.task_filters import (
    TaskFilters, apply_pipeline, format_time_remaining, restrict_filters, time_remaining,
)
from taskdesk.utils.visibility import (
    TaskView, can_delete_task, classify, permitted_views, select_view, tasks_for_view, view_counts,
)

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    level: str  # success | error | info
    message: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class BoardSnapshot(BaseModel):
    me: Optional[UserOut] = None
    permissions: List[str] = []
    tasks: List[TaskOut] = []
    users: List[UserOut] = []
    departments: List[DepartmentOut] = []


class TaskBoard:
    def __init__(self, api: TaskDeskAPI, confirm: Callable[[str], bool]):
        if not callable(confirm):
            raise TypeError("confirm must be a callable returning True to proceed")
        self.api = api
        self.confirm = confirm
        self.snapshot = BoardSnapshot()
        self.buckets = TaskBuckets()
        self.notifications: List[Notification] = []

    def _notify(self, level: str, message: str) -> None:
        log = logger.warning if level == "error" else logger.info
        log("board %s: %s", level, message)
        self.notifications.append(Notification(level=level, message=message))

    def refresh(self) -> bool:
        """Refetch everything and replace the snapshot in one step"""
        try:
            me = self.api.get_me()
            tasks = self.api.list_tasks()
            users = self.api.list_users("all")
            departments = self.api.list_departments()
        except ApiError as exc:
            self._notify("error", f"Failed to load tasks: {exc.message}")
            return False

        self.snapshot = BoardSnapshot(
            me=me.user,
            permissions=me.permissions,
            tasks=tasks,
            users=users,
            departments=departments,
        )
        self.buckets = classify(me.user, tasks)
        return True

    def view(self, tab: Optional[str] = None, filters: Optional[TaskFilters] = None,
             sort_by: Optional[str] = None) -> TaskBoardOut:
        me = self.snapshot.me
        if me is None:
            return TaskBoardOut()

        tabs = permitted_views(me)
        selected = select_view(me, tab)
        strict_department = None
        if selected == TaskView.DEPARTMENT_TASKS and role_key(me) == RoleName.DEPARTMENT_HEAD.value:
            strict_department = department_id_of(me)

        tasks = apply_pipeline(
            tasks_for_view(me, self.buckets, selected),
            restrict_filters(me, filters),
            sort_by,
            self.snapshot.users,
            strict_department,
        )
        return TaskBoardOut(
            view=selected.value if selected else None,
            tabs=[t.value for t in tabs],
            counts=view_counts(me, self.buckets, tabs),
            tasks=tasks,
        )

    def find_task(self, task_id: int) -> Optional[TaskOut]:
        return next((t for t in self.snapshot.tasks if t.id == task_id), None)

    def _task_or_notify(self, task_id: int) -> Optional[TaskOut]:
        if self.snapshot.me is None:
            self._notify("error", "Board has not been loaded yet")
            return None
        task = self.find_task(task_id)
        if task is None:
            self._notify("error", "Task not found")
        return task

    def _run(self, call: Callable, success_message: str) -> bool:
        try:
            call()
        except ApiError as exc:
            self._notify("error", exc.message)
            return False
        self._notify("success", success_message)
        self.refresh()
        return True

    def _confirmed(self, message: str) -> bool:
        if self.confirm(message):
            return True
        self._notify("info", "Action cancelled")
        return False

    def change_status(self, task_id: int, new_status) -> bool:
        task = self._task_or_notify(task_id)
        if task is None:
            return False
        try:
            changes = plan_status_change(self.snapshot.me, task, new_status)
        except TaskDeskError as exc:
            self._notify("error", exc.message)
            return False

        status = changes["status"].value
        if not self._confirmed(f"Change status of task #{task.sno} to '{status}'?"):
            return False
        return self._run(lambda: self.api.change_status(task_id, status), f"Task moved to {status}")

    def forward(self, task_id: int, recipient_ids: Sequence[int], note: Optional[str] = None) -> bool:
        task = self._task_or_notify(task_id)
        if task is None:
            return False

        by_id = {u.id: u for u in self.snapshot.users}
        try:
            missing = [i for i in recipient_ids if i not in by_id]
            if missing:
                raise TaskValidationError("Selected recipient is no longer available")
            recipients = [by_id[i] for i in recipient_ids]
            validate_recipients(self.snapshot.me, task, recipients, self.snapshot.users)
        except TaskDeskError as exc:
            self._notify("error", exc.message)
            return False

        names = ", ".join(r.name for r in recipients)
        if not self._confirmed(f"Forward task #{task.sno} to {names}?"):
            return False
        return self._run(lambda: self.api.forward_task(task_id, list(recipient_ids), note),
                         f"Task forwarded to {names}")

    def approve(self, task_id: int, comments: Optional[str] = None) -> bool:
        task = self._task_or_notify(task_id)
        if task is None:
            return False
        try:
            plan_approval(self.snapshot.me, task)
        except TaskDeskError as exc:
            self._notify("error", exc.message)
            return False

        label = approval_action_label(task)
        if not self._confirmed(f"{label} task #{task.sno}?"):
            return False
        return self._run(lambda: self.api.approve(task_id, comments), f"Task #{task.sno}: {label} done")

    def reject(self, task_id: int, comments: Optional[str] = None) -> bool:
        task = self._task_or_notify(task_id)
        if task is None:
            return False
        try:
            plan_rejection(self.snapshot.me, task)
        except TaskDeskError as exc:
            self._notify("error", exc.message)
            return False

        if not self._confirmed(f"Return task #{task.sno} to {task.assignee.name}?"):
            return False
        return self._run(lambda: self.api.reject(task_id, comments), f"Task #{task.sno} returned")

    def add_comment(self, task_id: int, text: str) -> bool:
        task = self._task_or_notify(task_id)
        if task is None:
            return False
        if not text or not text.strip():
            self._notify("error", "Comment text is required")
            return False
        return self._run(lambda: self.api.add_comment(task_id, text.strip()), "Comment added")

    def delete_task(self, task_id: int) -> bool:
        task = self._task_or_notify(task_id)
        if task is None:
            return False
        if not can_delete_task(self.snapshot.me, task):
            self._notify("error", "You do not have permission to delete this task")
            return False
        if not self._confirmed(f"Delete task #{task.sno}? This cannot be undone."):
            return False
        return self._run(lambda: self.api.delete_task(task_id), f"Task #{task.sno} deleted")

    def status_options(self, task_id: int) -> List[TaskStatus]:
        """Statuses the status control should offer for this task"""
        task = self.find_task(task_id)
        if task is None or self.snapshot.me is None:
            return []
        return allowed_status_transitions(self.snapshot.me, task)

    def time_left(self, task_id: int, now: Optional[datetime] = None) -> str:
        """Countdown text for the due date column, ``-`` once the task is done"""
        task = self.find_task(task_id)
        if task is None or task.status == TaskStatus.COMPLETED:
            return format_time_remaining(None)
        return format_time_remaining(time_remaining(task.due_date, now))
