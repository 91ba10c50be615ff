# taskdesk/services/task_repository.py
"""
Persistence side of the task engine.

Loads and stores tasks and hands the engine normalized snapshots
(``TaskOut`` / ``UserOut``) with role and department already resolved.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, aliased, joinedload, selectinload

from taskdesk.exceptions import TaskNotFoundError, TaskValidationError
from taskdesk.models.task import DurationType, Task, TaskComment, TaskStatus
from taskdesk.models.user import User
from taskdesk.schemas.task import TaskOut
from taskdesk.schemas.user import UserOut
from taskdesk.utils import permissions as perms
from taskdesk.utils.permissions import user_has_permission

logger = logging.getLogger(__name__)

_USER_LOADERS = (joinedload(User.role), joinedload(User.department))


def user_snapshot(user: User) -> UserOut:
    return UserOut.model_validate(user)


def task_snapshot(task: Task) -> TaskOut:
    return TaskOut.model_validate(task)


def due_date_from_duration(duration_type, duration_value: int, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    if DurationType(duration_type) == DurationType.DAYS:
        return now + timedelta(days=duration_value)
    return now + timedelta(hours=duration_value)


class TaskRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Task).options(
            joinedload(Task.creator).joinedload(User.role),
            joinedload(Task.creator).joinedload(User.department),
            joinedload(Task.assignee).joinedload(User.role),
            joinedload(Task.assignee).joinedload(User.department),
            selectinload(Task.comments).joinedload(TaskComment.author),
        )

    def get_task(self, task_id: int) -> Task:
        task = self._query().filter(Task.id == task_id).first()
        if not task:
            raise TaskNotFoundError("Task not found")
        return task

    def get_snapshot(self, task_id: int) -> TaskOut:
        return task_snapshot(self.get_task(task_id))

    def list_visible_tasks(self, acting_user) -> List[TaskOut]:
        """Everything the actor may see, before classification.

        ``viewAllTasks`` sees every task; ``viewDepartmentTasks`` adds work
        created or held inside the actor's department; everyone sees tasks
        they created, hold, forwarded or requested.
        """
        query = self._query()

        if not user_has_permission(acting_user, perms.VIEW_ALL_TASKS):
            me = acting_user.id
            involved = or_(
                Task.created_by == me,
                Task.assigned_to == me,
                Task.forwarded_by == me,
                Task.task_given_by == me,
            )
            department = getattr(acting_user, "department", None)
            if user_has_permission(acting_user, perms.VIEW_DEPARTMENT_TASKS) and department is not None:
                assignee = aliased(User)
                creator = aliased(User)
                query = query.join(assignee, Task.assigned_to == assignee.id) \
                    .join(creator, Task.created_by == creator.id) \
                    .filter(or_(
                        involved,
                        assignee.department_id == department.id,
                        creator.department_id == department.id,
                    ))
            else:
                query = query.filter(involved)

        tasks = query.order_by(Task.sno).all()
        return [task_snapshot(t) for t in tasks]

    def _next_sno(self) -> int:
        return (self.db.query(func.max(Task.sno)).scalar() or 0) + 1

    def create_task(self, acting_user, fields: Dict) -> TaskOut:
        fields = dict(fields)
        if fields.get("due_date") is None and fields.get("duration_value"):
            fields["due_date"] = due_date_from_duration(
                fields.get("duration_type") or DurationType.HOURS, fields["duration_value"]
            )
        if fields.get("due_date") is None:
            raise TaskValidationError("A due date or duration is required")

        db_task = Task(
            sno=self._next_sno(),
            created_by=acting_user.id,
            status=fields.pop("status", TaskStatus.PENDING),
            **fields,
        )
        self.db.add(db_task)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Task %s created by user %s for %s", db_task.sno, acting_user.id, db_task.assigned_to_email)
        return self.get_snapshot(db_task.id)

    def update_task(self, task_id: int, changes: Dict) -> TaskOut:
        task = self.get_task(task_id)
        for key, value in changes.items():
            setattr(task, key, value)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.expire_all()
        return self.get_snapshot(task_id)

    def delete_task(self, task_id: int) -> None:
        task = self.get_task(task_id)
        self.db.delete(task)
        self.db.commit()

    def add_comment(self, task_id: int, author_id: int, text: str) -> TaskOut:
        if not text or not text.strip():
            raise TaskValidationError("Comment text is required")
        self.get_task(task_id)
        self.db.add(TaskComment(task_id=task_id, author_id=author_id, text=text.strip()))
        self.db.commit()
        self.db.expire_all()
        return self.get_snapshot(task_id)

    def get_users(self, user_ids: List[int]) -> List[User]:
        if not user_ids:
            return []
        users = self.db.query(User).options(*_USER_LOADERS).filter(User.id.in_(user_ids)).all()
        by_id = {u.id: u for u in users}
        return [by_id[i] for i in user_ids if i in by_id]


class RepositoryBackend:
    """Async adapter that lets the forwarding protocol drive the repository.

    Calls run in the threadpool so the event loop stays free. They share one
    session, so they are applied one at a time.
    """

    def __init__(self, repository: TaskRepository):
        self.repository = repository
        self._lock = asyncio.Lock()

    async def _run(self, call, *args):
        async with self._lock:
            return await run_in_threadpool(call, *args)

    async def update_task(self, task_id: int, changes: Dict) -> TaskOut:
        return await self._run(self.repository.update_task, task_id, changes)

    async def create_task(self, acting_user, fields: Dict) -> TaskOut:
        return await self._run(self.repository.create_task, acting_user, fields)
