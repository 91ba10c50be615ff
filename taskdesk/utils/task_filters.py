# taskdesk/utils/task_filters.py
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from taskdesk.models.task import TaskPriority, TaskStatus
from taskdesk.utils import permissions as perms
from taskdesk.utils.hierarchy import department_id_of

ALL = "all"

PRIORITY_ORDER = {
    TaskPriority.HIGH.value: 1,
    TaskPriority.MEDIUM.value: 2,
    TaskPriority.LOW.value: 3,
}

STATUS_ORDER = {
    TaskStatus.PENDING.value: 1,
    TaskStatus.IN_PROGRESS.value: 2,
    TaskStatus.WAITING_FOR_APPROVAL.value: 3,
    TaskStatus.COMPLETED.value: 4,
}

SORT_KEYS = ("date", "newest", "oldest", "priority", "status")


class TaskFilters(BaseModel):
    """User-selected narrowing of a view; ``all`` or empty disables a filter"""

    status: Optional[str] = ALL
    search: Optional[str] = ""
    department: Optional[str] = ALL
    priority: Optional[str] = ALL
    role: Optional[str] = ALL
    assignee: Optional[str] = ALL


# Filters a user may only apply when their role grants the matching control
FILTER_PERMISSIONS = {
    "department": perms.FILTER_BY_DEPARTMENT,
    "priority": perms.FILTER_BY_PRIORITY,
    "role": perms.FILTER_BY_ROLE,
    "assignee": perms.FILTER_BY_USER,
}


def restrict_filters(acting_user, filters: Optional[TaskFilters]) -> TaskFilters:
    """Reset every filter the actor has no control for back to ``all``"""
    filters = filters or TaskFilters()
    denied = {
        name: ALL for name, key in FILTER_PERMISSIONS.items()
        if not perms.user_has_permission(acting_user, key)
    }
    return filters.model_copy(update=denied)


def _is_unset(value) -> bool:
    return value is None or str(value).strip() == "" or str(value).strip().lower() == ALL


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str) or ""


def status_slug(status) -> str:
    return "-".join(str(_value(status)).strip().lower().split())


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


class _Directory:
    """Resolves a task's assignee to the freshest user record we hold"""

    def __init__(self, users: Optional[Iterable]):
        self.by_email = {}
        for user in users or []:
            if user.email:
                self.by_email[user.email.lower()] = user

    def assignee(self, task):
        email = (task.assigned_to_email or "").lower()
        return self.by_email.get(email) or task.assignee


def filter_by_status(tasks: List, status) -> List:
    if _is_unset(status):
        return tasks
    wanted = status_slug(status)
    return [t for t in tasks if status_slug(t.status) == wanted]


def filter_by_search(tasks: List, search) -> List:
    if search is None or not str(search).strip():
        return tasks
    query = str(search).strip().lower()
    return [
        t for t in tasks
        if _contains(t.task, query)
        or _contains(getattr(t.assignee, "name", None), query)
        or _contains(t.assigned_to_email, query)
        or _contains(getattr(t.creator, "email", None), query)
    ]


def filter_by_department(tasks: List, department, directory: _Directory) -> List:
    if _is_unset(department):
        return tasks
    wanted = str(department).strip()
    return [t for t in tasks if str(department_id_of(directory.assignee(t))) == wanted]


def filter_by_priority(tasks: List, priority) -> List:
    if _is_unset(priority):
        return tasks
    return [t for t in tasks if _value(t.priority) == _value(priority)]


def filter_by_role(tasks: List, role, directory: _Directory) -> List:
    if _is_unset(role):
        return tasks
    wanted = _value(role)
    return [t for t in tasks if getattr(getattr(directory.assignee(t), "role", None), "name", None) == wanted]


def filter_by_assignee(tasks: List, assignee) -> List:
    if _is_unset(assignee):
        return tasks
    return [t for t in tasks if t.assigned_to_email == assignee]


def _due_sort_key(dt: Optional[datetime]) -> datetime:
    # undated tasks sort last
    if dt is not None:
        return naive_utc(dt)
    return datetime.max


def naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def sort_tasks(tasks: Iterable, sort_by: Optional[str]) -> List:
    """Stable sort; an unknown key keeps the incoming order"""
    tasks = list(tasks)
    if sort_by == "date":
        return sorted(tasks, key=lambda t: _due_sort_key(t.due_date))
    if sort_by == "newest":
        return sorted(tasks, key=lambda t: naive_utc(t.created_at), reverse=True)
    if sort_by == "oldest":
        return sorted(tasks, key=lambda t: naive_utc(t.created_at))
    if sort_by == "priority":
        return sorted(tasks, key=lambda t: PRIORITY_ORDER.get(_value(t.priority), len(PRIORITY_ORDER) + 1))
    if sort_by == "status":
        return sorted(tasks, key=lambda t: STATUS_ORDER.get(_value(t.status), len(STATUS_ORDER) + 1))
    return tasks


def apply_pipeline(
    tasks: Iterable,
    filters: Optional[TaskFilters] = None,
    sort_by: Optional[str] = None,
    users: Optional[Iterable] = None,
    strict_department_id: Optional[int] = None,
) -> List:
    """Narrow a view's tasks with every active filter (AND), then sort.

    ``strict_department_id`` pins the assignee's department before any
    user-supplied department filter and cannot be switched off by ``filters``.
    """
    filters = filters or TaskFilters()
    directory = _Directory(users)

    result = list(tasks or [])
    result = filter_by_status(result, filters.status)
    result = filter_by_search(result, filters.search)
    if strict_department_id is not None:
        result = [t for t in result if department_id_of(directory.assignee(t)) == strict_department_id]
    result = filter_by_department(result, filters.department, directory)
    result = filter_by_priority(result, filters.priority)
    result = filter_by_role(result, filters.role, directory)
    result = filter_by_assignee(result, filters.assignee)
    return sort_tasks(result, sort_by)


def _now_like(dt: datetime, now: Optional[datetime]) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    if dt.tzinfo is None and now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    if dt.tzinfo is not None and now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def is_task_overdue(due_date: Optional[datetime], status, now: Optional[datetime] = None) -> bool:
    if _value(status) == TaskStatus.COMPLETED.value or due_date is None:
        return False
    return due_date < _now_like(due_date, now)


def time_remaining(due_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[Dict]:
    """Whole hours under a day, whole days otherwise, overdue or not"""
    if due_date is None:
        return None
    diff = due_date - _now_like(due_date, now)
    seconds = diff.total_seconds()
    is_overdue = seconds < 0
    hours = math.floor(abs(seconds) / 3600)
    if hours < 24:
        return {"value": hours, "unit": "hours", "is_overdue": is_overdue}
    return {"value": hours // 24, "unit": "days", "is_overdue": is_overdue}


def format_time_remaining(remaining: Optional[Dict]) -> str:
    if not remaining:
        return "-"
    suffix = "overdue" if remaining["is_overdue"] else "left"
    return f"{remaining['value']} {remaining['unit']} {suffix}"


def summarize(tasks: Iterable, now: Optional[datetime] = None) -> Dict[str, int]:
    tasks = list(tasks or [])
    counts = {
        "total": len(tasks),
        "pending": 0,
        "in_progress": 0,
        "waiting_for_approval": 0,
        "completed": 0,
        "overdue": 0,
        "upcoming": 0,
    }
    for task in tasks:
        status = _value(task.status)
        if status == TaskStatus.PENDING.value:
            counts["pending"] += 1
        elif status == TaskStatus.IN_PROGRESS.value:
            counts["in_progress"] += 1
        elif status == TaskStatus.WAITING_FOR_APPROVAL.value:
            counts["waiting_for_approval"] += 1
        elif status == TaskStatus.COMPLETED.value:
            counts["completed"] += 1

        if is_task_overdue(task.due_date, task.status, now):
            counts["overdue"] += 1
        elif task.due_date is not None and status != TaskStatus.COMPLETED.value:
            counts["upcoming"] += 1
    return counts
