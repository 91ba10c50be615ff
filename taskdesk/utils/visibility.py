# taskdesk/utils/visibility.py
"""
Task visibility rules.

``classify`` partitions one fetched task snapshot into the named buckets the
board offers as tabs. Buckets are computed independently, so one task can sit
in several of them. Department scoping of the fetched set happens upstream in
the repository; the only rule recomputed here is the strict department-head
override for the department view.
"""

from enum import Enum
from typing import Iterable, List, Optional

from taskdesk.models.task import TaskStatus
from taskdesk.schemas.task import TaskBuckets
from taskdesk.utils.hierarchy import department_id_of
from taskdesk.utils import permissions as perms
from taskdesk.utils.permissions import RoleName, role_key, user_has_permission


class TaskView(str, Enum):
    ASSIGNED_TO_ME = "assigned-to-me"
    I_ASSIGNED = "i-assigned"
    SELF_TASKS = "self-tasks"
    ALL_TASKS = "all-tasks"
    DEPARTMENT_TASKS = "department-tasks"
    FORWARDED_TASKS = "forwarded-tasks"


# Fallback order when the requested tab is not permitted
VIEW_PRIORITY = [
    TaskView.ASSIGNED_TO_ME,
    TaskView.I_ASSIGNED,
    TaskView.SELF_TASKS,
    TaskView.ALL_TASKS,
    TaskView.DEPARTMENT_TASKS,
    TaskView.FORWARDED_TASKS,
]

VIEW_PERMISSIONS = {
    TaskView.ASSIGNED_TO_ME: perms.VIEW_ASSIGNED_TO_ME_TASKS,
    TaskView.I_ASSIGNED: perms.VIEW_I_ASSIGNED_TASKS,
    TaskView.SELF_TASKS: perms.VIEW_SELF_TASKS,
    TaskView.ALL_TASKS: perms.VIEW_ALL_TASKS,
    TaskView.DEPARTMENT_TASKS: perms.VIEW_DEPARTMENT_TASKS,
}


def _same_email(first: Optional[str], second: Optional[str]) -> bool:
    return bool(first) and bool(second) and first.strip().lower() == second.strip().lower()


def is_forwarded_by(acting_user, task) -> bool:
    if not task.is_forwarded:
        return False
    return (_same_email(task.forwarded_by_email, acting_user.email)
            or (task.forwarded_by is not None and task.forwarded_by == acting_user.id))


def classify(acting_user, tasks: Iterable) -> TaskBuckets:
    tasks = list(tasks or [])
    me = acting_user.id
    return TaskBuckets(
        assigned_to_me=[t for t in tasks if t.assigned_to == me and t.created_by != me],
        i_assigned=[t for t in tasks if t.created_by == me and t.assigned_to != me],
        self_tasks=[t for t in tasks
                    if t.is_self_task and t.created_by == me and t.assigned_to == me],
        forwarded_by_me=[t for t in tasks if is_forwarded_by(acting_user, t)],
        all_dept_tasks=tasks,
    )


def department_tasks(acting_user, tasks: Iterable) -> List:
    """Department view source; heads never see work held outside their department"""
    tasks = list(tasks or [])
    if role_key(acting_user) != RoleName.DEPARTMENT_HEAD.value:
        return tasks
    own_department = department_id_of(acting_user)
    if own_department is None:
        return []
    return [t for t in tasks if department_id_of(t.assignee) == own_department]


def permitted_views(acting_user) -> List[TaskView]:
    views = []
    for view in VIEW_PRIORITY:
        if view == TaskView.FORWARDED_TASKS:
            allowed = perms.is_department_lead(acting_user)
        else:
            allowed = user_has_permission(acting_user, VIEW_PERMISSIONS[view])
        if allowed:
            views.append(view)
    return views


def select_view(acting_user, requested=None) -> Optional[TaskView]:
    """The requested tab if permitted, otherwise the first permitted tab"""
    allowed = permitted_views(acting_user)
    if requested is not None:
        try:
            requested = TaskView(requested)
        except ValueError:
            requested = None
    if requested in allowed:
        return requested
    return allowed[0] if allowed else None


def tasks_for_view(acting_user, buckets: TaskBuckets, view) -> List:
    if view is None:
        return []
    view = TaskView(view)
    if view == TaskView.ASSIGNED_TO_ME:
        return buckets.assigned_to_me
    if view == TaskView.I_ASSIGNED:
        return buckets.i_assigned
    if view == TaskView.SELF_TASKS:
        return buckets.self_tasks
    if view == TaskView.ALL_TASKS:
        return buckets.all_dept_tasks
    if view == TaskView.DEPARTMENT_TASKS:
        return department_tasks(acting_user, buckets.all_dept_tasks)
    return buckets.forwarded_by_me


def view_counts(acting_user, buckets: TaskBuckets, views: Iterable) -> dict:
    return {TaskView(v).value: len(tasks_for_view(acting_user, buckets, v)) for v in views}


def is_involved(acting_user, task) -> bool:
    me = acting_user.id
    return (me in (task.created_by, task.assigned_to, task.task_given_by)
            or is_forwarded_by(acting_user, task))


def can_view_task(acting_user, task) -> bool:
    if is_involved(acting_user, task):
        return True
    if user_has_permission(acting_user, perms.VIEW_ALL_TASKS):
        return True
    if user_has_permission(acting_user, perms.VIEW_DEPARTMENT_TASKS):
        own_department = department_id_of(acting_user)
        return own_department is not None and own_department in (
            department_id_of(task.assignee), department_id_of(task.creator))
    return False


def can_edit_task(acting_user, task) -> bool:
    if user_has_permission(acting_user, perms.EDIT_ALL_TASKS):
        return True
    return (task.created_by == acting_user.id
            and user_has_permission(acting_user, perms.EDIT_OWN_TASKS))


def can_delete_task(acting_user, task) -> bool:
    if user_has_permission(acting_user, perms.DELETE_ALL_TASKS):
        return True
    return (task.created_by == acting_user.id
            and user_has_permission(acting_user, perms.DELETE_OWN_TASKS))


def can_forward_task(acting_user, task) -> bool:
    """Only the current holder, when they lead a department, and only open work"""
    if task.assigned_to != acting_user.id:
        return False
    if not perms.is_department_lead(acting_user):
        return False
    return task.status not in (TaskStatus.COMPLETED, TaskStatus.WAITING_FOR_APPROVAL)
