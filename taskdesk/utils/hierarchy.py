# taskdesk/utils/hierarchy.py
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, joinedload

from taskdesk.models.user import User
from taskdesk.utils.permissions import (
    RoleName,
    DEPARTMENT_LEAD_ROLES,
    is_director,
    role_key,
)

DIRECTOR_ASSIGNABLE_ROLES = frozenset({
    RoleName.GENERAL_MANAGER.value,
    RoleName.MANAGER.value,
    RoleName.DEPARTMENT_HEAD.value,
})

GENERAL_MANAGER_ASSIGNABLE_ROLES = frozenset({
    RoleName.MANAGER.value,
    RoleName.DEPARTMENT_HEAD.value,
    RoleName.PROJECT_MANAGER.value,
    RoleName.STANDALONE.value,
    RoleName.STANDALONE_ROLE.value,
    RoleName.PROJECT_MANAGER_AND_STANDALONE.value,
})

# Who a department lead may reach outside their own department
CROSS_DEPARTMENT_ROLES = frozenset({
    RoleName.MANAGER.value,
    RoleName.DEPARTMENT_HEAD.value,
    RoleName.PROJECT_MANAGER.value,
    RoleName.STANDALONE.value,
    RoleName.STANDALONE_ROLE.value,
    RoleName.PROJECT_MANAGER_AND_STANDALONE.value,
})


def department_id_of(user) -> Optional[int]:
    department = getattr(user, "department", None)
    return getattr(department, "id", None) if department is not None else None


def same_department(user, other) -> bool:
    first, second = department_id_of(user), department_id_of(other)
    return first is not None and first == second


def resolve_assignable(acting_user, candidates: Iterable) -> List:
    """Narrow the backend's candidate list to the users ``acting_user`` may assign to.

    Pure and order preserving. Managers, department heads and everyone below
    them get the candidate list unchanged, because the backend already scoped it.
    """
    candidates = list(candidates or [])
    actor_role = role_key(acting_user)

    if actor_role == RoleName.MAIN_DIRECTOR.value:
        return candidates
    if is_director(actor_role):
        return [u for u in candidates if role_key(u) in DIRECTOR_ASSIGNABLE_ROLES]
    if actor_role == RoleName.GENERAL_MANAGER.value:
        return [u for u in candidates if role_key(u) in GENERAL_MANAGER_ASSIGNABLE_ROLES]
    return candidates


def forward_candidates(acting_user, task, users: Iterable) -> List:
    """Users a task may be forwarded to: staff only, never the actor or the current holder"""
    result = []
    for user in users or []:
        if user.id == acting_user.id or user.id == task.assigned_to:
            continue
        if getattr(user, "is_active", True) is False:
            continue
        # leads of any department are never staff, so they are never candidates
        if role_key(user) != RoleName.STAFF.value:
            continue
        result.append(user)
    return result


class HierarchyManager:
    """Database-side helpers that produce the candidate lists the resolver narrows"""

    def __init__(self, db: Session):
        self.db = db

    def _active_users(self):
        return self.db.query(User).options(
            joinedload(User.role),
            joinedload(User.department),
        ).filter(User.is_active == True)  # noqa: E712

    def get_all_users(self) -> List[User]:
        return self._active_users().order_by(User.name).all()

    def get_assignable_users(self, acting_user) -> List[User]:
        """Candidates for task assignment before role-based narrowing.

        Department leads only see staff of their own department plus heads,
        managers, project managers and standalone roles of other departments.
        Everyone else gets every other active user.
        """
        users = [u for u in self.get_all_users() if u.id != acting_user.id]

        if role_key(acting_user) not in DEPARTMENT_LEAD_ROLES:
            return users

        scoped = []
        for user in users:
            user_role = role_key(user)
            if same_department(acting_user, user):
                if user_role == RoleName.STAFF.value or user_role in CROSS_DEPARTMENT_ROLES:
                    scoped.append(user)
            elif user_role in CROSS_DEPARTMENT_ROLES:
                scoped.append(user)
        return scoped

    def get_user(self, user_id: int) -> Optional[User]:
        return self._active_users().filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._active_users().filter(User.email == email).first()
