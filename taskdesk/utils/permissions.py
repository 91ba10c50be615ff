# taskdesk/utils/permissions.py
"""
Role catalogue and permission lookups.

Roles are identified by a stable lowercase key (``manager``, ``departmenthead``...).
Permissions are a closed set of camelCase keys stored per role as booleans.
Anything not explicitly granted is denied.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from taskdesk.config.settings import settings


class RoleName(str, Enum):
    MAIN_DIRECTOR = "maindirector"
    DIRECTOR = "director"
    GENERAL_MANAGER = "generalmanager"
    MANAGER = "manager"
    DEPARTMENT_HEAD = "departmenthead"
    PROJECT_MANAGER = "projectmanager"
    STANDALONE = "standalone"
    STANDALONE_ROLE = "standalonerole"
    PROJECT_MANAGER_AND_STANDALONE = "projectmanagerandstandalone"
    STAFF = "staff"


# Task views
VIEW_ALL_TASKS = "viewAllTasks"
VIEW_DEPARTMENT_TASKS = "viewDepartmentTasks"
VIEW_ASSIGNED_TO_ME_TASKS = "viewAssignedToMeTasks"
VIEW_I_ASSIGNED_TASKS = "viewIAssignedTasks"
VIEW_SELF_TASKS = "viewSelfTasks"

# Task actions
CREATE_TASKS = "createTasks"
APPROVE_TASKS = "approveTasks"
APPROVE_REJECT_TASKS = "approveRejectTasks"
EDIT_ALL_TASKS = "editAllTasks"
EDIT_OWN_TASKS = "editOwnTasks"
DELETE_ALL_TASKS = "deleteAllTasks"
DELETE_OWN_TASKS = "deleteOwnTasks"

# Per-view filter toggles
FILTER_BY_DEPARTMENT = "filterByDepartment"
FILTER_BY_PRIORITY = "filterByPriority"
FILTER_BY_ROLE = "filterByRole"
FILTER_BY_USER = "filterByUser"

# Screens
VIEW_APPROVALS = "viewApprovals"
VIEW_USERS = "viewUsers"
VIEW_DEPARTMENTS = "viewDepartments"
VIEW_ROLES = "viewRoles"
VIEW_REPORTS = "viewReports"

PERMISSION_KEYS = frozenset({
    VIEW_ALL_TASKS, VIEW_DEPARTMENT_TASKS, VIEW_ASSIGNED_TO_ME_TASKS,
    VIEW_I_ASSIGNED_TASKS, VIEW_SELF_TASKS,
    CREATE_TASKS, APPROVE_TASKS, APPROVE_REJECT_TASKS,
    EDIT_ALL_TASKS, EDIT_OWN_TASKS, DELETE_ALL_TASKS, DELETE_OWN_TASKS,
    FILTER_BY_DEPARTMENT, FILTER_BY_PRIORITY, FILTER_BY_ROLE, FILTER_BY_USER,
    VIEW_APPROVALS, VIEW_USERS, VIEW_DEPARTMENTS, VIEW_ROLES, VIEW_REPORTS,
})

ROLE_LEVELS: Dict[str, int] = {
    RoleName.MAIN_DIRECTOR.value: 5,
    RoleName.DIRECTOR.value: 4,
    RoleName.GENERAL_MANAGER.value: 3,
    RoleName.MANAGER.value: 2,
    RoleName.DEPARTMENT_HEAD.value: 2,
    RoleName.PROJECT_MANAGER.value: 1,
    RoleName.STANDALONE.value: 1,
    RoleName.STANDALONE_ROLE.value: 1,
    RoleName.PROJECT_MANAGER_AND_STANDALONE.value: 1,
    RoleName.STAFF.value: 1,
}
UNKNOWN_ROLE_LEVEL = 0

# Roles that run a department and may forward work to their staff
DEPARTMENT_LEAD_ROLES = frozenset({RoleName.MANAGER.value, RoleName.DEPARTMENT_HEAD.value})


def normalize_role_name(name: Optional[str]) -> str:
    """Lowercase a role name and drop whitespace, underscores and hyphens"""
    if not name:
        return ""
    return "".join(ch for ch in str(name).lower() if not ch.isspace() and ch not in "_-")


def role_key(subject: Any) -> str:
    """Normalized role key of a role, a user, or a bare role name"""
    if subject is None:
        return ""
    if isinstance(subject, str):
        return normalize_role_name(subject)
    if hasattr(subject, "role"):
        role = subject.role
        if role is None:
            return ""
        return normalize_role_name(getattr(role, "name", role))
    return normalize_role_name(getattr(subject, "name", None))


def role_level(role_name: Optional[str]) -> int:
    """Rank used for hierarchy comparisons; unknown roles rank lowest"""
    return ROLE_LEVELS.get(normalize_role_name(role_name), UNKNOWN_ROLE_LEVEL)


def is_director(role_name: Optional[str]) -> bool:
    aliases = {normalize_role_name(alias) for alias in settings.DIRECTOR_ROLE_ALIASES}
    aliases.add(RoleName.DIRECTOR.value)
    return normalize_role_name(role_name) in aliases


def is_department_lead(subject: Any) -> bool:
    return role_key(subject) in DEPARTMENT_LEAD_ROLES


def has_permission(role: Any, key: str) -> bool:
    """True only when ``key`` is a known permission explicitly granted to ``role``"""
    if role is None or key not in PERMISSION_KEYS:
        return False
    permissions = getattr(role, "permissions", None)
    if not isinstance(permissions, Mapping):
        return False
    return permissions.get(key) is True


def user_has_permission(user: Any, key: str) -> bool:
    return has_permission(getattr(user, "role", None), key)


def clean_permissions(permissions: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
    """Drop unknown keys and anything that is not literally ``True``"""
    if not permissions:
        return {}
    return {key: value is True for key, value in permissions.items() if key in PERMISSION_KEYS}


def _grant(*keys: str) -> Dict[str, bool]:
    return {key: (key in keys) for key in sorted(PERMISSION_KEYS)}


_PERSONAL = (VIEW_ASSIGNED_TO_ME_TASKS, VIEW_I_ASSIGNED_TASKS, VIEW_SELF_TASKS,
             CREATE_TASKS, EDIT_OWN_TASKS, DELETE_OWN_TASKS, VIEW_APPROVALS)
_FILTERS = (FILTER_BY_DEPARTMENT, FILTER_BY_PRIORITY, FILTER_BY_ROLE, FILTER_BY_USER)

DEFAULT_ROLE_PERMISSIONS: Dict[str, Dict[str, bool]] = {
    RoleName.MAIN_DIRECTOR.value: _grant(
        *_PERSONAL, *_FILTERS, VIEW_ALL_TASKS, VIEW_DEPARTMENT_TASKS, APPROVE_TASKS,
        APPROVE_REJECT_TASKS, EDIT_ALL_TASKS, DELETE_ALL_TASKS, VIEW_USERS,
        VIEW_DEPARTMENTS, VIEW_ROLES, VIEW_REPORTS,
    ),
    RoleName.DIRECTOR.value: _grant(
        *_PERSONAL, *_FILTERS, VIEW_ALL_TASKS, APPROVE_TASKS, APPROVE_REJECT_TASKS,
        EDIT_ALL_TASKS, VIEW_USERS, VIEW_DEPARTMENTS, VIEW_REPORTS,
    ),
    RoleName.GENERAL_MANAGER.value: _grant(
        *_PERSONAL, *_FILTERS, VIEW_ALL_TASKS, APPROVE_TASKS, APPROVE_REJECT_TASKS,
        VIEW_USERS, VIEW_DEPARTMENTS, VIEW_REPORTS,
    ),
    RoleName.MANAGER.value: _grant(
        *_PERSONAL, FILTER_BY_PRIORITY, FILTER_BY_USER, VIEW_DEPARTMENT_TASKS,
        APPROVE_TASKS, VIEW_USERS,
    ),
    RoleName.DEPARTMENT_HEAD.value: _grant(
        *_PERSONAL, FILTER_BY_PRIORITY, FILTER_BY_USER, VIEW_DEPARTMENT_TASKS,
        APPROVE_TASKS, VIEW_USERS,
    ),
    RoleName.PROJECT_MANAGER.value: _grant(*_PERSONAL, FILTER_BY_PRIORITY),
    RoleName.STANDALONE.value: _grant(*_PERSONAL),
    RoleName.STANDALONE_ROLE.value: _grant(*_PERSONAL),
    RoleName.PROJECT_MANAGER_AND_STANDALONE.value: _grant(*_PERSONAL, FILTER_BY_PRIORITY),
    RoleName.STAFF.value: _grant(VIEW_ASSIGNED_TO_ME_TASKS, VIEW_SELF_TASKS, CREATE_TASKS,
                                 EDIT_OWN_TASKS, VIEW_APPROVALS),
}

ROLE_DISPLAY_NAMES: Dict[str, str] = {
    RoleName.MAIN_DIRECTOR.value: "Main Director",
    RoleName.DIRECTOR.value: "Director",
    RoleName.GENERAL_MANAGER.value: "General Manager",
    RoleName.MANAGER.value: "Manager",
    RoleName.DEPARTMENT_HEAD.value: "Department Head",
    RoleName.PROJECT_MANAGER.value: "Project Manager",
    RoleName.STANDALONE.value: "Standalone",
    RoleName.STANDALONE_ROLE.value: "Standalone Role",
    RoleName.PROJECT_MANAGER_AND_STANDALONE.value: "Project Manager & Standalone",
    RoleName.STAFF.value: "Staff",
}
