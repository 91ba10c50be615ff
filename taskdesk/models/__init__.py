from .role import Role
from .department import Department
from .user import User
from .task import Task, TaskComment, TaskStatus, TaskPriority, ApprovalStatus, DurationType
