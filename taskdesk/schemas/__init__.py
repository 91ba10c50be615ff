from .role import RoleOut, RoleListResponse
from .department import DepartmentOut, DepartmentListResponse
from .user import UserOut, ActingUser, MeOut, UserListResponse
from .task import (
    CommentOut, TaskOut, TaskCreate, TaskUpdate, TaskStatusUpdate, CommentCreate,
    ForwardRequest, ApprovalAction, TaskResponse, TaskListResponse, ForwardResponse,
    TaskBuckets, TaskBoardOut, ApprovalItem, ApprovalListResponse, TaskStats,
)
