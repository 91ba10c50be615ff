from pydantic import BaseModel
from typing import List, Optional

from .role import RoleOut
from .department import DepartmentOut


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    designation: Optional[str] = None
    role: RoleOut
    department: Optional[DepartmentOut] = None
    is_active: bool = True

    model_config = {
        "from_attributes": True
    }


# The user on whose behalf an engine call runs; always passed explicitly
ActingUser = UserOut


class MeOut(BaseModel):
    success: bool = True
    user: UserOut
    permissions: List[str] = []


class UserListResponse(BaseModel):
    success: bool = True
    users: List[UserOut]
