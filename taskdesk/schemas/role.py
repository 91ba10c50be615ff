from pydantic import BaseModel, field_validator
from typing import Dict, List, Optional

from taskdesk.utils.permissions import clean_permissions, normalize_role_name


class RoleOut(BaseModel):
    id: Optional[int] = None
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    permissions: Dict[str, bool] = {}

    model_config = {
        "from_attributes": True
    }

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v):
        return normalize_role_name(v)

    @field_validator("permissions", mode="before")
    @classmethod
    def known_permissions_only(cls, v):
        return clean_permissions(v)


class RoleListResponse(BaseModel):
    success: bool = True
    roles: List[RoleOut]
