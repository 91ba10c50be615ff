from pydantic import BaseModel
from typing import List


class DepartmentOut(BaseModel):
    id: int
    name: str

    model_config = {
        "from_attributes": True
    }


class DepartmentListResponse(BaseModel):
    success: bool = True
    departments: List[DepartmentOut]
