# taskdesk/routers/departments.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskdesk.database import get_db
from taskdesk.models.department import Department
from taskdesk.schemas.department import DepartmentListResponse
from taskdesk.schemas.user import UserOut
from taskdesk.utils.auth import get_acting_user

router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("", response_model=DepartmentListResponse)
def list_departments(db: Session = Depends(get_db), acting_user: UserOut = Depends(get_acting_user)):
    return DepartmentListResponse(departments=db.query(Department).order_by(Department.name).all())
