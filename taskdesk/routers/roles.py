# taskdesk/routers/roles.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskdesk.database import get_db
from taskdesk.models.role import Role
from taskdesk.schemas.role import RoleListResponse
from taskdesk.schemas.user import UserOut
from taskdesk.utils.auth import get_acting_user

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=RoleListResponse)
def list_roles(db: Session = Depends(get_db), acting_user: UserOut = Depends(get_acting_user)):
    """Role catalogue with permission maps (unknown keys already dropped)"""
    return RoleListResponse(roles=db.query(Role).order_by(Role.id).all())
