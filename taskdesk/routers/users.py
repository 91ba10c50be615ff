# taskdesk/routers/users.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from taskdesk.database import get_db
from taskdesk.schemas.user import MeOut, UserListResponse, UserOut
from taskdesk.services.task_repository import user_snapshot
from taskdesk.utils.auth import get_acting_user
from taskdesk.utils.hierarchy import HierarchyManager, resolve_assignable

router = APIRouter(prefix="/users", tags=["users"])

ASSIGNABLE_SCOPE = "assignable-for-tasks"


@router.get("", response_model=UserListResponse)
def list_users(
    scope: str = Query("all"),
    db: Session = Depends(get_db),
    acting_user: UserOut = Depends(get_acting_user),
):
    """Active users; ``assignable-for-tasks`` narrows to who the caller may assign to"""
    hierarchy = HierarchyManager(db)
    if scope == ASSIGNABLE_SCOPE:
        candidates = [user_snapshot(u) for u in hierarchy.get_assignable_users(acting_user)]
        return UserListResponse(users=resolve_assignable(acting_user, candidates))
    if scope == "all":
        return UserListResponse(users=[user_snapshot(u) for u in hierarchy.get_all_users()])
    raise HTTPException(status_code=400, detail=f"Unsupported scope: {scope}")


@router.get("/me", response_model=MeOut)
def get_me(acting_user: UserOut = Depends(get_acting_user)):
    granted = sorted(k for k, v in acting_user.role.permissions.items() if v is True)
    return MeOut(user=acting_user, permissions=granted)
