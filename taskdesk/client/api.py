# taskdesk/client/api.py
"""
HTTP client for the TaskDesk API.

Every call returns parsed pydantic snapshots so the board can run the same
engine functions the server runs. Any non-success answer becomes ``ApiError``.
"""

import logging
from typing import List, Optional

import requests

from taskdesk.config.settings import settings
from taskdesk.schemas.department import DepartmentOut
from taskdesk.schemas.role import RoleOut
from taskdesk.schemas.task import (
    ApprovalItem, ForwardResponse, TaskBoardOut, TaskCreate, TaskOut, TaskStats, TaskUpdate,
)
from taskdesk.schemas.user import MeOut, UserOut

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


def _error_message(data, response) -> str:
    if isinstance(data, dict):
        if data.get("error"):
            return str(data["error"])
        detail = data.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list):
            return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item)
                             for item in detail)
    return f"Request failed with status {response.status_code}"


class TaskDeskAPI:
    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.API_TIMEOUT
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(f"Could not reach TaskDesk API: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok or (isinstance(data, dict) and data.get("success") is False):
            message = _error_message(data, response)
            logger.warning("%s %s -> %s: %s", method, url, response.status_code, message)
            raise ApiError(message, status_code=response.status_code, payload=data)
        return data

    # Reads

    def get_me(self) -> MeOut:
        return MeOut.model_validate(self._request("GET", "/users/me"))

    def list_tasks(self) -> List[TaskOut]:
        data = self._request("GET", "/tasks", params={"scope": "all"})
        return [TaskOut.model_validate(t) for t in data["tasks"]]

    def get_board(self, **params) -> TaskBoardOut:
        params = {k: v for k, v in params.items() if v is not None}
        return TaskBoardOut.model_validate(self._request("GET", "/tasks/board", params=params))

    def get_stats(self) -> TaskStats:
        return TaskStats.model_validate(self._request("GET", "/tasks/stats"))

    def get_task(self, task_id: int) -> TaskOut:
        return TaskOut.model_validate(self._request("GET", f"/tasks/{task_id}")["task"])

    def forward_candidates(self, task_id: int) -> List[UserOut]:
        data = self._request("GET", f"/tasks/{task_id}/forward-candidates")
        return [UserOut.model_validate(u) for u in data["users"]]

    def list_users(self, scope: str = "all") -> List[UserOut]:
        data = self._request("GET", "/users", params={"scope": scope})
        return [UserOut.model_validate(u) for u in data["users"]]

    def list_departments(self) -> List[DepartmentOut]:
        data = self._request("GET", "/departments")
        return [DepartmentOut.model_validate(d) for d in data["departments"]]

    def list_roles(self) -> List[RoleOut]:
        data = self._request("GET", "/roles")
        return [RoleOut.model_validate(r) for r in data["roles"]]

    def list_approvals(self) -> List[ApprovalItem]:
        data = self._request("GET", "/approvals")
        return [ApprovalItem.model_validate(item) for item in data["tasks"]]

    # Mutations

    def create_task(self, payload: TaskCreate) -> TaskOut:
        body = payload.model_dump(mode="json", exclude_none=True)
        return TaskOut.model_validate(self._request("POST", "/tasks", json=body)["task"])

    def update_task(self, task_id: int, payload: TaskUpdate) -> TaskOut:
        body = payload.model_dump(mode="json", exclude_unset=True)
        return TaskOut.model_validate(self._request("PUT", f"/tasks/{task_id}", json=body)["task"])

    def delete_task(self, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    def change_status(self, task_id: int, status: str) -> TaskOut:
        data = self._request("PATCH", f"/tasks/{task_id}/status", json={"status": status})
        return TaskOut.model_validate(data["task"])

    def add_comment(self, task_id: int, text: str) -> TaskOut:
        data = self._request("POST", f"/tasks/{task_id}/comments", json={"text": text})
        return TaskOut.model_validate(data["task"])

    def forward_task(self, task_id: int, recipient_ids: List[int], note: Optional[str] = None) -> ForwardResponse:
        data = self._request("POST", f"/tasks/{task_id}/forward",
                             json={"recipient_ids": list(recipient_ids), "note": note})
        return ForwardResponse.model_validate(data)

    def approve(self, task_id: int, comments: Optional[str] = None) -> TaskOut:
        data = self._request("POST", f"/approvals/{task_id}/approve", json={"comments": comments})
        return TaskOut.model_validate(data["task"])

    def reject(self, task_id: int, comments: Optional[str] = None) -> TaskOut:
        data = self._request("POST", f"/approvals/{task_id}/reject", json={"comments": comments})
        return TaskOut.model_validate(data["task"])
