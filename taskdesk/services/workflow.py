# taskdesk/services/workflow.py
"""
Status and approval state machine.

    Pending -> In Progress -> Waiting For Approval -> Completed

``Waiting For Approval`` is left only through approve/reject. A task whose
holder answers to nobody (a plain self-task, or work held by the main
director) skips the gate and may go straight from In Progress to Completed.

Forwarded tasks need two approvals: the forwarder verifies first, then the
original approver signs off. The ``plan_*`` functions are pure; they return
the field changes to persist or raise.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from taskdesk.exceptions import AuthorizationError, InvalidTransitionError, TaskValidationError
from taskdesk.models.task import ApprovalStatus, TaskStatus
from taskdesk.utils import permissions as perms
from taskdesk.utils.permissions import RoleName, role_key, role_level, user_has_permission
from taskdesk.utils.visibility import can_view_task, is_forwarded_by

logger = logging.getLogger(__name__)

APPROVE_LABEL = "Approve"
VERIFY_LABEL = "Verify & Sent Approval"


class ApprovalStage(str, Enum):
    NEEDS_APPROVAL = "needs-approval"
    NEEDS_FORWARDER_VERIFICATION = "needs-forwarder-verification"
    APPROVED = "approved"
    RETURNED = "returned"


# Moves the holder may pick directly; Completed is filtered by requires_approval
DIRECT_TRANSITIONS = {
    TaskStatus.PENDING: [TaskStatus.IN_PROGRESS],
    TaskStatus.IN_PROGRESS: [TaskStatus.WAITING_FOR_APPROVAL, TaskStatus.COMPLETED],
    TaskStatus.WAITING_FOR_APPROVAL: [],
    TaskStatus.COMPLETED: [],
}


def requires_approval(task) -> bool:
    """Whether someone above the holder has to sign the task off"""
    if task.is_forwarded:
        return True
    if task.is_self_task and task.created_by == task.assigned_to:
        return False
    return role_key(task.assignee) != RoleName.MAIN_DIRECTOR.value


def approval_stage(task) -> Optional[ApprovalStage]:
    if task.approval_status == ApprovalStatus.APPROVED:
        return ApprovalStage.APPROVED
    if task.status == TaskStatus.WAITING_FOR_APPROVAL:
        if task.is_forwarded and not task.forwarder_approved:
            return ApprovalStage.NEEDS_FORWARDER_VERIFICATION
        return ApprovalStage.NEEDS_APPROVAL
    if task.approval_status == ApprovalStatus.RETURNED:
        return ApprovalStage.RETURNED
    return None


def approval_action_label(task) -> str:
    if approval_stage(task) == ApprovalStage.NEEDS_FORWARDER_VERIFICATION:
        return VERIFY_LABEL
    return APPROVE_LABEL


def can_change_status(acting_user, task) -> bool:
    return (task.assigned_to == acting_user.id
            or user_has_permission(acting_user, perms.EDIT_ALL_TASKS))


def allowed_status_transitions(acting_user, task) -> List[TaskStatus]:
    if not can_change_status(acting_user, task):
        return []
    gated = requires_approval(task)
    allowed = []
    for target in DIRECT_TRANSITIONS.get(TaskStatus(task.status), []):
        if target == TaskStatus.COMPLETED and gated:
            continue
        if target == TaskStatus.WAITING_FOR_APPROVAL and not gated:
            continue
        allowed.append(target)
    return allowed


def _is_final_approver(acting_user, task) -> bool:
    """Sign-off after the holder submits, or after the forwarder has verified.

    A forwarder never signs off work they verified themselves. Approvers
    reached through permissions must see the task and outrank its holder.
    """
    if acting_user.id == task.assigned_to:
        return False
    if is_forwarded_by(acting_user, task):
        return False
    if acting_user.id in (task.created_by, task.task_given_by):
        return True
    if not (user_has_permission(acting_user, perms.APPROVE_TASKS)
            or user_has_permission(acting_user, perms.APPROVE_REJECT_TASKS)):
        return False
    if not can_view_task(acting_user, task):
        return False
    return role_level(role_key(acting_user)) > role_level(role_key(task.assignee))


def can_approve(acting_user, task) -> bool:
    stage = approval_stage(task)
    if stage == ApprovalStage.NEEDS_FORWARDER_VERIFICATION:
        return is_forwarded_by(acting_user, task) and acting_user.id != task.assigned_to
    if stage == ApprovalStage.NEEDS_APPROVAL:
        return _is_final_approver(acting_user, task)
    return False


def can_reject(acting_user, task) -> bool:
    return can_approve(acting_user, task)


def plan_status_change(acting_user, task, new_status) -> Dict:
    try:
        new_status = TaskStatus(new_status)
    except ValueError:
        raise TaskValidationError(f"Unknown status '{new_status}'")

    if not can_change_status(acting_user, task):
        raise AuthorizationError("Only the task holder can change its status")
    if task.status == TaskStatus.WAITING_FOR_APPROVAL:
        raise InvalidTransitionError("Task is waiting for approval; it can only be approved or rejected")
    if new_status not in allowed_status_transitions(acting_user, task):
        raise InvalidTransitionError(
            f"Cannot move task from '{TaskStatus(task.status).value}' to '{new_status.value}'"
        )

    changes = {"status": new_status}
    if new_status == TaskStatus.WAITING_FOR_APPROVAL:
        changes["approval_status"] = ApprovalStatus.PENDING
        changes["forwarder_approved"] = False
    elif new_status == TaskStatus.COMPLETED:
        changes["completed_at"] = datetime.utcnow()
    return changes


def plan_approval(acting_user, task) -> Dict:
    stage = approval_stage(task)
    if stage not in (ApprovalStage.NEEDS_APPROVAL, ApprovalStage.NEEDS_FORWARDER_VERIFICATION):
        raise InvalidTransitionError("Task is not waiting for approval")
    if not can_approve(acting_user, task):
        raise AuthorizationError("You are not allowed to approve this task")

    if stage == ApprovalStage.NEEDS_FORWARDER_VERIFICATION:
        return {"forwarder_approved": True}
    return {
        "status": TaskStatus.COMPLETED,
        "approval_status": ApprovalStatus.APPROVED,
        "completed_at": datetime.utcnow(),
    }


def plan_rejection(acting_user, task) -> Dict:
    if task.status != TaskStatus.WAITING_FOR_APPROVAL:
        raise InvalidTransitionError("Task is not waiting for approval")
    if not can_reject(acting_user, task):
        raise AuthorizationError("You are not allowed to reject this task")
    return {
        "status": TaskStatus.IN_PROGRESS,
        "approval_status": ApprovalStatus.RETURNED,
        "forwarder_approved": False,
        "completed_at": None,
    }


class TaskWorkflow:
    """Applies planned transitions through the task repository"""

    def __init__(self, repository):
        self.repository = repository

    @staticmethod
    def _check_visible(acting_user, task):
        if not can_view_task(acting_user, task):
            raise AuthorizationError("You do not have access to this task")

    def change_status(self, acting_user, task_id: int, new_status):
        task = self.repository.get_snapshot(task_id)
        changes = plan_status_change(acting_user, task, new_status)
        updated = self.repository.update_task(task_id, changes)
        logger.info("Task %s moved %s -> %s by user %s",
                    task.sno, TaskStatus(task.status).value, changes["status"].value, acting_user.id)
        return updated

    def approve(self, acting_user, task_id: int, comments: Optional[str] = None):
        task = self.repository.get_snapshot(task_id)
        self._check_visible(acting_user, task)
        changes = plan_approval(acting_user, task)
        if comments and comments.strip():
            self.repository.add_comment(task_id, acting_user.id, comments.strip())
        updated = self.repository.update_task(task_id, changes)
        if "status" in changes:
            logger.info("Task %s approved by user %s", task.sno, acting_user.id)
        else:
            logger.info("Task %s verified by forwarder %s; awaiting final approval",
                        task.sno, acting_user.id)
        return updated

    def reject(self, acting_user, task_id: int, comments: Optional[str] = None):
        task = self.repository.get_snapshot(task_id)
        self._check_visible(acting_user, task)
        changes = plan_rejection(acting_user, task)
        if comments and comments.strip():
            self.repository.add_comment(task_id, acting_user.id, comments.strip())
        updated = self.repository.update_task(task_id, changes)
        logger.info("Task %s returned to user %s by user %s",
                    task.sno, task.assigned_to, acting_user.id)
        return updated

    def pending_for(self, acting_user, tasks) -> List:
        return [t for t in tasks if can_approve(acting_user, t)]
