# taskdesk/services/forwarding.py
"""
Multi-recipient task forwarding.

The first recipient takes over the original task (same id, sno and comment
history). Every further recipient gets an independent copy created by the
forwarder. Copies are created concurrently once the original has been
reassigned. There is no rollback: if some copies fail, the caller gets a
``ForwardingError`` describing exactly what was applied.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pydantic import BaseModel

from taskdesk.exceptions import AuthorizationError, ForwardingError, TaskValidationError
from taskdesk.models.task import DurationType, TaskStatus
from taskdesk.schemas.task import TaskOut
from taskdesk.utils.hierarchy import forward_candidates
from taskdesk.utils.visibility import can_forward_task

logger = logging.getLogger(__name__)

FORWARD_NOTE_MARKER = "[Forwarded]"


class ForwardResult(BaseModel):
    updated_original: TaskOut
    created_clones: List[TaskOut] = []


def annotate_notes(notes: Optional[str], note: Optional[str]) -> str:
    """Append a forwarding marker to existing notes, never replacing them"""
    marker = f"{FORWARD_NOTE_MARKER}: {(note or '').strip()}".rstrip()
    if notes and notes.strip():
        return f"{notes.rstrip()}\n{marker}"
    return marker


def fresh_duration(due_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Hours from now until the due date, rounded up, never negative"""
    if due_date is None:
        return None
    if now is None:
        now = datetime.now(timezone.utc) if due_date.tzinfo else datetime.utcnow()
    hours = math.ceil((due_date - now).total_seconds() / 3600)
    return max(hours, 0)


def validate_recipients(acting_user, task, recipients: Sequence, users: Sequence) -> None:
    if not recipients:
        raise TaskValidationError("Select at least one user to forward the task to")
    if not can_forward_task(acting_user, task):
        raise AuthorizationError("You cannot forward this task")

    ids = [r.id for r in recipients]
    if len(ids) != len(set(ids)):
        raise TaskValidationError("A recipient was selected more than once")

    allowed = {u.id for u in forward_candidates(acting_user, task, users)}
    rejected = [r.email for r in recipients if r.id not in allowed]
    if rejected:
        raise TaskValidationError(
            "Tasks can only be forwarded to staff other than yourself and the current holder: "
            + ", ".join(rejected)
        )


class TaskForwarder:
    """Runs the forwarding protocol against a task backend.

    ``backend`` must provide two coroutines:
    ``update_task(task_id, changes) -> TaskOut`` and
    ``create_task(acting_user, fields) -> TaskOut``.
    """

    def __init__(self, backend):
        self.backend = backend

    def original_changes(self, acting_user, task, recipient, note: Optional[str]) -> dict:
        return {
            "assigned_to": recipient.id,
            "assigned_to_email": recipient.email,
            "notes": annotate_notes(task.notes, note),
            "is_forwarded": True,
            "forwarded_by": acting_user.id,
            "forwarded_by_email": acting_user.email,
            "forwarder_approved": False,
        }

    def clone_fields(self, acting_user, task, recipient, note: Optional[str]) -> dict:
        return {
            "task": task.task,
            "priority": task.priority,
            "due_date": task.due_date,
            "duration_type": DurationType.HOURS,
            "duration_value": fresh_duration(task.due_date),
            "notes": annotate_notes(task.notes, note),
            "assigned_to": recipient.id,
            "assigned_to_email": recipient.email,
            "is_self_task": False,
            "task_given_by": acting_user.id,
            "status": TaskStatus.PENDING,
        }

    async def forward(self, acting_user, task, recipients: Sequence, note: Optional[str] = None,
                      users: Optional[Sequence] = None) -> ForwardResult:
        """Reassign ``task`` to the first recipient and clone it for the rest.

        ``users`` is the directory the recipients are checked against; without
        it the recipients themselves are used, so only the role and identity
        rules apply.
        """
        recipients = list(recipients or [])
        validate_recipients(acting_user, task, recipients, users if users is not None else recipients)

        first, rest = recipients[0], recipients[1:]
        try:
            updated = await self.backend.update_task(
                task.id, self.original_changes(acting_user, task, first, note)
            )
        except Exception as exc:
            logger.warning("Forwarding task %s failed before anything changed: %s", task.sno, exc)
            raise ForwardingError(f"Could not forward task: {exc}") from exc

        results = await asyncio.gather(
            *(self.backend.create_task(acting_user, self.clone_fields(acting_user, task, r, note))
              for r in rest),
            return_exceptions=True,
        )

        created, failed = [], []
        for recipient, result in zip(rest, results):
            if isinstance(result, BaseException):
                logger.error("Copy of task %s for %s failed: %s", task.sno, recipient.email, result)
                failed.append(recipient.email)
            else:
                created.append(result)

        if failed:
            raise ForwardingError(
                f"Task forwarded to {first.email}, but {len(failed)} of {len(rest)} copies failed: "
                + ", ".join(failed),
                updated_original=updated,
                created_clones=created,
                failed_recipients=failed,
            )

        logger.info("Task %s forwarded by user %s to %s (%d copies)",
                    task.sno, acting_user.id, first.email, len(created))
        return ForwardResult(updated_original=updated, created_clones=created)
