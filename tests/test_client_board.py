from datetime import timedelta

import pytest

from factories import OPERATIONS, SALES, make_task, make_user
from taskdesk.client.api import ApiError
from taskdesk.client.board import TaskBoard
from taskdesk.models.task import ApprovalStatus, TaskPriority, TaskStatus
from taskdesk.schemas.user import MeOut
from taskdesk.utils.task_filters import TaskFilters


class FakeApi:
    """Records mutating calls and serves a fixed snapshot"""

    def __init__(self, me, tasks, users, fail=None):
        self.me = me
        self.tasks = tasks
        self.users = users
        self.fail = fail
        self.calls = []
        self.fetches = 0

    def get_me(self):
        self.fetches += 1
        return MeOut(user=self.me, permissions=[])

    def list_tasks(self):
        return list(self.tasks)

    def list_users(self, scope="all"):
        return list(self.users)

    def list_departments(self):
        return [SALES, OPERATIONS]

    def _mutate(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise ApiError(self.fail, status_code=500)

    def change_status(self, task_id, status):
        self._mutate("change_status", task_id, status)

    def forward_task(self, task_id, recipient_ids, note=None):
        self._mutate("forward_task", task_id, recipient_ids, note)

    def approve(self, task_id, comments=None):
        self._mutate("approve", task_id, comments)

    def reject(self, task_id, comments=None):
        self._mutate("reject", task_id, comments)

    def add_comment(self, task_id, text):
        self._mutate("add_comment", task_id, text)

    def delete_task(self, task_id):
        self._mutate("delete_task", task_id)


def _accept(message):
    return True


def _board(me, tasks, users, confirm=_accept, fail=None):
    api = FakeApi(me, tasks, users, fail=fail)
    board = TaskBoard(api, confirm=confirm)
    assert board.refresh()
    return board, api


def test_board_requires_a_confirmation_callback():
    api = FakeApi(make_user("staff"), [], [])
    with pytest.raises(TypeError):
        TaskBoard(api)
    with pytest.raises(TypeError):
        TaskBoard(api, confirm=None)


def test_refresh_classifies_snapshot():
    head = make_user("departmenthead", department=SALES)
    staff = make_user("staff", department=SALES)
    boss = make_user("maindirector", department=None)
    tasks = [make_task(boss, head), make_task(head, staff)]
    board, _ = _board(head, tasks, [head, staff, boss])

    assert [t.id for t in board.buckets.assigned_to_me] == [tasks[0].id]
    assert [t.id for t in board.buckets.i_assigned] == [tasks[1].id]


def test_view_runs_pipeline_and_falls_back():
    staff = make_user("staff")
    boss = make_user("maindirector", department=None)
    high = make_task(boss, staff, priority=TaskPriority.HIGH)
    low = make_task(boss, staff, priority=TaskPriority.LOW)
    board, _ = _board(staff, [low, high], [staff, boss])

    result = board.view("all-tasks", sort_by="priority")
    assert result.view == "assigned-to-me"
    assert [t.id for t in result.tasks] == [high.id, low.id]

    # staff have no priority filter control, so the filter is ignored
    assert len(board.view(filters=TaskFilters(priority="Low")).tasks) == 2


def test_status_change_requires_confirmation():
    staff = make_user("staff")
    head = make_user("departmenthead")
    task = make_task(head, staff)
    prompts = []

    def decline(message):
        prompts.append(message)
        return False

    board, api = _board(staff, [task], [staff, head], confirm=decline)
    assert board.change_status(task.id, TaskStatus.IN_PROGRESS) is False
    assert api.calls == []
    assert prompts == [f"Change status of task #{task.sno} to 'In Progress'?"]
    assert board.notifications[-1].level == "info"


def test_confirmed_status_change_refetches():
    staff = make_user("staff")
    head = make_user("departmenthead")
    task = make_task(head, staff)
    board, api = _board(staff, [task], [staff, head])

    assert board.change_status(task.id, "In Progress") is True
    assert api.calls == [("change_status", task.id, "In Progress")]
    assert api.fetches == 2
    assert board.notifications[-1].level == "success"


def test_invalid_transition_is_stopped_locally():
    staff = make_user("staff")
    head = make_user("departmenthead")
    task = make_task(head, staff)
    board, api = _board(staff, [task], [staff, head])

    assert board.change_status(task.id, TaskStatus.COMPLETED) is False
    assert api.calls == []
    assert board.notifications[-1].level == "error"


def test_backend_failure_leaves_snapshot_untouched():
    staff = make_user("staff")
    head = make_user("departmenthead")
    task = make_task(head, staff)
    board, api = _board(staff, [task], [staff, head], fail="Server unavailable")
    before = board.snapshot

    assert board.change_status(task.id, TaskStatus.IN_PROGRESS) is False
    assert board.snapshot is before
    assert api.fetches == 1
    assert board.notifications[-1].message == "Server unavailable"


def test_failed_refresh_keeps_previous_snapshot():
    staff = make_user("staff")
    board, api = _board(staff, [], [staff])
    before = board.snapshot

    def broken():
        raise ApiError("timeout")

    api.get_me = broken
    assert board.refresh() is False
    assert board.snapshot is before
    assert "timeout" in board.notifications[-1].message


def test_forward_validates_before_calling_backend():
    head = make_user("departmenthead", department=SALES)
    boss = make_user("maindirector", department=None)
    r1, r2 = make_user("staff"), make_user("staff")
    task = make_task(boss, head)
    board, api = _board(head, [task], [head, boss, r1, r2])

    assert board.forward(task.id, []) is False
    assert board.forward(task.id, [boss.id]) is False
    assert api.calls == []

    assert board.forward(task.id, [r1.id, r2.id], "please split") is True
    assert api.calls == [("forward_task", task.id, [r1.id, r2.id], "please split")]


def test_approve_and_reject_go_through_confirmation():
    head = make_user("departmenthead")
    staff = make_user("staff")
    task = make_task(head, staff, status=TaskStatus.WAITING_FOR_APPROVAL,
                     approval_status=ApprovalStatus.PENDING)
    prompts = []

    def accept(message):
        prompts.append(message)
        return True

    board, api = _board(head, [task], [head, staff], confirm=accept)
    assert board.approve(task.id, "fine") is True
    assert board.reject(task.id, "redo") is True
    assert [c[0] for c in api.calls] == ["approve", "reject"]
    assert len(prompts) == 2


def test_comment_and_delete():
    boss = make_user("maindirector", department=None)
    staff = make_user("staff")
    task = make_task(boss, staff)

    board, api = _board(staff, [task], [staff, boss])
    assert board.add_comment(task.id, "  ") is False
    assert board.add_comment(task.id, " done ") is True
    assert board.delete_task(task.id) is False
    assert api.calls == [("add_comment", task.id, "done")]

    board, api = _board(boss, [task], [staff, boss])
    assert board.delete_task(task.id) is True
    assert api.calls == [("delete_task", task.id)]


def test_status_options_for_holder():
    staff = make_user("staff")
    head = make_user("departmenthead")
    task = make_task(head, staff, status=TaskStatus.IN_PROGRESS)
    board, _ = _board(staff, [task], [staff, head])
    assert board.status_options(task.id) == [TaskStatus.WAITING_FOR_APPROVAL]
    assert board.status_options(12345) == []


def test_time_left_counts_down_to_due_date():
    staff = make_user("staff")
    head = make_user("departmenthead")
    task = make_task(head, staff)
    done = make_task(head, staff, status=TaskStatus.COMPLETED)
    board, _ = _board(staff, [task, done], [staff, head])

    assert board.time_left(task.id, now=task.due_date - timedelta(hours=5)) == "5 hours left"
    assert board.time_left(task.id, now=task.due_date + timedelta(days=3)) == "3 days overdue"
    assert board.time_left(done.id) == "-"
    assert board.time_left(12345) == "-"
