from datetime import datetime, timedelta

from factories import OPERATIONS, SALES, make_task, make_user
from taskdesk.models.task import TaskPriority, TaskStatus
from taskdesk.utils.task_filters import (
    TaskFilters,
    apply_pipeline,
    format_time_remaining,
    is_task_overdue,
    restrict_filters,
    sort_tasks,
    summarize,
    time_remaining,
)

NOW = datetime(2024, 6, 1, 12, 0, 0)


def test_filters_combine_with_and():
    creator = make_user("manager")
    staff = make_user("staff")
    high_pending = make_task(creator, staff, priority=TaskPriority.HIGH, status=TaskStatus.PENDING)
    high_done = make_task(creator, staff, priority=TaskPriority.HIGH, status=TaskStatus.COMPLETED)
    low_pending = make_task(creator, staff, priority=TaskPriority.LOW, status=TaskStatus.PENDING)

    result = apply_pipeline(
        [high_pending, high_done, low_pending],
        TaskFilters(priority="High", status="pending"),
    )
    assert result == [high_pending]


def test_status_filter_accepts_slugs():
    creator = make_user("manager")
    task = make_task(creator, creator, status=TaskStatus.IN_PROGRESS)
    assert apply_pipeline([task], TaskFilters(status="in-progress")) == [task]
    assert apply_pipeline([task], TaskFilters(status="In Progress")) == [task]


def test_all_and_empty_disable_filters():
    creator = make_user("manager")
    tasks = [make_task(creator, creator) for _ in range(3)]
    assert apply_pipeline(tasks, TaskFilters()) == tasks
    assert apply_pipeline(tasks, TaskFilters(priority="", role="all", search="")) == tasks


def test_search_matches_description_and_people():
    creator = make_user("manager", email="boss@corp.test")
    alice = make_user("staff", name="Alice Smith", email="alice@corp.test")
    bob = make_user("staff", name="Bob Jones", email="bob@corp.test")
    report = make_task(creator, bob, task="Quarterly REPORT")
    other = make_task(creator, alice, task="Fix printer")

    assert apply_pipeline([report, other], TaskFilters(search="report")) == [report]
    assert apply_pipeline([report, other], TaskFilters(search="smith")) == [other]
    assert apply_pipeline([report, other], TaskFilters(search="BOSS@")) == [report, other]


def test_department_and_role_filters_use_assignee():
    creator = make_user("maindirector", department=None)
    sales_staff = make_user("staff", department=SALES)
    ops_manager = make_user("manager", department=OPERATIONS)
    first = make_task(creator, sales_staff)
    second = make_task(creator, ops_manager)

    assert apply_pipeline([first, second], TaskFilters(department=str(OPERATIONS.id))) == [second]
    assert apply_pipeline([first, second], TaskFilters(role="staff")) == [first]


def test_assignee_filter_matches_email():
    creator = make_user("manager")
    staff = make_user("staff", email="carol@corp.test")
    other = make_user("staff")
    mine = make_task(creator, staff)
    assert apply_pipeline([mine, make_task(creator, other)], TaskFilters(assignee="carol@corp.test")) == [mine]


def test_strict_department_cannot_be_widened():
    creator = make_user("maindirector", department=None)
    sales_staff = make_user("staff", department=SALES)
    ops_staff = make_user("staff", department=OPERATIONS)
    tasks = [make_task(creator, sales_staff), make_task(creator, ops_staff)]

    result = apply_pipeline(tasks, TaskFilters(department="all"), strict_department_id=SALES.id)
    assert result == [tasks[0]]


def test_sort_by_due_date_is_stable_for_ties():
    creator = make_user("manager")
    due = datetime(2024, 7, 1)
    tasks = [make_task(creator, creator, due_date=due) for _ in range(5)]
    assert sort_tasks(list(reversed(tasks)), "date") == list(reversed(tasks))


def test_undated_tasks_sort_last():
    creator = make_user("manager")
    undated = make_task(creator, creator, due_date=None)
    dated = make_task(creator, creator, due_date=datetime(2024, 7, 1))
    assert sort_tasks([undated, dated], "date") == [dated, undated]


def test_priority_and_status_orders():
    creator = make_user("manager")
    low = make_task(creator, creator, priority=TaskPriority.LOW)
    high = make_task(creator, creator, priority=TaskPriority.HIGH)
    medium = make_task(creator, creator, priority=TaskPriority.MEDIUM)
    assert sort_tasks([low, medium, high], "priority") == [high, medium, low]

    done = make_task(creator, creator, status=TaskStatus.COMPLETED)
    waiting = make_task(creator, creator, status=TaskStatus.WAITING_FOR_APPROVAL)
    pending = make_task(creator, creator, status=TaskStatus.PENDING)
    assert sort_tasks([done, waiting, pending], "status") == [pending, waiting, done]


def test_newest_and_oldest():
    creator = make_user("manager")
    older = make_task(creator, creator, created_at=datetime(2024, 1, 1))
    newer = make_task(creator, creator, created_at=datetime(2024, 2, 1))
    assert sort_tasks([older, newer], "newest") == [newer, older]
    assert sort_tasks([newer, older], "oldest") == [older, newer]


def test_unknown_sort_keeps_order():
    creator = make_user("manager")
    tasks = [make_task(creator, creator) for _ in range(3)]
    assert sort_tasks(tasks, "colour") == tasks


def test_overdue_only_for_open_tasks():
    yesterday = NOW - timedelta(days=1)
    assert is_task_overdue(yesterday, TaskStatus.IN_PROGRESS, now=NOW)
    assert not is_task_overdue(yesterday, TaskStatus.COMPLETED, now=NOW)
    assert not is_task_overdue(NOW + timedelta(hours=1), TaskStatus.PENDING, now=NOW)
    assert not is_task_overdue(None, TaskStatus.PENDING, now=NOW)


def test_time_remaining_units():
    assert time_remaining(NOW + timedelta(hours=5, minutes=30), now=NOW) == {
        "value": 5, "unit": "hours", "is_overdue": False}
    assert time_remaining(NOW + timedelta(days=3, hours=2), now=NOW) == {
        "value": 3, "unit": "days", "is_overdue": False}
    overdue = time_remaining(NOW - timedelta(days=2), now=NOW)
    assert overdue == {"value": 2, "unit": "days", "is_overdue": True}
    assert format_time_remaining(overdue) == "2 days overdue"
    assert format_time_remaining(None) == "-"


def test_summarize_counts():
    creator = make_user("manager")
    tasks = [
        make_task(creator, creator, status=TaskStatus.PENDING, due_date=NOW - timedelta(days=1)),
        make_task(creator, creator, status=TaskStatus.IN_PROGRESS, due_date=NOW + timedelta(days=1)),
        make_task(creator, creator, status=TaskStatus.COMPLETED, due_date=NOW - timedelta(days=1)),
    ]
    counts = summarize(tasks, now=NOW)
    assert counts["total"] == 3
    assert counts["pending"] == 1
    assert counts["in_progress"] == 1
    assert counts["completed"] == 1
    assert counts["overdue"] == 1
    assert counts["upcoming"] == 1


def test_restrict_filters_resets_uncontrolled_filters():
    staff = make_user("staff")
    filters = TaskFilters(status="pending", search="x", department="1", priority="High", role="staff")
    restricted = restrict_filters(staff, filters)
    assert restricted.status == "pending"
    assert restricted.search == "x"
    assert restricted.department == "all"
    assert restricted.priority == "all"
    assert restricted.role == "all"

    director = make_user("maindirector", department=None)
    assert restrict_filters(director, filters) == filters
