from tests.conftest import hebrew_row
from workload.data import normalize_hours, prepare_context
from workload.filters import DashboardFilters
from workload.metrics_tasks import (
    compute_task_detail,
    compute_tasks,
    fold_tasks,
    task_by_name,
    task_kpis,
    task_matrix,
    tasks_grouped,
)
from workload.models import TaskSummary, WorkType


def _task(name, count, hours=1.0):
    return TaskSummary(name=name, employee_count=count, total_hours=hours, work_type=WorkType.OTHER)


def test_matrix_cap_keeps_highest_counts_in_order():
    tasks = [_task("c", 1), _task("a", 5), _task("b", 3)]
    assert [t.name for t in task_matrix(tasks, 2)] == ["a", "b"]


def test_matrix_ties_keep_first_seen_order():
    tasks = [_task("x", 2), _task("y", 2), _task("z", 3)]
    assert [t.name for t in task_matrix(tasks)] == ["z", "x", "y"]


def test_fold_tasks(hours_records):
    tasks = fold_tasks(hours_records)
    assert [t.name for t in tasks] == ["123456 - Build", "Support"]
    build = task_by_name(tasks, "123456 - Build")
    assert build.employee_count == 2
    assert build.total_hours == 17
    assert build.work_type == WorkType.INVESTMENT
    assert [e.name for e in build.employees] == ["Avi", "דנה"]
    assert [e.hours for e in build.employees] == [12, 5]
    assert [t.name for t in tasks_grouped(tasks)] == ["123456 - Build", "Support"]


def test_last_classified_work_type_wins(settings):
    rows = [
        hebrew_row(**{"משימה": "Mixed", "פעילות.סיווג חשבונאי": "השקעה"}),
        hebrew_row(**{"משימה": "Mixed", "פעילות.סיווג חשבונאי": "תחזוקה"}),
        hebrew_row(**{"משימה": "Mixed", "פעילות.סיווג חשבונאי": "הדרכה"}),
    ]
    [task] = fold_tasks(normalize_hours(rows, settings))
    assert task.work_type == WorkType.EXPENSE
    assert task.employee_count == 1
    assert task.total_hours == 15


def test_empty_tasks_are_skipped(settings):
    rows = [hebrew_row(**{"משימה": ""})]
    assert fold_tasks(normalize_hours(rows, settings)) == []


def test_task_kpis():
    tasks = [_task("a", 5), _task("b", 4), _task("c", 1)]
    assert task_kpis(tasks, 4) == {"total": 3, "overloaded": 2, "investment": 0, "expense": 0}


def test_compute_tasks_and_detail(dataset):
    filters = DashboardFilters(query="avi", top_n=1)
    ctx = prepare_context(filters, dataset)
    payload = compute_tasks(filters, ctx)
    assert len(payload["matrix"]) == 1
    assert [t["name"] for t in payload["tasks"]] == ["123456 - Build", "Support"]
    assert payload["matrix_chart"] is not None

    detail = compute_task_detail(ctx, "Support")
    assert detail["total_hours"] == 5
    assert detail["work_type"] == WorkType.EXPENSE
    assert compute_task_detail(ctx, "missing") is None
