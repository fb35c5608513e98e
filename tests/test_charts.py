from workload.charts import hours_breakdown_chart, task_matrix_chart
from workload.metrics_employees import fold_employees
from workload.metrics_tasks import fold_tasks
from workload.settings import EMPLOYEE_TYPE_SYNONYMS


def _values(spec):
    return [row for rows in spec["datasets"].values() for row in rows]


def test_breakdown_has_one_bar_segment_per_bucket(hours_records):
    employees = fold_employees(hours_records, EMPLOYEE_TYPE_SYNONYMS)
    spec = hours_breakdown_chart(employees, top_n=1)
    rows = _values(spec)
    assert {r["employee"] for r in rows} == {"דנה"}
    assert sorted(r["work_type"] for r in rows) == ["Absence", "Expense", "Investment"]


def test_matrix_heatmap_cells(hours_records):
    spec = task_matrix_chart(fold_tasks(hours_records))
    assert len(_values(spec)) == 4
    assert spec["encoding"]["y"]["sort"] == ["123456 - Build", "Support"]


def test_empty_inputs_have_no_chart():
    assert hours_breakdown_chart([], 10) is None
    assert task_matrix_chart([]) is None
