from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import altair as alt
import pandas as pd

from workload.models import EmployeeSummary, TaskSummary

alt.data_transformers.disable_max_rows()

WORK_TYPE_BUCKETS = (
    ("Investment", "investment_hours"),
    ("Expense", "expense_hours"),
    ("Absence", "absence_hours"),
)


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    return chart.to_dict()


def hours_breakdown_chart(employees: Sequence[EmployeeSummary], top_n: int) -> Optional[Dict[str, Any]]:
    """Stacked bar of each employee's hours per work-type bucket (first `top_n` employees)."""
    top = list(employees)[:top_n]
    if not top:
        return None
    long_df = pd.DataFrame(
        [
            {"employee": e.name, "work_type": label, "hours": getattr(e, col)}
            for e in top
            for label, col in WORK_TYPE_BUCKETS
        ]
    )
    bar = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("hours:Q", stack="zero", title="Hours"),
            y=alt.Y("employee:N", sort="-x", title=None),
            color=alt.Color("work_type:N", title="Work Type"),
            tooltip=["employee", "work_type", alt.Tooltip("hours:Q", format=",.1f")],
        )
    )
    return to_vega_spec(bar)


def task_matrix_chart(matrix: Sequence[TaskSummary]) -> Optional[Dict[str, Any]]:
    """Task x employee heatmap of reported hours, rows in matrix order."""
    cells = [
        {"task": t.name, "employee": e.name, "hours": e.hours, "work_type": t.work_type.value}
        for t in matrix
        for e in t.employees
    ]
    if not cells:
        return None
    heat = (
        alt.Chart(pd.DataFrame(cells))
        .mark_rect()
        .encode(
            x=alt.X("employee:N", title="Employee"),
            y=alt.Y("task:N", title="Task", sort=[t.name for t in matrix]),
            color=alt.Color("hours:Q", title="Hours", scale=alt.Scale(scheme="blues")),
            tooltip=["task", "employee", "work_type", alt.Tooltip("hours:Q", format=",.1f")],
        )
    )
    return to_vega_spec(heat)
