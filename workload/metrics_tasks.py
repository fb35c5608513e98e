from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from workload.charts import task_matrix_chart
from workload.filters import DashboardFilters
from workload.models import (
    DatasetNotLoadedError,
    HoursRecord,
    TaskEmployee,
    TaskSummary,
    WorkType,
    hours_frame,
    to_payload,
    to_payloads,
)
from workload.query import search_tasks, sort_records


def fold_tasks(hours: Sequence[HoursRecord]) -> List[TaskSummary]:
    """Fold hours into one summary per exact task string, in first-seen order.

    The displayed work type is the last non-OTHER classification seen for the
    task, so later rows override earlier ones.
    """
    df = hours_frame(hours)
    df = df[df["task"] != ""].copy()
    if df.empty:
        return []
    df["employee_key"] = df["employee_id"].where(df["employee_id"] != "", df["employee_name"])

    totals = df.groupby("task", sort=False).agg(
        total_hours=("hours", "sum"),
        employee_count=("employee_key", "nunique"),
    )
    classified = df[df["work_type"] != WorkType.OTHER.value]
    work_types = classified.groupby("task", sort=False)["work_type"].last()
    per_employee = df.groupby(["task", "employee_key"], sort=False).agg(
        id=("employee_id", "first"),
        name=("employee_name", "first"),
        hours=("hours", "sum"),
    )

    breakdown: Dict[str, List[TaskEmployee]] = {}
    for (task, _), row in per_employee.iterrows():
        breakdown.setdefault(task, []).append(
            TaskEmployee(id=str(row["id"]), name=str(row["name"]), hours=float(row["hours"]))
        )

    summaries: List[TaskSummary] = []
    for task, row in totals.iterrows():
        employees = sorted(breakdown.get(task, []), key=lambda e: e.hours, reverse=True)
        summaries.append(
            TaskSummary(
                name=str(task),
                employee_count=int(row["employee_count"]),
                total_hours=float(row["total_hours"]),
                work_type=WorkType(work_types.get(task, WorkType.OTHER.value)),
                employees=tuple(employees),
            )
        )
    return summaries


def task_matrix(tasks: Sequence[TaskSummary], max_tasks: int = 20) -> List[TaskSummary]:
    """Tasks by distinct-employee count (descending), capped for overview rendering."""
    ranked = sorted(tasks, key=lambda t: t.employee_count, reverse=True)
    return ranked[: max(0, int(max_tasks))]


def tasks_grouped(tasks: Sequence[TaskSummary]) -> List[TaskSummary]:
    return sorted(tasks, key=lambda t: t.total_hours, reverse=True)


def task_by_name(tasks: Sequence[TaskSummary], name: str) -> Optional[TaskSummary]:
    for task in tasks:
        if task.name == name:
            return task
    return None


def task_kpis(tasks: Sequence[TaskSummary], overloaded_at: int = 4) -> Dict[str, int]:
    return {
        "total": len(tasks),
        "overloaded": sum(1 for t in tasks if t.employee_count >= overloaded_at),
        "investment": sum(1 for t in tasks if t.work_type == WorkType.INVESTMENT),
        "expense": sum(1 for t in tasks if t.work_type == WorkType.EXPENSE),
    }


def compute_tasks(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    if not ctx.get("hours_loaded"):
        raise DatasetNotLoadedError("Hours dataset has not been loaded")
    settings = ctx["settings"]
    tasks: List[TaskSummary] = list(ctx.get("tasks", []))

    matrix = task_matrix(tasks, filters.top_n)
    grouped = search_tasks(tasks_grouped(tasks), filters.query)
    if filters.sort_by:
        grouped = sort_records(grouped, filters.sort_by, filters.sort_direction)

    return {
        "filters": asdict(filters),
        "empty": not tasks,
        "kpis": task_kpis(tasks, settings.thresholds.overloaded_task_employees),
        "matrix": to_payloads(matrix),
        "tasks": to_payloads(grouped),
        "matrix_chart": task_matrix_chart(matrix),
    }


def compute_task_detail(ctx: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    if not ctx.get("hours_loaded"):
        raise DatasetNotLoadedError("Hours dataset has not been loaded")
    task = task_by_name(ctx.get("tasks", []), name)
    return to_payload(task) if task is not None else None
