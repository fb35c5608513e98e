from __future__ import annotations

import re
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from workload.charts import hours_breakdown_chart
from workload.filters import DashboardFilters
from workload.models import (
    DatasetNotLoadedError,
    EmployeeSummary,
    EmployeeType,
    HoursRecord,
    WorkType,
    hours_frame,
    parse_display_date,
    to_payload,
    to_payloads,
)
from workload.query import EMPLOYEE_SEARCH_FIELDS, search_records, sort_records
from workload.settings import EMPLOYEE_TYPE_PREFIXES

_BUCKETS = {
    WorkType.INVESTMENT.value: "investment_hours",
    WorkType.EXPENSE.value: "expense_hours",
    WorkType.ABSENCE.value: "absence_hours",
}

_PREFIX_PATTERN = re.compile(
    r"^(?:" + "|".join(re.escape(p) for p in EMPLOYEE_TYPE_PREFIXES) + r")\s+",
    flags=re.IGNORECASE,
)


def summary_employee_type(label: object, synonyms: Mapping[str, Sequence[str]]) -> str:
    """"עובד מתף" -> MATAF, "Employee project" -> PROJECT, "" -> UNDEFINED, else the residual text."""
    text = str(label or "").strip()
    if not text:
        return EmployeeType.UNDEFINED.value
    residual = _PREFIX_PATTERN.sub("", text).strip()
    lowered = residual.lower()
    for kind in (EmployeeType.MATAF, EmployeeType.PROJECT):
        if any(s.lower() in lowered for s in synonyms.get(kind.value, ())):
            return kind.value
    return residual or EmployeeType.UNDEFINED.value


def _percent(part: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, part / total * 100))


def _distinct_non_empty(values: pd.Series) -> int:
    return int(values[values != ""].nunique())


def fold_employees(
    hours: Sequence[HoursRecord], synonyms: Mapping[str, Sequence[str]]
) -> List[EmployeeSummary]:
    """One summary per employee key (id, else name), in first-seen order."""
    df = hours_frame(hours)
    if df.empty:
        return []
    df["key"] = df["employee_id"].where(df["employee_id"] != "", df["employee_name"])
    for work_type, col in _BUCKETS.items():
        df[col] = df["hours"].where(df["work_type"] == work_type, 0.0)

    folded = df.groupby("key", sort=False).agg(
        name=("employee_name", "first"),
        employee_id=("employee_id", "first"),
        type_label=("employee_type_label", "first"),
        total_hours=("hours", "sum"),
        investment_hours=("investment_hours", "sum"),
        expense_hours=("expense_hours", "sum"),
        absence_hours=("absence_hours", "sum"),
        requirement_count=("requirement_id", _distinct_non_empty),
        day_count=("date", _distinct_non_empty),
        task_count=("task", _distinct_non_empty),
    )

    summaries: List[EmployeeSummary] = []
    for key, row in folded.iterrows():
        total = float(row["total_hours"])
        investment = float(row["investment_hours"])
        expense = float(row["expense_hours"])
        summaries.append(
            EmployeeSummary(
                key=str(key),
                name=str(row["name"]),
                employee_id=str(row["employee_id"]),
                type=summary_employee_type(row["type_label"], synonyms),
                type_label=str(row["type_label"]),
                total_hours=total,
                investment_hours=investment,
                expense_hours=expense,
                absence_hours=float(row["absence_hours"]),
                investment_percent=_percent(investment, total),
                expense_percent=_percent(expense, total),
                requirement_count=int(row["requirement_count"]),
                day_count=int(row["day_count"]),
                task_count=int(row["task_count"]),
            )
        )
    return summaries


def sort_by_total_hours(employees: Sequence[EmployeeSummary]) -> List[EmployeeSummary]:
    return sorted(employees, key=lambda e: e.total_hours, reverse=True)


def employees_by_type(employees: Sequence[EmployeeSummary], employee_type: str) -> List[EmployeeSummary]:
    if not employee_type or employee_type == "all":
        return list(employees)
    return [e for e in employees if e.type == employee_type]


def low_investment_employees(employees: Sequence[EmployeeSummary], threshold: float = 65.0) -> List[EmployeeSummary]:
    return [e for e in employees if (e.investment_percent or 0) < threshold]


def search_employees(employees: Sequence[EmployeeSummary], query: str) -> List[EmployeeSummary]:
    return search_records(employees, query, EMPLOYEE_SEARCH_FIELDS)


def employee_kpis(employees: Sequence[EmployeeSummary], threshold: float = 65.0) -> Dict[str, int]:
    return {
        "total": len(employees),
        "mataf": sum(1 for e in employees if e.type == EmployeeType.MATAF.value),
        "project": sum(1 for e in employees if e.type == EmployeeType.PROJECT.value),
        "low_investment": len(low_investment_employees(employees, threshold)),
    }


def _find_employee(employees: Sequence[EmployeeSummary], key_or_name: str) -> Optional[EmployeeSummary]:
    for emp in employees:
        if emp.key == key_or_name:
            return emp
    for emp in employees:
        if emp.name == key_or_name or (emp.employee_id and emp.employee_id == key_or_name):
            return emp
    return None


def employee_details(ctx: Dict[str, Any], key_or_name: str) -> Optional[Dict[str, Any]]:
    """Summary plus per-task breakdown for one employee, or None when unknown."""
    if not ctx.get("hours_loaded"):
        raise DatasetNotLoadedError("Hours dataset has not been loaded")
    employee = _find_employee(ctx.get("employees", []), key_or_name)
    if employee is None:
        return None

    records = [
        h
        for h in ctx.get("hours", [])
        if (h.employee_id and h.employee_id == employee.employee_id) or h.employee_name == employee.name
    ]

    per_task: Dict[str, Dict[str, Any]] = {}
    for h in records:
        task = per_task.setdefault(h.task, {"name": h.task, "total_hours": 0.0, "dates": {}, "requirements": {}})
        task["total_hours"] += h.hours
        if h.date:
            task["dates"][h.date] = None
        if h.requirement_id:
            task["requirements"][h.requirement_id] = None
    tasks = [
        {
            "name": t["name"],
            "total_hours": t["total_hours"],
            "day_count": len(t["dates"]),
            "requirement_count": len(t["requirements"]),
            "requirements": list(t["requirements"]),
        }
        for t in per_task.values()
    ]
    tasks.sort(key=lambda t: t["total_hours"], reverse=True)

    dated = []
    for h in records:
        parsed = parse_display_date(h.date)
        if parsed is not None:
            dated.append((parsed, h.date))
    dated.sort(key=lambda pair: pair[0])
    return {
        **to_payload(employee),
        "tasks": tasks,
        "total_records": len(records),
        "first_date": dated[0][1] if dated else None,
        "last_date": dated[-1][1] if dated else None,
    }


def compute_employees(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    if not ctx.get("hours_loaded"):
        raise DatasetNotLoadedError("Hours dataset has not been loaded")
    employees: List[EmployeeSummary] = list(ctx.get("filtered_employees", []))
    threshold = filters.low_investment_threshold

    table = employees_by_type(employees, filters.employee_type)
    table = search_employees(table, filters.query)
    if filters.sort_by:
        table = sort_records(table, filters.sort_by, filters.sort_direction)

    return {
        "filters": asdict(filters),
        "empty": not ctx.get("hours"),
        "kpis": employee_kpis(employees, threshold),
        "employees": to_payloads(table),
        "low_investment": to_payloads(low_investment_employees(employees, threshold)),
        "chart": hours_breakdown_chart(employees, filters.top_n),
    }
