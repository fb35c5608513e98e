from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

from workload.filters import DashboardFilters
from workload.models import (
    DatasetNotLoadedError,
    HoursRecord,
    WorkType,
    hours_frame,
    to_payloads,
)
from workload.query import HOURS_SEARCH_FIELDS, search_records, sort_records
from workload.settings import Thresholds


def hours_totals(hours: Sequence[HoursRecord]) -> Dict[str, float]:
    totals = {"total_hours": 0.0, "investment_hours": 0.0, "expense_hours": 0.0}
    for h in hours:
        totals["total_hours"] += h.hours
        if h.work_type == WorkType.INVESTMENT:
            totals["investment_hours"] += h.hours
        elif h.work_type == WorkType.EXPENSE:
            totals["expense_hours"] += h.hours
    return totals


def daily_hours_exceptions(hours: Sequence[HoursRecord], thresholds: Thresholds) -> List[Dict[str, Any]]:
    """Employee-days reported above max_daily_hours or below min_daily_hours."""
    df = hours_frame(hours)
    df = df[df["date"] != ""].copy()
    if df.empty:
        return []
    df["employee_key"] = df["employee_id"].where(df["employee_id"] != "", df["employee_name"])
    daily = (
        df.groupby(["employee_key", "date"], sort=False)
        .agg(employee_name=("employee_name", "first"), employee_id=("employee_id", "first"), hours=("hours", "sum"))
        .reset_index()
    )
    over = daily["hours"] > thresholds.max_daily_hours
    under = daily["hours"] < thresholds.min_daily_hours
    flagged = daily[over | under].copy()
    flagged["kind"] = flagged["hours"].apply(lambda v: "over" if v > thresholds.max_daily_hours else "under")
    return [
        {
            "employee_name": str(row["employee_name"]),
            "employee_id": str(row["employee_id"]),
            "date": str(row["date"]),
            "hours": float(row["hours"]),
            "kind": str(row["kind"]),
        }
        for _, row in flagged.iterrows()
    ]


def compute_hours(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    if not ctx.get("hours_loaded"):
        raise DatasetNotLoadedError("Hours dataset has not been loaded")
    settings = ctx["settings"]
    hours: List[HoursRecord] = list(ctx.get("filtered_hours", []))

    table = search_records(hours, filters.query, HOURS_SEARCH_FIELDS)
    if filters.sort_by:
        table = sort_records(table, filters.sort_by, filters.sort_direction)

    return {
        "filters": asdict(filters),
        "empty": not ctx.get("hours"),
        "totals": hours_totals(hours),
        "hours": to_payloads(table),
        "reported_exceptions": to_payloads(ctx.get("hours_exceptions", [])),
        "daily_exceptions": daily_hours_exceptions(hours, settings.thresholds),
    }
