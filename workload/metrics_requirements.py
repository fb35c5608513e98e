from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from workload.filters import DashboardFilters
from workload.models import (
    DatasetNotLoadedError,
    HoursRecord,
    RequirementRecord,
    hours_frame,
    to_payload,
    to_payloads,
)
from workload.query import (
    REQUIREMENT_SEARCH_FIELDS,
    filter_requirements,
    requirement_status_counts,
    search_records,
    sort_records,
)
from workload.settings import RateSettings


def hours_per_requirement(hours: Sequence[HoursRecord]) -> pd.Series:
    df = hours_frame(hours)
    df = df[df["requirement_id"] != ""]
    if df.empty:
        return pd.Series(dtype=float)
    return df.groupby("requirement_id", sort=False)["hours"].sum()


def link_requirements(
    requirements: Sequence[RequirementRecord],
    hours: Sequence[HoursRecord],
    rates: RateSettings,
) -> List[RequirementRecord]:
    """Attach reported hours and their cost (hours * hourly rate) to each requirement."""
    per_requirement = hours_per_requirement(hours)
    hourly_rate = rates.hourly_rate
    linked: List[RequirementRecord] = []
    for req in requirements:
        actual_hours = float(per_requirement.get(req.id, 0.0)) if req.id else 0.0
        linked.append(replace(req, actual_hours=actual_hours, actual_cost=actual_hours * hourly_rate))
    return linked


def find_requirement(requirements: Sequence[RequirementRecord], req_id: str) -> Optional[RequirementRecord]:
    for req in requirements:
        if req.id == req_id:
            return req
    return None


def compute_requirements(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    if not ctx.get("requirements_loaded"):
        raise DatasetNotLoadedError("Requirements dataset has not been loaded")
    overrun = ctx["settings"].thresholds.budget_overrun
    requirements: List[RequirementRecord] = list(ctx.get("requirements", []))

    table = filter_requirements(requirements, filters.requirement_status, overrun)
    table = search_records(table, filters.query, REQUIREMENT_SEARCH_FIELDS)
    if filters.sort_by:
        table = sort_records(table, filters.sort_by, filters.sort_direction)

    return {
        "filters": asdict(filters),
        "empty": not requirements,
        "status_counts": requirement_status_counts(requirements, overrun),
        "totals": {
            "budget": sum(r.budget for r in requirements),
            "actual": sum(r.actual for r in requirements),
            "actual_hours": sum(r.actual_hours for r in requirements),
            "actual_cost": sum(r.actual_cost for r in requirements),
        },
        "requirements": to_payloads(table),
    }


def requirement_details(ctx: Dict[str, Any], req_id: str) -> Optional[Dict[str, Any]]:
    if not ctx.get("requirements_loaded"):
        raise DatasetNotLoadedError("Requirements dataset has not been loaded")
    req = find_requirement(ctx.get("requirements", []), req_id)
    if req is None:
        return None
    reported = [h for h in ctx.get("hours", []) if h.requirement_id == req.id]
    employees: Dict[str, Dict[str, Any]] = {}
    for h in reported:
        entry = employees.setdefault(h.employee_key, {"id": h.employee_id, "name": h.employee_name, "hours": 0.0})
        entry["hours"] += h.hours
    return {
        **to_payload(req),
        "employees": sorted(employees.values(), key=lambda e: e["hours"], reverse=True),
        "tasks": list(dict.fromkeys(h.task for h in reported)),
    }
