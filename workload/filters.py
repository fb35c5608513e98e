from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from workload.teams import ALL_TEAM_ID

SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class DashboardFilters:
    team_id: str = ALL_TEAM_ID
    query: str = ""
    requirement_status: str = "all"
    employee_type: str = "all"
    sort_by: Optional[str] = None
    sort_direction: str = "asc"
    low_investment_threshold: float = 65.0
    top_n: int = 20


def normalize_filters(
    raw: Optional[dict], *, default_top_n: int = 20, default_low_investment: float = 65.0
) -> DashboardFilters:
    raw = raw or {}

    team_id = str(raw.get("team_id") or ALL_TEAM_ID).strip() or ALL_TEAM_ID
    query = (raw.get("query") or "").strip()
    requirement_status = str(raw.get("requirement_status") or "all").strip() or "all"
    employee_type = str(raw.get("employee_type") or "all").strip() or "all"

    sort_by = raw.get("sort_by")
    sort_by = str(sort_by).strip() if sort_by else None
    sort_direction = str(raw.get("sort_direction") or "asc").strip().lower()
    if sort_direction not in SORT_DIRECTIONS:
        sort_direction = "asc"

    threshold = raw.get("low_investment_threshold", default_low_investment)
    try:
        threshold = float(threshold)
    except Exception:
        threshold = default_low_investment
    threshold = max(0.0, min(100.0, threshold))

    top_n = raw.get("top_n", default_top_n)
    try:
        top_n = int(top_n)
    except Exception:
        top_n = default_top_n
    top_n = max(1, min(200, top_n))

    return DashboardFilters(
        team_id=team_id,
        query=query,
        requirement_status=requirement_status,
        employee_type=employee_type,
        sort_by=sort_by,
        sort_direction=sort_direction,
        low_investment_threshold=threshold,
        top_n=top_n,
    )
