from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Set, Tuple

from workload.filters import DashboardFilters
from workload.models import to_payload

MIN_QUERY_LENGTH = 2


def _matches(query: str, *parts: object) -> bool:
    text = " ".join(str(p) for p in parts if p not in (None, "")).lower()
    return query in text


def search_all(ctx: Dict[str, Any], query: str, *, limit: int | None = None) -> List[Dict[str, Any]]:
    """Employees, then requirements, then distinct task/subtask pairs matching `query`."""
    q = (query or "").strip().lower()
    if len(q) < MIN_QUERY_LENGTH:
        return []

    results: List[Dict[str, Any]] = []
    for emp in ctx.get("filtered_employees", []):
        if _matches(q, emp.name, emp.employee_id, emp.type):
            results.append(
                {
                    "type": "employee",
                    "name": emp.name,
                    "id": emp.key,
                    "meta": f"{emp.type} | {emp.total_hours:g} hours",
                    "data": to_payload(emp),
                }
            )

    for req in ctx.get("requirements", []):
        if _matches(q, req.id, req.name, req.requester):
            results.append(
                {
                    "type": "requirement",
                    "name": req.name,
                    "id": req.id,
                    "meta": f"{req.requester} | {req.budget:g}",
                    "data": to_payload(req),
                }
            )

    seen: Set[Tuple[str, str]] = set()
    for h in ctx.get("filtered_hours", []):
        if not h.task or (h.task, h.subtask) in seen:
            continue
        if _matches(q, h.task, h.subtask):
            seen.add((h.task, h.subtask))
            results.append(
                {
                    "type": "task",
                    "name": h.task,
                    "id": h.subtask,
                    "meta": h.employee_name,
                    "data": {"task": h.task, "subtask": h.subtask, "employee": h.employee_name},
                }
            )

    if limit is not None:
        return results[: max(0, int(limit))]
    return results


def compute_search(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    results = search_all(ctx, filters.query)
    counts: Dict[str, int] = {"employee": 0, "requirement": 0, "task": 0}
    for r in results:
        counts[r["type"]] += 1
    return {
        "filters": asdict(filters),
        "query": filters.query,
        "counts": counts,
        "suggestions": results[:5],
        "results": results,
    }
