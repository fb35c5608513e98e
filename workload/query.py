from __future__ import annotations

import numbers
import unicodedata
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple, TypeVar

from workload.models import RequirementRecord, TaskSummary

T = TypeVar("T")

EMPLOYEE_SEARCH_FIELDS = ("name", "employee_id")
REQUIREMENT_SEARCH_FIELDS = ("id", "name")
HOURS_SEARCH_FIELDS = ("employee_name", "task", "requirement_id")

DEFAULT_STATUS_BUCKETS = ("active", "backlog", "done")


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def search_records(items: Sequence[T], query: str, fields: Sequence[str]) -> List[T]:
    q = (query or "").strip().lower()
    if not q:
        return list(items)
    return [
        item
        for item in items
        if any(q in str(_field(item, f) or "").lower() for f in fields)
    ]


def search_tasks(tasks: Sequence[TaskSummary], query: str) -> List[TaskSummary]:
    q = (query or "").strip().lower()
    if not q:
        return list(tasks)
    return [
        t
        for t in tasks
        if q in t.name.lower() or any(q in (e.name or "").lower() for e in t.employees)
    ]


def filter_requirements(
    requirements: Sequence[RequirementRecord], status: str, overrun_threshold: float
) -> List[RequirementRecord]:
    wanted = (status or "all").strip().lower()
    if wanted == "all":
        return list(requirements)
    if wanted == "overbudget":
        return [r for r in requirements if r.utilization_percent > overrun_threshold]
    return [r for r in requirements if r.status and r.status.lower() == wanted]


def requirement_status_counts(
    requirements: Sequence[RequirementRecord], overrun_threshold: float
) -> Dict[str, int]:
    counts: Dict[str, int] = {"all": len(requirements)}
    for bucket in DEFAULT_STATUS_BUCKETS:
        counts[bucket] = 0
    for r in requirements:
        if r.status:
            key = r.status.lower()
            counts[key] = counts.get(key, 0) + 1
    counts["overbudget"] = sum(1 for r in requirements if r.utilization_percent > overrun_threshold)
    return counts


def collation_key(value: object) -> str:
    return unicodedata.normalize("NFKD", str(value)).casefold()


def _sort_key(value: Any) -> Tuple[int, Any]:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return (0, float(value))
    return (1, collation_key("" if value is None else value))


def sort_records(items: Sequence[T], column: str, direction: str = "asc") -> List[T]:
    """Stable sort: numbers numerically (ahead of text), text by collation key."""
    return sorted(
        items,
        key=lambda item: _sort_key(_field(item, column)),
        reverse=(direction or "asc").lower() == "desc",
    )
