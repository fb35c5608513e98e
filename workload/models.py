"""Normalized record types shared by the loaders, folds and views."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd


class WorkType(str, Enum):
    INVESTMENT = "INVESTMENT"
    EXPENSE = "EXPENSE"
    ABSENCE = "ABSENCE"
    OTHER = "OTHER"


class EmployeeType(str, Enum):
    MATAF = "MATAF"
    PROJECT = "PROJECT"
    UNDEFINED = "UNDEFINED"


class UtilizationStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    OVERRUN = "overrun"


class DatasetNotLoadedError(RuntimeError):
    """A view was requested before the dataset it depends on was loaded."""


@dataclass(frozen=True)
class HoursRecord:
    employee_name: str
    employee_id: str
    employee_type: EmployeeType
    employee_type_label: str
    date: str
    hours: float
    task: str
    subtask: str
    classification_label: str
    work_type: WorkType
    requirement_id: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def employee_key(self) -> str:
        return self.employee_id or self.employee_name


@dataclass(frozen=True)
class RequirementRecord:
    id: str
    name: str
    budget: float
    actual: float
    utilization_percent: float
    status: str
    utilization_status: UtilizationStatus
    requester: str
    actual_hours: float = 0.0
    actual_cost: float = 0.0
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class EmployeeSummary:
    key: str
    name: str
    employee_id: str
    type: str
    type_label: str
    total_hours: float
    investment_hours: float
    expense_hours: float
    absence_hours: float
    investment_percent: float
    expense_percent: float
    requirement_count: int
    day_count: int
    task_count: int


@dataclass(frozen=True)
class TaskEmployee:
    id: str
    name: str
    hours: float


@dataclass(frozen=True)
class TaskSummary:
    name: str
    employee_count: int
    total_hours: float
    work_type: WorkType
    employees: Tuple[TaskEmployee, ...] = ()


@dataclass(frozen=True)
class HoursRows:
    """Plain hours export: one sheet of report rows."""

    rows: Sequence[Dict[str, Any]]


@dataclass(frozen=True)
class HoursRowsWithExceptions:
    """Hours export that also carried an exceptions sheet."""

    rows: Sequence[Dict[str, Any]]
    exceptions: Sequence[Dict[str, Any]]


HoursLoadResult = Union[HoursRows, HoursRowsWithExceptions]

HOURS_FRAME_COLUMNS = [
    "employee_name",
    "employee_id",
    "employee_type",
    "employee_type_label",
    "date",
    "hours",
    "task",
    "subtask",
    "classification_label",
    "work_type",
    "requirement_id",
]


def hours_frame(records: Iterable[HoursRecord]) -> pd.DataFrame:
    """Tabular view of hours records (without `raw`), in record order."""
    rows = [
        {
            "employee_name": r.employee_name,
            "employee_id": r.employee_id,
            "employee_type": r.employee_type.value,
            "employee_type_label": r.employee_type_label,
            "date": r.date,
            "hours": float(r.hours),
            "task": r.task,
            "subtask": r.subtask,
            "classification_label": r.classification_label,
            "work_type": r.work_type.value,
            "requirement_id": r.requirement_id,
        }
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=HOURS_FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=HOURS_FRAME_COLUMNS)


def format_date(value: date) -> str:
    """Fixed display format for report dates (D.M.YYYY)."""
    return f"{value.day}.{value.month}.{value.year}"


def parse_display_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, "%d.%m.%Y").date()
    except (TypeError, ValueError):
        return None


def to_payload(item: Any) -> Dict[str, Any]:
    """Dataclass -> JSON-friendly dict, dropping the raw source row."""
    out = asdict(item)
    out.pop("raw", None)
    return out


def to_payloads(items: Iterable[Any]) -> List[Dict[str, Any]]:
    return [to_payload(i) for i in items]
