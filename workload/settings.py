from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "WORKLOAD_SETTINGS_PATH"

# canonical field -> ordered header candidates; earlier entries win.
HOURS_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "employee_name": ("שם משפחה + פרטי", "שם", "Employee", "עובד"),
    "employee_id": ("מספר עובד", "מספר_עובד", "EmployeeId"),
    "employee_type": ("סוג  עובד", "סוג עובד", "Employee Type"),
    "date": ("תאריך דיווח", "תאריך", "Date"),
    "hours": ('סה"כ שעות מדווחות', "שעות", "Hours"),
    "task": ("משימה", "פעילות", "Task"),
    "subtask": ("פעילות משנה", "SubTask", "Sub Task"),
    "classification": ("פעילות.סיווג חשבונאי", "סיווג", "Classification"),
}

REQUIREMENTS_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "id": ("מספר", "מספר דרישה", "ID", "Requirement ID"),
    "name": ("נושא", "שם", "שם דרישה", "Name", "Subject"),
    "budget": ("תקציב שנתי", "תקציב", "Budget", "Allocated"),
    "actual": ("ביצוע כולל בקשות רכש פתוחות", "בפועל", "עלות בפועל", "Actual", "Cost"),
    "requester": ("דורש הדרישה", "דורש", "Requester"),
    "status": ("סטטוס", "Status"),
}

WORK_TYPE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "INVESTMENT": ("השקעה", "השקעות", "פיתוח", "Investment", "Investments", "Development"),
    "EXPENSE": ("הוצאה", "הוצאות", "תחזוקה", "Expense", "Expenses", "Maintenance"),
    "ABSENCE": ("היעדרות", "העדרויות", "חופש", "מחלה", "Absence", "Absences", "Leave", "Sick"),
}

EMPLOYEE_TYPE_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "MATAF": ("מתף", "mataf"),
    "PROJECT": ("פרויקט", "project"),
}

# Leading qualifier words stripped from the employee-type label ("עובד מתף" -> "מתף").
EMPLOYEE_TYPE_PREFIXES: Tuple[str, ...] = ("עובד", "employee")

REQUIRED_HOURS_FIELDS = ("employee_name", "hours")
REQUIRED_REQUIREMENT_FIELDS = ("id", "name")


class SettingsError(ValueError):
    """Raised when a settings table cannot drive normalization."""


@dataclass(frozen=True)
class Thresholds:
    budget_warning: float = 90.0
    budget_overrun: float = 100.0
    low_investment_percent: float = 65.0
    max_daily_hours: float = 10.0
    min_daily_hours: float = 6.0
    overloaded_task_employees: int = 4


@dataclass(frozen=True)
class RateSettings:
    monthly_rate: float = 50000.0
    working_days_per_month: float = 20.0
    expected_daily_hours: float = 8.0

    @property
    def hourly_rate(self) -> float:
        denominator = self.working_days_per_month * self.expected_daily_hours
        return self.monthly_rate / denominator if denominator else 0.0


@dataclass(frozen=True)
class DashboardSettings:
    hours_columns: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(HOURS_COLUMNS))
    requirements_columns: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(REQUIREMENTS_COLUMNS))
    work_type_keywords: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(WORK_TYPE_KEYWORDS))
    employee_type_synonyms: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(EMPLOYEE_TYPE_SYNONYMS))
    excluded_employee_ids: FrozenSet[str] = frozenset({"158429"})
    rates: RateSettings = field(default_factory=RateSettings)
    thresholds: Thresholds = field(default_factory=Thresholds)
    max_matrix_tasks: int = 20
    accepted_file_types: Tuple[str, ...] = (".xlsx", ".xls", ".csv")


def _as_candidates(values: object, *, where: str) -> Tuple[str, ...]:
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        raise SettingsError(f"{where}: expected a list of names, got {type(values).__name__}")
    out = tuple(str(v) for v in values if v is not None and str(v).strip())
    if not out:
        raise SettingsError(f"{where}: candidate list is empty")
    return out


def _merge_table(base: Mapping[str, Tuple[str, ...]], raw: object, *, where: str) -> Dict[str, Tuple[str, ...]]:
    merged = dict(base)
    if raw is None:
        return merged
    if not isinstance(raw, dict):
        raise SettingsError(f"{where}: expected an object mapping names to lists")
    for key, values in raw.items():
        merged[str(key)] = _as_candidates(values, where=f"{where}.{key}")
    return merged


def validate_settings(settings: DashboardSettings) -> DashboardSettings:
    for name in REQUIRED_HOURS_FIELDS:
        if not settings.hours_columns.get(name):
            raise SettingsError(f"hours_columns.{name} has no header candidates")
    if not any(settings.requirements_columns.get(name) for name in REQUIRED_REQUIREMENT_FIELDS):
        raise SettingsError("requirements_columns needs candidates for id or name")
    for category in ("INVESTMENT", "EXPENSE", "ABSENCE"):
        if category not in settings.work_type_keywords:
            raise SettingsError(f"work_type_keywords.{category} is missing")
    if settings.max_matrix_tasks < 1:
        raise SettingsError("max_matrix_tasks must be at least 1")
    return settings


def settings_from_dict(raw: Optional[dict]) -> DashboardSettings:
    """Overlay a JSON-style dict onto the defaults and validate the result."""
    raw = raw or {}
    base = DashboardSettings()

    r = raw.get("rates") or {}
    rates = RateSettings(
        monthly_rate=float(r.get("monthly_rate", base.rates.monthly_rate)),
        working_days_per_month=float(r.get("working_days_per_month", base.rates.working_days_per_month)),
        expected_daily_hours=float(r.get("expected_daily_hours", base.rates.expected_daily_hours)),
    )

    t = raw.get("thresholds") or {}
    defaults = base.thresholds
    thresholds = Thresholds(
        budget_warning=float(t.get("budget_warning", defaults.budget_warning)),
        budget_overrun=float(t.get("budget_overrun", defaults.budget_overrun)),
        low_investment_percent=float(t.get("low_investment_percent", defaults.low_investment_percent)),
        max_daily_hours=float(t.get("max_daily_hours", defaults.max_daily_hours)),
        min_daily_hours=float(t.get("min_daily_hours", defaults.min_daily_hours)),
        overloaded_task_employees=int(t.get("overloaded_task_employees", defaults.overloaded_task_employees)),
    )

    excluded = raw.get("excluded_employee_ids")
    excluded_ids = (
        frozenset(str(x).strip() for x in excluded if x is not None)
        if excluded is not None
        else base.excluded_employee_ids
    )

    settings = replace(
        base,
        hours_columns=_merge_table(base.hours_columns, raw.get("hours_columns"), where="hours_columns"),
        requirements_columns=_merge_table(
            base.requirements_columns, raw.get("requirements_columns"), where="requirements_columns"
        ),
        work_type_keywords=_merge_table(
            base.work_type_keywords, raw.get("work_type_keywords"), where="work_type_keywords"
        ),
        employee_type_synonyms=_merge_table(
            base.employee_type_synonyms, raw.get("employee_type_synonyms"), where="employee_type_synonyms"
        ),
        excluded_employee_ids=excluded_ids,
        rates=rates,
        thresholds=thresholds,
        max_matrix_tasks=int(raw.get("max_matrix_tasks", base.max_matrix_tasks)),
    )
    return validate_settings(settings)


def load_settings(path: str) -> DashboardSettings:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise SettingsError(f"{path}: top-level JSON value must be an object")
    return settings_from_dict(data)


def get_settings(default_path: Optional[str] = None) -> DashboardSettings:
    """Load settings from WORKLOAD_SETTINGS_PATH (or default_path), else the built-in defaults."""
    path = os.environ.get(SETTINGS_ENV_VAR) or default_path
    if not path:
        return settings_from_dict(None)
    if not os.path.isfile(path):
        logger.warning("Settings file %s not found; using defaults", path)
        return settings_from_dict(None)
    return load_settings(path)
