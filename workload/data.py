from __future__ import annotations

import logging
import math
import numbers
import re
import warnings
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from workload.filters import DashboardFilters, normalize_filters
from workload.metrics_employees import fold_employees, sort_by_total_hours
from workload.metrics_requirements import link_requirements
from workload.metrics_tasks import fold_tasks
from workload.models import (
    DatasetNotLoadedError,
    EmployeeType,
    HoursLoadResult,
    HoursRecord,
    HoursRows,
    HoursRowsWithExceptions,
    RequirementRecord,
    UtilizationStatus,
    WorkType,
    format_date,
)
from workload.settings import DashboardSettings, Thresholds, get_settings
from workload.teams import DEFAULT_TEAMS, Team, filter_employees, filter_hours, find_team

logger = logging.getLogger(__name__)

EXCEL_EPOCH_OFFSET_DAYS = 25569
SECONDS_PER_DAY = 86400

HOURS_HEADER_ROW = 1
EXCEPTION_SHEET_KEYWORDS = ("חריגות", "exception")

_REQUIREMENT_ID = re.compile(r"^(\d{4,6})\s*-")
_NUMERIC_PREFIX = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_NON_NUMERIC = re.compile(r"[^\d.\-]")
_YEAR_FIRST_DATE = re.compile(r"^\d{4}[-/.]\d{1,2}[-/.]\d{1,2}")
_WHITESPACE = re.compile(r"\s+")


# ---------------- Column resolution ----------------
def find_column(row: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    """Return the value under the first header matching one of `candidates`.

    Exact (trimmed) header matches are tried for every candidate before any
    case-insensitive substring match, so candidate order decides between
    synonyms that both appear in a row.
    """
    keys = list(row.keys())
    trimmed = [str(k).strip() for k in keys]
    for name in candidates:
        target = str(name).strip()
        for key, header in zip(keys, trimmed):
            if header == target:
                return row[key]

    lowered = [h.lower() for h in trimmed]
    for name in candidates:
        target = str(name).strip().lower()
        if not target:
            continue
        for key, header in zip(keys, lowered):
            if target in header:
                return row[key]
    return None


def _lookup(row: Mapping[str, Any], table: Mapping[str, Sequence[str]], field: str) -> Any:
    candidates = table.get(field)
    if not candidates:
        return None
    return find_column(row, candidates)


# ---------------- Coercion ----------------
def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NA or value is pd.NaT


def as_text(value: object) -> str:
    """Identifier/label text; integral spreadsheet floats lose their `.0`."""
    if _is_missing(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        f = float(value)
        if math.isnan(f):
            return ""
        if f.is_integer():
            return str(int(f))
        return str(f)
    return str(value).strip()


def coerce_number(value: object) -> Optional[float]:
    """Parse a numeric cell, tolerating currency signs and thousands separators.

    Returns None (not NaN) when nothing numeric can be read, so callers can tell
    an absent value from zero.
    """
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return None if math.isnan(float(value)) else value  # type: ignore[return-value]
    cleaned = _NON_NUMERIC.sub("", str(value).strip())
    match = _NUMERIC_PREFIX.match(cleaned)
    if not match:
        return None
    return float(match.group(0))


def coerce_date(value: object) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, numbers.Real):
        try:
            ts = pd.Timestamp((float(value) - EXCEL_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY, unit="s")
        except (ValueError, OverflowError):
            return as_text(value)
        return format_date(ts)
    if isinstance(value, (datetime, date)):
        return format_date(value)

    s = str(value).strip()
    if not s:
        return ""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        year_first = bool(_YEAR_FIRST_DATE.match(s))
        parsed = pd.to_datetime(s, errors="coerce", dayfirst=not year_first, yearfirst=year_first)
    if pd.isna(parsed):
        return s
    return format_date(parsed)


# ---------------- Classification ----------------
def classify_work_type(label: object, keywords: Mapping[str, Sequence[str]]) -> WorkType:
    text = as_text(label).lower()
    if not text:
        return WorkType.OTHER
    for category in (WorkType.INVESTMENT, WorkType.EXPENSE, WorkType.ABSENCE):
        for keyword in keywords.get(category.value, ()):
            if keyword.lower() in text:
                return category
    return WorkType.OTHER


def normalize_employee_type(label: object, synonyms: Mapping[str, Sequence[str]]) -> EmployeeType:
    text = _WHITESPACE.sub(" ", as_text(label)).strip().lower()
    if any(s.lower() in text for s in synonyms.get(EmployeeType.MATAF.value, ())):
        return EmployeeType.MATAF
    if any(s.lower() in text for s in synonyms.get(EmployeeType.PROJECT.value, ())):
        return EmployeeType.PROJECT
    return EmployeeType.MATAF


def extract_requirement_id(task: object) -> str:
    match = _REQUIREMENT_ID.match(as_text(task))
    return match.group(1) if match else ""


def utilization_status(percent: float, thresholds: Thresholds) -> UtilizationStatus:
    if percent > thresholds.budget_overrun:
        return UtilizationStatus.OVERRUN
    if percent > thresholds.budget_warning:
        return UtilizationStatus.WARNING
    return UtilizationStatus.NORMAL


# ---------------- Normalization ----------------
def normalize_hours(rows: Iterable[Mapping[str, Any]], settings: DashboardSettings) -> List[HoursRecord]:
    cols = settings.hours_columns
    records: List[HoursRecord] = []
    dropped_invalid = 0
    dropped_excluded = 0
    for row in rows:
        if not isinstance(row, Mapping):
            dropped_invalid += 1
            continue
        name = as_text(_lookup(row, cols, "employee_name"))
        hours = coerce_number(_lookup(row, cols, "hours"))
        hours = float(hours) if hours is not None else 0.0
        if not name or hours <= 0:
            dropped_invalid += 1
            continue
        employee_id = as_text(_lookup(row, cols, "employee_id"))
        if employee_id and employee_id in settings.excluded_employee_ids:
            dropped_excluded += 1
            continue

        type_label = _WHITESPACE.sub(" ", as_text(_lookup(row, cols, "employee_type"))).strip()
        classification = as_text(_lookup(row, cols, "classification"))
        task = as_text(_lookup(row, cols, "task"))
        records.append(
            HoursRecord(
                employee_name=name,
                employee_id=employee_id,
                employee_type=normalize_employee_type(type_label, settings.employee_type_synonyms),
                employee_type_label=type_label,
                date=coerce_date(_lookup(row, cols, "date")),
                hours=hours,
                task=task,
                subtask=as_text(_lookup(row, cols, "subtask")),
                classification_label=classification,
                work_type=classify_work_type(classification, settings.work_type_keywords),
                requirement_id=extract_requirement_id(task),
                raw=dict(row),
            )
        )
    logger.info(
        "Normalized %d hours rows (dropped %d invalid, %d excluded)",
        len(records),
        dropped_invalid,
        dropped_excluded,
    )
    return records


def normalize_requirements(
    rows: Iterable[Mapping[str, Any]], settings: DashboardSettings
) -> List[RequirementRecord]:
    cols = settings.requirements_columns
    records: List[RequirementRecord] = []
    dropped = 0
    for row in rows:
        if not isinstance(row, Mapping):
            dropped += 1
            continue
        req_id = as_text(_lookup(row, cols, "id"))
        name = as_text(_lookup(row, cols, "name"))
        if not req_id and not name:
            dropped += 1
            continue
        budget = float(coerce_number(_lookup(row, cols, "budget")) or 0)
        actual = float(coerce_number(_lookup(row, cols, "actual")) or 0)
        utilization = (actual / budget) * 100 if budget > 0 else 0.0
        derived = utilization_status(utilization, settings.thresholds)
        file_status = as_text(_lookup(row, cols, "status"))
        records.append(
            RequirementRecord(
                id=req_id,
                name=name,
                budget=budget,
                actual=actual,
                utilization_percent=utilization,
                status=file_status or derived.value,
                utilization_status=derived,
                requester=as_text(_lookup(row, cols, "requester")),
                raw=dict(row),
            )
        )
    logger.info("Normalized %d requirement rows (dropped %d)", len(records), dropped)
    return records


def normalize_hours_load(
    result: HoursLoadResult, settings: DashboardSettings
) -> Tuple[List[HoursRecord], List[HoursRecord]]:
    """Normalize an hours load; returns (records, exception records)."""
    if isinstance(result, HoursRowsWithExceptions):
        return normalize_hours(result.rows, settings), normalize_hours(result.exceptions, settings)
    if isinstance(result, HoursRows):
        return normalize_hours(result.rows, settings), []
    raise TypeError(f"Unsupported hours load result: {type(result).__name__}")


# ---------------- Loaders ----------------
def find_header_row(df: pd.DataFrame, keywords: Iterable[str], search_rows: int = 25) -> Optional[int]:
    lowered = [k.strip().lower() for k in keywords if k and k.strip()]
    for idx in range(min(search_rows, len(df))):
        row = df.iloc[idx].astype(str).str.strip().str.lower().tolist()
        if any(k in " ".join(row) for k in lowered):
            return idx
    return None


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def _header_name(value: object, idx: int) -> str:
    if _is_missing(value) or not str(value).strip():
        return f"col_{idx}"
    return str(value).strip()


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    df = df.dropna(how="all")
    df = drop_duplicate_columns(df)
    if df.empty:
        return []
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def _check_suffix(path: Path, accepted: Sequence[str]) -> str:
    suffix = path.suffix.lower()
    if suffix not in accepted:
        raise ValueError(f"Unsupported file type: {suffix or path.name}")
    return suffix


def _read_raw(path: Path, sheet_name: object = 0) -> pd.DataFrame:
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path, header=None, dtype=object, encoding="utf-8-sig")
    return pd.read_excel(path, sheet_name=sheet_name, header=None)


def rows_from_raw(
    raw: pd.DataFrame,
    *,
    header_keywords: Optional[Iterable[str]] = None,
    default_header_row: int = 0,
) -> List[Dict[str, Any]]:
    if raw.empty:
        return []
    header_row = find_header_row(raw, header_keywords, search_rows=10) if header_keywords else None
    if header_row is None:
        header_row = min(default_header_row, len(raw) - 1)
    header = raw.iloc[header_row]
    data = raw.iloc[header_row + 1 :].copy()
    data.columns = [_header_name(v, i) for i, v in enumerate(header)]
    return frame_to_rows(data)


def read_rows(
    path: str | Path,
    *,
    settings: Optional[DashboardSettings] = None,
    sheet_name: object = 0,
    header_keywords: Optional[Iterable[str]] = None,
    default_header_row: int = 0,
) -> List[Dict[str, Any]]:
    """Read one sheet (or a CSV file) into header -> value row dicts."""
    settings = settings or get_settings()
    path = Path(path)
    _check_suffix(path, settings.accepted_file_types)
    raw = _read_raw(path, sheet_name)
    rows = rows_from_raw(raw, header_keywords=header_keywords, default_header_row=default_header_row)
    if rows:
        logger.debug("Columns in %s: %s", path.name, list(rows[0].keys()))
    return rows


def load_hours_file(path: str | Path, settings: Optional[DashboardSettings] = None) -> HoursLoadResult:
    """Read a Snow hours export; headers sit on the second row unless found elsewhere."""
    settings = settings or get_settings()
    path = Path(path)
    suffix = _check_suffix(path, settings.accepted_file_types)
    keywords = settings.hours_columns.get("employee_id", ())
    rows = read_rows(
        path,
        settings=settings,
        header_keywords=keywords,
        default_header_row=HOURS_HEADER_ROW,
    )
    if suffix == ".csv":
        return HoursRows(rows=rows)

    with pd.ExcelFile(path) as book:
        sheet_names = list(book.sheet_names)
    exception_sheet = next(
        (
            name
            for name in sheet_names[1:]
            if any(k in str(name).lower() for k in EXCEPTION_SHEET_KEYWORDS)
        ),
        None,
    )
    if exception_sheet is None:
        return HoursRows(rows=rows)
    exceptions = read_rows(
        path,
        settings=settings,
        sheet_name=exception_sheet,
        header_keywords=keywords,
        default_header_row=HOURS_HEADER_ROW,
    )
    return HoursRowsWithExceptions(rows=rows, exceptions=exceptions)


def load_requirements_file(path: str | Path, settings: Optional[DashboardSettings] = None) -> List[Dict[str, Any]]:
    return read_rows(path, settings=settings, default_header_row=0)


# ---------------- Dataset context ----------------
@dataclass(frozen=True)
class DatasetContext:
    """Normalized record sets for the currently loaded dataset versions."""

    settings: DashboardSettings
    hours: Optional[Tuple[HoursRecord, ...]] = None
    hours_exceptions: Tuple[HoursRecord, ...] = ()
    requirements: Optional[Tuple[RequirementRecord, ...]] = None

    @property
    def is_loaded(self) -> bool:
        return self.hours is not None or self.requirements is not None


def build_dataset(
    hours_load: Optional[HoursLoadResult],
    requirement_rows: Optional[Sequence[Mapping[str, Any]]],
    settings: Optional[DashboardSettings] = None,
) -> DatasetContext:
    """Normalize both datasets and link requirement hours/cost.

    Call again whenever either input changes; the returned context replaces the
    previous one wholesale.
    """
    settings = settings or get_settings()
    hours: Optional[Tuple[HoursRecord, ...]] = None
    exceptions: Tuple[HoursRecord, ...] = ()
    if hours_load is not None:
        records, exception_records = normalize_hours_load(hours_load, settings)
        hours = tuple(records)
        exceptions = tuple(exception_records)

    requirements: Optional[Tuple[RequirementRecord, ...]] = None
    if requirement_rows is not None:
        normalized = normalize_requirements(requirement_rows, settings)
        requirements = tuple(link_requirements(normalized, hours or (), settings.rates))

    return DatasetContext(
        settings=settings,
        hours=hours,
        hours_exceptions=exceptions,
        requirements=requirements,
    )


def prepare_context(
    filters: dict | DashboardFilters | None,
    dataset: Optional[DatasetContext],
    teams: Optional[Sequence[Team]] = None,
) -> Dict[str, object]:
    if dataset is None or not dataset.is_loaded:
        raise DatasetNotLoadedError("No dataset has been loaded yet")
    settings = dataset.settings
    filt = (
        filters
        if isinstance(filters, DashboardFilters)
        else normalize_filters(
            filters,
            default_top_n=settings.max_matrix_tasks,
            default_low_investment=settings.thresholds.low_investment_percent,
        )
    )
    team = find_team(teams if teams is not None else DEFAULT_TEAMS, filt.team_id)

    hours = list(dataset.hours or ())
    filtered_hours = filter_hours(hours, team)

    employees = sort_by_total_hours(fold_employees(hours, settings.employee_type_synonyms))
    filtered_employees = filter_employees(employees, team)

    return {
        "filters": filt,
        "team": team,
        "settings": settings,
        "hours_loaded": dataset.hours is not None,
        "requirements_loaded": dataset.requirements is not None,
        "hours": hours,
        "filtered_hours": filtered_hours,
        "hours_exceptions": list(dataset.hours_exceptions),
        "employees": employees,
        "filtered_employees": filtered_employees,
        "tasks": fold_tasks(filtered_hours),
        "requirements": list(dataset.requirements or ()),
    }
