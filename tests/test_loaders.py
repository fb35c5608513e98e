import pandas as pd
import pytest

from workload.data import (
    build_dataset,
    load_hours_file,
    load_requirements_file,
    read_rows,
    rows_from_raw,
)
from workload.models import HoursRows, HoursRowsWithExceptions


def _write_csv(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_hours_csv_header_on_second_row(tmp_path, settings):
    path = tmp_path / "hours.csv"
    _write_csv(
        path,
        [
            "Snow hours report,,,,",
            "Employee,EmployeeId,Hours,Task,Classification",
            "Dana,1001,5,123456 - Build,Development",
            ",,,,",
            "Avi,1002,0,Support,Maintenance",
        ],
    )
    result = load_hours_file(path, settings)
    assert isinstance(result, HoursRows)
    assert len(result.rows) == 2
    assert result.rows[0]["EmployeeId"] == "1001"

    ds = build_dataset(result, None, settings)
    [record] = ds.hours
    assert record.hours == 5
    assert record.requirement_id == "123456"


def test_requirements_csv(tmp_path, settings):
    path = tmp_path / "requirements.csv"
    _write_csv(path, ["ID,Name,Budget,Actual", "123456,Build,\"10,000\",4000"])
    rows = load_requirements_file(path, settings)
    assert rows == [{"ID": "123456", "Name": "Build", "Budget": "10,000", "Actual": "4000"}]
    [req] = build_dataset(None, rows, settings).requirements
    assert req.utilization_percent == pytest.approx(40)


def test_unsupported_extension(tmp_path, settings):
    with pytest.raises(ValueError):
        read_rows(tmp_path / "hours.txt", settings=settings)


def test_blank_and_duplicate_headers():
    raw = pd.DataFrame([["a", None, "a"], [1, 2, 3]])
    assert rows_from_raw(raw) == [{"a": 1, "col_1": 2}]
    assert rows_from_raw(pd.DataFrame()) == []


def test_excel_exceptions_sheet(tmp_path, settings):
    path = tmp_path / "hours.xlsx"
    report = pd.DataFrame(
        [
            ["Snow hours report", None, None, None],
            ["Employee", "EmployeeId", "Hours", "Task"],
            ["Dana", "1001", 5, "Build"],
        ]
    )
    exceptions = pd.DataFrame(
        [
            ["Exceptions", None, None, None],
            ["Employee", "EmployeeId", "Hours", "Task"],
            ["Avi", "1002", 14, "Support"],
        ]
    )
    with pd.ExcelWriter(path) as writer:
        report.to_excel(writer, sheet_name="Report", header=False, index=False)
        exceptions.to_excel(writer, sheet_name="חריגות", header=False, index=False)

    result = load_hours_file(path, settings)
    assert isinstance(result, HoursRowsWithExceptions)
    ds = build_dataset(result, None, settings)
    assert [h.employee_name for h in ds.hours] == ["Dana"]
    assert [h.hours for h in ds.hours_exceptions] == [14]


def test_excel_without_exceptions_sheet(tmp_path, settings):
    path = tmp_path / "hours.xlsx"
    pd.DataFrame([["x"], ["Employee"], ["Dana"]]).to_excel(path, header=False, index=False)
    assert isinstance(load_hours_file(path, settings), HoursRows)
