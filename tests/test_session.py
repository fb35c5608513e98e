import pandas as pd
import pytest

from workload.data import load_hours_file
from workload.teams import DEFAULT_TEAMS
from workload_api.session import DashboardSession


@pytest.fixture
def session(settings):
    return DashboardSession(settings=settings, teams=DEFAULT_TEAMS)


def test_load_hours_file_into_session(tmp_path, settings, session):
    path = tmp_path / "hours.xlsx"
    header = ["Employee", "EmployeeId", "Hours", "Task"]
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame([["Snow hours report", None, None, None], header, ["Dana", "1001", 5, "123456 - Build"]]).to_excel(
            writer, sheet_name="Report", header=False, index=False
        )
        pd.DataFrame([["Exceptions", None, None, None], header, ["Avi", "1002", 14, "Support"]]).to_excel(
            writer, sheet_name="Exceptions", header=False, index=False
        )

    session.load_hours_result(load_hours_file(path, settings))
    assert session.status() == {
        "hours_loaded": True,
        "requirements_loaded": False,
        "hours": 1,
        "hours_exceptions": 1,
        "requirements": 0,
    }
    ctx = session.context(None)
    assert [e.name for e in ctx["employees"]] == ["Dana"]


def test_requirements_relink_when_hours_change(session, hours_rows, requirement_rows):
    session.load_requirements(requirement_rows)
    assert session.dataset.requirements[0].actual_hours == 0

    session.load_hours(hours_rows)
    assert session.dataset.requirements[0].actual_hours == 17

    session.clear_hours()
    assert session.dataset.hours is None
    assert session.dataset.requirements[0].actual_hours == 0
