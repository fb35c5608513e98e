import pytest

from workload.data import build_dataset, prepare_context
from workload.filters import DashboardFilters
from workload.metrics_hours import compute_hours, daily_hours_exceptions, hours_totals
from workload.metrics_overview import compute_alerts, compute_overview
from workload.models import DatasetNotLoadedError
from workload.settings import Thresholds
from workload.teams import ALL_TEAM, Team

TEAMS = [ALL_TEAM, Team(id="dana", name="Dana's team", employees=frozenset({"1001"}))]


def test_prepare_context_requires_a_dataset(settings):
    with pytest.raises(DatasetNotLoadedError):
        prepare_context(None, None)
    with pytest.raises(DatasetNotLoadedError):
        prepare_context(None, build_dataset(None, None, settings))


def test_overview_for_all_employees(dataset):
    filters = DashboardFilters()
    payload = compute_overview(filters, prepare_context(filters, dataset))
    assert payload["empty"] is False
    assert payload["team"]["id"] == "all"
    assert payload["stats"] == {"employees": 2, "total_hours": 22, "requirements": 2, "over_budget": 1}
    assert payload["hours_totals"] == {"total_hours": 22, "investment_hours": 17, "expense_hours": 5}
    assert [a["alert_type"] for a in payload["alerts"]] == ["Budget Overrun", "Long Days", "Short Days"]


def test_overview_is_team_scoped(dataset):
    filters = DashboardFilters(team_id="dana")
    ctx = prepare_context(filters, dataset, TEAMS)
    payload = compute_overview(filters, ctx)
    assert payload["stats"]["employees"] == 1
    assert payload["stats"]["total_hours"] == 7
    assert payload["task_kpis"]["total"] == 2
    assert len(ctx["employees"]) == 2


def test_unknown_team_shows_everyone(dataset):
    ctx = prepare_context({"team_id": "ghost"}, dataset, TEAMS)
    assert ctx["team"].id == "all"
    assert len(ctx["filtered_employees"]) == 2


def test_alerts_low_investment(dataset):
    ctx = prepare_context(None, dataset)
    alerts = compute_alerts(
        employees=ctx["employees"],
        hours=[],
        requirements=[],
        thresholds=Thresholds(),
        low_investment_threshold=75,
    )
    assert [a["alert_type"] for a in alerts] == ["Low Investment"]
    assert "1 employees" in alerts[0]["message"]


def test_hours_totals_and_daily_exceptions(hours_records):
    assert hours_totals(hours_records)["total_hours"] == 22
    flagged = daily_hours_exceptions(hours_records, Thresholds())
    assert [(e["employee_id"], e["date"], e["kind"]) for e in flagged] == [
        ("1001", "1.3.2024", "under"),
        ("1001", "10.2.2024", "under"),
        ("1002", "2.3.2024", "under"),
        ("1002", "3.3.2024", "over"),
    ]
    assert daily_hours_exceptions([], Thresholds()) == []


def test_compute_hours_search_and_sort(dataset):
    filters = DashboardFilters(query="support", sort_by="hours", sort_direction="desc")
    payload = compute_hours(filters, prepare_context(filters, dataset))
    assert [h["hours"] for h in payload["hours"]] == [3, 2]
    assert payload["totals"]["total_hours"] == 22
    assert payload["reported_exceptions"] == []
    assert all("raw" not in h for h in payload["hours"])


def test_hours_views_need_hours(settings, requirement_rows):
    ds = build_dataset(None, requirement_rows, settings)
    filters = DashboardFilters()
    ctx = prepare_context(filters, ds)
    with pytest.raises(DatasetNotLoadedError):
        compute_hours(filters, ctx)
    assert compute_overview(filters, ctx)["stats"]["requirements"] == 2
