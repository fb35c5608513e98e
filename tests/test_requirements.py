import pytest

from workload.data import prepare_context
from workload.filters import DashboardFilters
from workload.metrics_requirements import (
    compute_requirements,
    find_requirement,
    hours_per_requirement,
    link_requirements,
    requirement_details,
)
from workload.models import RequirementRecord, UtilizationStatus
from workload.settings import RateSettings


def _requirement(req_id, name="r"):
    return RequirementRecord(
        id=req_id,
        name=name,
        budget=100.0,
        actual=10.0,
        utilization_percent=10.0,
        status="normal",
        utilization_status=UtilizationStatus.NORMAL,
        requester="",
    )


def test_hourly_rate():
    assert RateSettings().hourly_rate == pytest.approx(312.5)
    assert RateSettings(working_days_per_month=0).hourly_rate == 0


def test_link_sums_hours_and_cost(hours_records):
    per_req = hours_per_requirement(hours_records)
    assert per_req["123456"] == 17

    linked = link_requirements([_requirement("123456"), _requirement("999999"), _requirement("")], hours_records, RateSettings())
    assert [r.actual_hours for r in linked] == [17, 0, 0]
    assert linked[0].actual_cost == pytest.approx(17 * 312.5)
    assert linked[1].actual_cost == 0


def test_link_does_not_mutate_input(hours_records):
    original = _requirement("123456")
    link_requirements([original], hours_records, RateSettings())
    assert original.actual_hours == 0


def test_find_requirement():
    reqs = [_requirement("1111"), _requirement("2222")]
    assert find_requirement(reqs, "2222") is reqs[1]
    assert find_requirement(reqs, "3333") is None


def test_compute_requirements_filters(dataset):
    filters = DashboardFilters(requirement_status="overbudget")
    payload = compute_requirements(filters, prepare_context(filters, dataset))
    assert [r["id"] for r in payload["requirements"]] == ["222222"]
    assert payload["status_counts"]["all"] == 2
    assert payload["status_counts"]["overbudget"] == 1
    assert payload["status_counts"]["active"] == 1
    assert payload["totals"]["actual_hours"] == 17
    assert all("raw" not in r for r in payload["requirements"])

    filters = DashboardFilters(requirement_status="ACTIVE", query="migr")
    payload = compute_requirements(filters, prepare_context(filters, dataset))
    assert [r["id"] for r in payload["requirements"]] == ["222222"]

    filters = DashboardFilters(sort_by="utilization_percent", sort_direction="desc")
    payload = compute_requirements(filters, prepare_context(filters, dataset))
    assert [r["id"] for r in payload["requirements"]] == ["222222", "123456"]


def test_requirement_details(dataset):
    ctx = prepare_context(None, dataset)
    details = requirement_details(ctx, "123456")
    assert details["actual_hours"] == 17
    assert [e["name"] for e in details["employees"]] == ["Avi", "דנה"]
    assert details["tasks"] == ["123456 - Build"]
    assert requirement_details(ctx, "nope") is None
