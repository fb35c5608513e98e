from workload.data import prepare_context
from workload.filters import DashboardFilters
from workload.metrics_search import compute_search, search_all


def test_short_queries_return_nothing(dataset):
    ctx = prepare_context(None, dataset)
    assert search_all(ctx, "") == []
    assert search_all(ctx, " b ") == []


def test_search_across_entities(dataset):
    ctx = prepare_context(None, dataset)
    results = search_all(ctx, "build")
    assert [r["type"] for r in results] == ["requirement", "task", "task"]
    assert [r["id"] for r in results if r["type"] == "task"] == ["Backend", ""]

    results = search_all(ctx, "100")
    assert [r["name"] for r in results] == ["Avi", "דנה"]
    assert search_all(ctx, "100", limit=1)[0]["type"] == "employee"


def test_search_matches_type_and_requester(dataset):
    ctx = prepare_context(None, dataset)
    assert [r["name"] for r in search_all(ctx, "project")] == ["Avi"]
    assert [r["id"] for r in search_all(ctx, "finance")] == ["222222"]


def test_compute_search_counts(dataset):
    filters = DashboardFilters(query="build")
    payload = compute_search(filters, prepare_context(filters, dataset))
    assert payload["counts"] == {"employee": 0, "requirement": 1, "task": 2}
    assert len(payload["suggestions"]) == 3
