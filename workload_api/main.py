from __future__ import annotations

import logging
import math
from enum import Enum
from functools import lru_cache

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from workload.filters import DashboardFilters, normalize_filters
from workload.metrics_employees import compute_employees, employee_details
from workload.metrics_hours import compute_hours
from workload.metrics_overview import compute_overview
from workload.metrics_requirements import compute_requirements, requirement_details
from workload.metrics_search import compute_search
from workload.metrics_tasks import compute_task_detail, compute_tasks
from workload.models import DatasetNotLoadedError, hours_frame, to_payloads
from workload.teams import team_payload
from workload_api.schemas import (
    DashboardFiltersModel,
    DatasetStatusResponse,
    HoursRowsPayload,
    MetaTeamsResponse,
    RequirementRowsPayload,
)
from workload_api.session import DashboardSession


app = FastAPI(title="Workload Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_session() -> DashboardSession:
    return DashboardSession()


def _filters_from_model(model: DashboardFiltersModel, session: DashboardSession) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(
        raw,
        default_top_n=session.settings.max_matrix_tasks,
        default_low_investment=session.settings.thresholds.low_investment_percent,
    )


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(name: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, DatasetNotLoadedError):
        logger.warning("%s: %s", name, exc)
        status = 409
    else:
        logger.exception("%s failed", name)
        status = 500
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


def _export_frame(payloads: list) -> pd.DataFrame:
    df = pd.DataFrame(payloads)
    if df.empty:
        return df
    return df.apply(lambda col: col.map(lambda v: v.value if isinstance(v, Enum) else v))


def _not_found(what: str, key: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Unknown {what}: {key}", "type": "NotFound"})


@app.get("/dataset", response_model=DatasetStatusResponse)
def dataset_status():
    try:
        return _json(get_session().status())
    except Exception as exc:
        return _error("dataset_status", exc)


@app.post("/dataset/hours", response_model=DatasetStatusResponse)
def upload_hours(payload: HoursRowsPayload):
    try:
        session = get_session()
        session.load_hours(payload.rows, payload.exceptions)
        return _json(session.status())
    except Exception as exc:
        return _error("upload_hours", exc)


@app.post("/dataset/requirements", response_model=DatasetStatusResponse)
def upload_requirements(payload: RequirementRowsPayload):
    try:
        session = get_session()
        session.load_requirements(payload.rows)
        return _json(session.status())
    except Exception as exc:
        return _error("upload_requirements", exc)


@app.delete("/dataset/hours", response_model=DatasetStatusResponse)
def clear_hours():
    try:
        session = get_session()
        session.clear_hours()
        return _json(session.status())
    except Exception as exc:
        return _error("clear_hours", exc)


@app.delete("/dataset/requirements", response_model=DatasetStatusResponse)
def clear_requirements():
    try:
        session = get_session()
        session.clear_requirements()
        return _json(session.status())
    except Exception as exc:
        return _error("clear_requirements", exc)


@app.delete("/dataset", response_model=DatasetStatusResponse)
def clear_dataset():
    try:
        session = get_session()
        session.clear()
        return _json(session.status())
    except Exception as exc:
        return _error("clear_dataset", exc)


@app.get("/meta/teams", response_model=MetaTeamsResponse)
def meta_teams():
    try:
        return _json({"teams": [team_payload(t) for t in get_session().teams]})
    except Exception as exc:
        return _error("meta_teams", exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        return _error("overview", exc)


@app.post("/employees")
def employees(filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
        return _json(compute_employees(f, ctx))
    except Exception as exc:
        return _error("employees", exc)


@app.get("/employees/{key}")
def employee_detail(key: str):
    try:
        ctx = get_session().context(None)
        details = employee_details(ctx, key)
        if details is None:
            return _not_found("employee", key)
        return _json(details)
    except Exception as exc:
        return _error("employee_detail", exc)


@app.post("/hours")
def hours(filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
        return _json(compute_hours(f, ctx))
    except Exception as exc:
        return _error("hours", exc)


@app.post("/requirements")
def requirements(filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
        return _json(compute_requirements(f, ctx))
    except Exception as exc:
        return _error("requirements", exc)


@app.get("/requirements/{req_id}")
def requirement_detail(req_id: str):
    try:
        ctx = get_session().context(None)
        details = requirement_details(ctx, req_id)
        if details is None:
            return _not_found("requirement", req_id)
        return _json(details)
    except Exception as exc:
        return _error("requirement_detail", exc)


@app.post("/tasks")
def tasks(filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
        return _json(compute_tasks(f, ctx))
    except Exception as exc:
        return _error("tasks", exc)


@app.get("/tasks/detail")
def task_detail(name: str = Query(...), team_id: str = Query(default="all")):
    try:
        ctx = get_session().context({"team_id": team_id})
        details = compute_task_detail(ctx, name)
        if details is None:
            return _not_found("task", name)
        return _json(details)
    except Exception as exc:
        return _error("task_detail", exc)


@app.post("/search")
def search(filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
        return _json(compute_search(f, ctx))
    except Exception as exc:
        return _error("search", exc)


@app.post("/export/{page}")
def export_page(page: str, filters: DashboardFiltersModel):
    try:
        session = get_session()
        f = _filters_from_model(filters, session)
        ctx = session.context(f)
    except Exception as exc:
        return _error("export_page", exc)

    filename = f"{page}.csv"
    if page == "hours":
        export_df = hours_frame(ctx.get("filtered_hours", []))
    elif page == "employees":
        export_df = _export_frame(to_payloads(ctx.get("filtered_employees", [])))
    elif page == "requirements":
        export_df = _export_frame(to_payloads(ctx.get("requirements", [])))
    elif page == "tasks":
        export_df = pd.DataFrame(
            [
                {
                    "name": t.name,
                    "employee_count": t.employee_count,
                    "total_hours": t.total_hours,
                    "work_type": t.work_type.value,
                }
                for t in ctx.get("tasks", [])
            ]
        )
    else:
        export_df = pd.DataFrame()

    csv_bytes = export_df.to_csv(index=False).encode("utf-8-sig")
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
