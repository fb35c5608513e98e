from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    team_id: str = "all"
    query: str = ""
    requirement_status: str = "all"
    employee_type: str = "all"
    sort_by: Optional[str] = None
    sort_direction: str = "asc"
    low_investment_threshold: Optional[float] = None
    top_n: Optional[int] = None


class HoursRowsPayload(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    # Present when the export carried an exceptions sheet.
    exceptions: Optional[List[Dict[str, Any]]] = None


class RequirementRowsPayload(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class DatasetStatusResponse(BaseModel):
    hours_loaded: bool
    requirements_loaded: bool
    hours: int
    hours_exceptions: int
    requirements: int


class TeamModel(BaseModel):
    id: str
    name: str
    manager: str = ""
    employees: List[str] = Field(default_factory=list)


class MetaTeamsResponse(BaseModel):
    teams: List[TeamModel]
