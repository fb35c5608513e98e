from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

from workload.data import DatasetContext, build_dataset, prepare_context
from workload.filters import DashboardFilters
from workload.models import HoursLoadResult, HoursRows, HoursRowsWithExceptions
from workload.settings import DashboardSettings, get_settings
from workload.teams import Team, load_teams

logger = logging.getLogger(__name__)

TEAMS_ENV_VAR = "WORKLOAD_TEAMS_PATH"


class DashboardSession:
    """In-memory holder for the raw uploads and the dataset built from them.

    Every load or clear rebuilds the DatasetContext from scratch so requirement
    linking always reflects the current hours.
    """

    def __init__(
        self,
        settings: Optional[DashboardSettings] = None,
        teams: Optional[Sequence[Team]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.teams: List[Team] = list(teams) if teams is not None else load_teams(os.environ.get(TEAMS_ENV_VAR))
        self._hours_load: Optional[HoursLoadResult] = None
        self._requirement_rows: Optional[List[Dict[str, Any]]] = None
        self.dataset: DatasetContext = build_dataset(None, None, self.settings)

    def _rebuild(self) -> DatasetContext:
        self.dataset = build_dataset(self._hours_load, self._requirement_rows, self.settings)
        return self.dataset

    def load_hours(
        self,
        rows: Sequence[Mapping[str, Any]],
        exceptions: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> DatasetContext:
        if exceptions is None:
            self._hours_load = HoursRows(rows=[dict(r) for r in rows])
        else:
            self._hours_load = HoursRowsWithExceptions(
                rows=[dict(r) for r in rows],
                exceptions=[dict(r) for r in exceptions],
            )
        logger.info("Loaded %d raw hours rows", len(rows))
        return self._rebuild()

    def load_hours_result(self, result: HoursLoadResult) -> DatasetContext:
        self._hours_load = result
        return self._rebuild()

    def load_requirements(self, rows: Sequence[Mapping[str, Any]]) -> DatasetContext:
        self._requirement_rows = [dict(r) for r in rows]
        logger.info("Loaded %d raw requirement rows", len(rows))
        return self._rebuild()

    def clear_hours(self) -> DatasetContext:
        self._hours_load = None
        return self._rebuild()

    def clear_requirements(self) -> DatasetContext:
        self._requirement_rows = None
        return self._rebuild()

    def clear(self) -> DatasetContext:
        self._hours_load = None
        self._requirement_rows = None
        return self._rebuild()

    def status(self) -> Dict[str, Any]:
        ds = self.dataset
        return {
            "hours_loaded": ds.hours is not None,
            "requirements_loaded": ds.requirements is not None,
            "hours": len(ds.hours or ()),
            "hours_exceptions": len(ds.hours_exceptions),
            "requirements": len(ds.requirements or ()),
        }

    def context(self, filters: dict | DashboardFilters | None) -> Dict[str, Any]:
        return prepare_context(filters, self.dataset, self.teams)
