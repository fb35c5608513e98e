from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

ALL_TEAM_ID = "all"

T = TypeVar("T")


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    manager: str = ""
    employees: FrozenSet[str] = frozenset()


ALL_TEAM = Team(id=ALL_TEAM_ID, name="מנהל מדור", manager="כל המדור")

DEFAULT_TEAMS: List[Team] = [
    ALL_TEAM,
    Team(
        id="logashi",
        name="צוות לוגאשי",
        manager="קרן לוגאשי",
        employees=frozenset({"395602", "218668", "218503"}),
    ),
    Team(
        id="spishvili",
        name="צוות ספישווילי",
        manager="יעקב ספישווילי",
        employees=frozenset(
            {"218452", "216461", "395701", "219137", "219302", "218654", "218652", "219311"}
        ),
    ),
    Team(
        id="retail",
        name="צוות ריטל",
        manager="תומר ריטל",
        employees=frozenset({"219253", "217620", "217623"}),
    ),
    Team(
        id="hoizman",
        name="צוות הויזמן",
        manager="אלקנה הויזמן",
        employees=frozenset({"395678", "218891", "219193", "395745"}),
    ),
]


def team_from_dict(data: dict) -> Team:
    return Team(
        id=str(data.get("id", "")).strip(),
        name=str(data.get("name", "")),
        manager=str(data.get("manager", "")),
        employees=frozenset(str(x).strip() for x in (data.get("employees") or []) if x is not None),
    )


def load_teams(path: Optional[str]) -> List[Team]:
    """Read a teams-structure JSON file, falling back to the built-in teams."""
    if not path:
        return list(DEFAULT_TEAMS)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        teams = [team_from_dict(x) for x in (data.get("teams") or []) if isinstance(x, dict)]
    except (OSError, ValueError, AttributeError) as exc:
        logger.warning("Failed to load teams structure from %s (%s); using defaults", path, exc)
        return list(DEFAULT_TEAMS)
    if not any(t.id == ALL_TEAM_ID for t in teams):
        teams.insert(0, ALL_TEAM)
    return teams


def find_team(teams: Iterable[Team], team_id: Optional[str]) -> Team:
    wanted = (team_id or ALL_TEAM_ID).strip()
    for team in teams:
        if team.id == wanted:
            return team
    if wanted != ALL_TEAM_ID:
        logger.warning("Unknown team %r; showing all employees", wanted)
    return ALL_TEAM


def is_member(employee_id: object, team: Team) -> bool:
    if team.id == ALL_TEAM_ID:
        return True
    emp = str(employee_id if employee_id is not None else "").strip()
    return any(str(x).strip() == emp for x in team.employees)


def filter_employees(employees: Sequence[T], team: Team) -> List[T]:
    if team.id == ALL_TEAM_ID:
        return list(employees)
    return [e for e in employees if is_member(getattr(e, "employee_id", ""), team)]


def filter_hours(hours: Sequence[T], team: Team) -> List[T]:
    if team.id == ALL_TEAM_ID:
        return list(hours)
    return [h for h in hours if is_member(getattr(h, "employee_id", ""), team)]


def team_payload(team: Team) -> dict:
    return {
        "id": team.id,
        "name": team.name,
        "manager": team.manager,
        "employees": sorted(team.employees),
    }
