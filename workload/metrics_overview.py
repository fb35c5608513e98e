from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

from workload.filters import DashboardFilters
from workload.metrics_employees import employee_kpis, low_investment_employees
from workload.metrics_hours import daily_hours_exceptions, hours_totals
from workload.metrics_tasks import task_kpis
from workload.models import EmployeeSummary, HoursRecord, RequirementRecord
from workload.settings import Thresholds
from workload.teams import team_payload


def compute_stats(ctx: Dict[str, Any]) -> Dict[str, Any]:
    thresholds: Thresholds = ctx["settings"].thresholds
    employees = ctx.get("filtered_employees", [])
    hours = ctx.get("filtered_hours", [])
    requirements = ctx.get("requirements", [])
    return {
        "employees": len(employees),
        "total_hours": sum(h.hours for h in hours),
        "requirements": len(requirements),
        "over_budget": sum(1 for r in requirements if r.utilization_percent > thresholds.budget_overrun),
    }


def compute_alerts(
    *,
    employees: Sequence[EmployeeSummary],
    hours: Sequence[HoursRecord],
    requirements: Sequence[RequirementRecord],
    thresholds: Thresholds,
    low_investment_threshold: float,
) -> List[Dict[str, str]]:
    alerts: List[Dict[str, str]] = []

    over_budget = [r for r in requirements if r.utilization_percent > thresholds.budget_overrun]
    if over_budget:
        worst = max(over_budget, key=lambda r: r.utilization_percent)
        alerts.append(
            {
                "alert_type": "Budget Overrun",
                "severity": "high",
                "message": f"{len(over_budget)} requirements above {thresholds.budget_overrun:.0f}% utilization "
                f"(highest: {worst.id or worst.name} at {worst.utilization_percent:.1f}%).",
                "action": "Review scope or request a budget update for the flagged requirements.",
            }
        )

    near_limit = [
        r
        for r in requirements
        if thresholds.budget_warning < r.utilization_percent <= thresholds.budget_overrun
    ]
    if near_limit:
        alerts.append(
            {
                "alert_type": "Budget Warning",
                "severity": "medium",
                "message": f"{len(near_limit)} requirements above {thresholds.budget_warning:.0f}% utilization.",
                "action": "Track remaining budget before approving more hours.",
            }
        )

    low = low_investment_employees(employees, low_investment_threshold)
    if low:
        alerts.append(
            {
                "alert_type": "Low Investment",
                "severity": "medium",
                "message": f"{len(low)} employees below {low_investment_threshold:.0f}% investment hours.",
                "action": "Check whether maintenance work is crowding out development.",
            }
        )

    exceptions = daily_hours_exceptions(hours, thresholds)
    over = sum(1 for e in exceptions if e["kind"] == "over")
    under = len(exceptions) - over
    if over:
        alerts.append(
            {
                "alert_type": "Long Days",
                "severity": "low",
                "message": f"{over} employee-days above {thresholds.max_daily_hours:g} reported hours.",
                "action": "Confirm overtime was approved.",
            }
        )
    if under:
        alerts.append(
            {
                "alert_type": "Short Days",
                "severity": "low",
                "message": f"{under} employee-days below {thresholds.min_daily_hours:g} reported hours.",
                "action": "Remind employees to complete their reports.",
            }
        )
    return alerts


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    settings = ctx["settings"]
    employees = ctx.get("filtered_employees", [])
    hours = ctx.get("filtered_hours", [])
    requirements = ctx.get("requirements", [])
    threshold = filters.low_investment_threshold

    return {
        "filters": asdict(filters),
        "team": team_payload(ctx["team"]),
        "empty": not ctx.get("hours") and not requirements,
        "stats": compute_stats(ctx),
        "hours_totals": hours_totals(hours),
        "employee_kpis": employee_kpis(employees, threshold),
        "task_kpis": task_kpis(ctx.get("tasks", []), settings.thresholds.overloaded_task_employees),
        "alerts": compute_alerts(
            employees=employees,
            hours=hours,
            requirements=requirements,
            thresholds=settings.thresholds,
            low_investment_threshold=threshold,
        ),
    }
