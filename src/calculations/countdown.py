"""
Deployment Countdown

Pure read over the deployment's dates and the current instant. Nothing
here is persisted; callers poll and get fresh figures each time.
"""

from datetime import datetime
from typing import Iterable, Optional

from src.clock import days_between, days_until, midpoint_date, to_instant
from src.models.countdown import DeploymentCountdown, UpcomingMilestone
from src.models.deployment import CountdownMilestone, DeploymentInfo, DeploymentPhase


def compute_percent_complete(days_complete: int, total_days: int, started: bool) -> float:
    """Share of the deployment served, clamped to [0, 100]."""
    if total_days <= 0:
        # Same-day departure and return: all or nothing
        return 100.0 if started else 0.0
    return max(0.0, min(100.0, days_complete / total_days * 100))


def upcoming_milestones(
    milestones: Iterable[CountdownMilestone],
    now: datetime,
) -> list[UpcomingMilestone]:
    """Milestones dated today or later, soonest first."""
    today = to_instant(now).date()
    upcoming = [
        UpcomingMilestone(
            **milestone.model_dump(),
            days_until=max(0, days_until(now, milestone.event_date)),
        )
        for milestone in milestones
        if milestone.event_date >= today
    ]
    upcoming.sort(key=lambda m: m.event_date)
    return upcoming


def build_countdown(
    deployment: DeploymentInfo,
    now: datetime,
    phase: Optional[DeploymentPhase] = None,
    days_per_month: int = 30,
) -> DeploymentCountdown:
    """
    Compute countdown statistics.

    `phase` defaults to the deployment's cached phase; the lifecycle
    manager passes a freshly classified one.
    """
    departure = deployment.departure_date
    expected_return = deployment.expected_return_date
    started = to_instant(now) >= to_instant(departure)

    total_days = days_between(departure, expected_return)
    days_complete = days_between(departure, now) if started else 0
    days_remaining = max(0, days_until(now, expected_return))

    return DeploymentCountdown(
        deployment_id=deployment.id,
        phase=phase or deployment.phase,
        total_days=total_days,
        days_complete=days_complete,
        days_remaining=days_remaining,
        percent_complete=compute_percent_complete(days_complete, total_days, started),
        departure_date=departure,
        midtour_date=midpoint_date(departure, expected_return),
        expected_return_date=expected_return,
        upcoming_milestones=upcoming_milestones(deployment.countdown_milestones, now),
        months_deployed=days_complete // days_per_month,
        weekends_remaining=days_remaining // 7,
    )
