"""
Deployment Savings Tracking

State machine over monthly snapshots and milestones.

INVARIANTS maintained by compute_savings_totals:
- snapshot[i].cumulative_savings = snapshot[i-1].cumulative_savings + snapshot[i].net_savings
- current_savings = last snapshot's cumulative_savings (0 with no snapshots)

Milestone achievement is ONE-WAY: check_milestones only ever sets
is_achieved, it never clears it.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from src.clock import months_in
from src.models.budget import (
    DeploymentSavingsSnapshot,
    DeploymentSavingsTracker,
    SavingsMilestone,
    SavingsSnapshotInput,
)

DEPLOYMENT_GOAL_NAME = "Deployment Goal"
DEFAULT_ON_TRACK_THRESHOLD = Decimal("0.9")


def new_savings_tracker(
    deployment_id: UUID,
    savings_goal: Decimal,
    days_remaining: int,
) -> DeploymentSavingsTracker:
    """Create a tracker with the overall goal as its seed milestone."""
    goal = Decimal(str(savings_goal))
    return DeploymentSavingsTracker(
        deployment_id=deployment_id,
        savings_goal=goal,
        milestones=[
            SavingsMilestone(
                name=DEPLOYMENT_GOAL_NAME,
                target_amount=goal,
                is_deployment_goal=True,
            )
        ],
        days_remaining=days_remaining,
    )


def compute_progress_percent(current_savings: Decimal, savings_goal: Decimal) -> float:
    """Progress toward the goal in percent. Not clamped: over-saving reads above 100."""
    if savings_goal <= 0:
        return 0.0
    return float(current_savings / savings_goal * 100)


def is_on_track(
    current_savings: Decimal,
    savings_goal: Decimal,
    months_elapsed: int,
    total_months: int,
    threshold: Union[Decimal, float] = DEFAULT_ON_TRACK_THRESHOLD,
) -> bool:
    """On track when savings reach `threshold` of the pro-rata goal."""
    total_months = max(1, total_months)
    expected_progress = Decimal(months_elapsed) / Decimal(total_months) * savings_goal
    return current_savings >= expected_progress * Decimal(str(threshold))


def compute_savings_totals(
    tracker: DeploymentSavingsTracker,
    duration_days: int,
    days_remaining: int,
    projected_monthly_savings: Optional[Decimal] = None,
    days_per_month: int = 30,
    on_track_threshold: Union[Decimal, float] = DEFAULT_ON_TRACK_THRESHOLD,
) -> DeploymentSavingsTracker:
    """Return a copy of the tracker with every derived figure recomputed."""
    snapshots = []
    running = Decimal("0")
    for snapshot in tracker.monthly_snapshots:
        running += snapshot.net_savings
        snapshots.append(snapshot.model_copy(update={"cumulative_savings": running}))

    current = running
    projected_end = current
    if projected_monthly_savings is not None:
        projected_end += projected_monthly_savings * months_in(days_remaining, days_per_month)

    return tracker.model_copy(update={
        "monthly_snapshots": snapshots,
        "current_savings": current,
        "progress_percent": compute_progress_percent(current, tracker.savings_goal),
        "on_track": is_on_track(
            current,
            tracker.savings_goal,
            len(snapshots),
            months_in(duration_days, days_per_month),
            on_track_threshold,
        ),
        "days_remaining": days_remaining,
        "projected_end_total": projected_end,
    })


def append_snapshot(
    tracker: DeploymentSavingsTracker,
    snapshot: SavingsSnapshotInput,
) -> DeploymentSavingsTracker:
    """Append a month; its cumulative figure builds on the previous one."""
    previous = (
        tracker.monthly_snapshots[-1].cumulative_savings
        if tracker.monthly_snapshots else Decimal("0")
    )
    full = DeploymentSavingsSnapshot(
        **snapshot.model_dump(),
        cumulative_savings=previous + snapshot.net_savings,
    )
    return tracker.model_copy(update={
        "monthly_snapshots": [*tracker.monthly_snapshots, full],
        "current_savings": full.cumulative_savings,
    })


def check_milestones(
    tracker: DeploymentSavingsTracker,
    now: datetime,
) -> tuple[DeploymentSavingsTracker, list[SavingsMilestone]]:
    """
    Mark every unachieved milestone whose target is met.

    Returns the updated tracker and the milestones achieved by this call.
    """
    newly_achieved = []
    milestones = []
    for milestone in tracker.milestones:
        if not milestone.is_achieved and tracker.current_savings >= milestone.target_amount:
            milestone = milestone.model_copy(update={"is_achieved": True, "achieved_at": now})
            newly_achieved.append(milestone)
        milestones.append(milestone)

    if not newly_achieved:
        return tracker, []
    return tracker.model_copy(update={"milestones": milestones}), newly_achieved


def add_milestone(
    tracker: DeploymentSavingsTracker,
    name: str,
    target_amount: Decimal,
    now: datetime,
) -> tuple[DeploymentSavingsTracker, SavingsMilestone]:
    """Append a milestone, already achieved if current savings meet it."""
    target = Decimal(str(target_amount))
    achieved = tracker.current_savings >= target
    milestone = SavingsMilestone(
        name=name,
        target_amount=target,
        is_achieved=achieved,
        achieved_at=now if achieved else None,
    )
    updated = tracker.model_copy(update={"milestones": [*tracker.milestones, milestone]})
    return updated, milestone


def set_savings_goal(
    tracker: DeploymentSavingsTracker,
    amount: Decimal,
) -> DeploymentSavingsTracker:
    """
    Change the goal and move the seed milestone's target with it.

    Raises ValidationError for a negative goal.
    """
    goal = Decimal(str(amount))
    milestones = [
        SavingsMilestone.model_validate({**m.model_dump(), "target_amount": goal})
        if m.is_deployment_goal else m
        for m in tracker.milestones
    ]
    return DeploymentSavingsTracker.model_validate({
        **tracker.model_dump(),
        "savings_goal": goal,
        "milestones": milestones,
        "progress_percent": compute_progress_percent(tracker.current_savings, goal),
    })


def months_to_goal(
    tracker: DeploymentSavingsTracker,
    projected_monthly_savings: Decimal,
) -> int:
    """Months of projected saving still needed to reach the goal."""
    if projected_monthly_savings <= 0:
        return 0
    remaining = max(Decimal("0"), tracker.savings_goal - tracker.current_savings)
    return math.ceil(remaining / projected_monthly_savings)
