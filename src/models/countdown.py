"""
Read-only views derived from the active deployment.

Neither model is ever persisted; both are rebuilt from the deployment's
dates and the current instant on every query.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.deployment import CountdownMilestone, DeploymentPhase


class UpcomingMilestone(CountdownMilestone):
    days_until: int = Field(ge=0)


class DeploymentCountdown(BaseModel):
    """Countdown statistics for the active deployment."""

    deployment_id: UUID
    phase: DeploymentPhase

    # Day counts
    total_days: int = Field(ge=0)
    days_complete: int = Field(ge=0)
    days_remaining: int = Field(ge=0)
    percent_complete: float = Field(ge=0.0, le=100.0)

    # Key dates
    departure_date: date
    midtour_date: date
    expected_return_date: date

    upcoming_milestones: list[UpcomingMilestone] = Field(default_factory=list)

    # Stats
    months_deployed: int = Field(ge=0)
    weekends_remaining: int = Field(ge=0)


class DeploymentSummary(BaseModel):
    """Dashboard card for the active deployment."""

    is_deployed: bool
    phase: DeploymentPhase
    days_remaining: int
    percent_complete: float
    additional_monthly_pay: Decimal
    projected_savings: Decimal
    savings_progress: float
    next_milestone: Optional[UpcomingMilestone] = None
