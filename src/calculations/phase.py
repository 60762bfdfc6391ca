"""
Deployment Phase Classification

Maps a deployment's key dates onto one of five phases. Rules are evaluated
in order and every input produces a phase:

1. Returned (actual return date set):
   post_deployment for the first 90 days home, then not_deployed.
2. Not yet departed:
   pre_deployment within 90 days of departure, else not_deployed.
3. Departed, not yet returned:
   redeployment within 30 days of the expected return (including an
   overdue return), else deployment.
"""

from datetime import date, datetime
from typing import Optional

from src.clock import days_until, to_instant
from src.models.deployment import DeploymentPhase

PRE_DEPLOYMENT_WINDOW_DAYS = 90
REDEPLOYMENT_WINDOW_DAYS = 30
POST_DEPLOYMENT_WINDOW_DAYS = 90


def classify_phase(
    departure_date: date,
    expected_return_date: date,
    actual_return_date: Optional[date],
    now: datetime,
    pre_deployment_window_days: int = PRE_DEPLOYMENT_WINDOW_DAYS,
    redeployment_window_days: int = REDEPLOYMENT_WINDOW_DAYS,
    post_deployment_window_days: int = POST_DEPLOYMENT_WINDOW_DAYS,
) -> DeploymentPhase:
    """Classify the deployment phase at instant `now`."""
    if actual_return_date is not None:
        if days_until(actual_return_date, now) <= post_deployment_window_days:
            return DeploymentPhase.POST_DEPLOYMENT
        return DeploymentPhase.NOT_DEPLOYED

    if to_instant(now) < to_instant(departure_date):
        if days_until(now, departure_date) <= pre_deployment_window_days:
            return DeploymentPhase.PRE_DEPLOYMENT
        return DeploymentPhase.NOT_DEPLOYED

    if days_until(now, expected_return_date) <= redeployment_window_days:
        return DeploymentPhase.REDEPLOYMENT

    return DeploymentPhase.DEPLOYMENT
