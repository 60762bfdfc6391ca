"""
Serialized Engine State

The persistence port stores and returns exactly one of these blobs. The
lifecycle manager must be able to rebuild itself entirely from it.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.clock import utc_now
from src.models.budget import DeploymentBudget, DeploymentSavingsTracker
from src.models.deployment import DeploymentInfo
from src.models.sync import OfflineSyncState

STATE_SCHEMA_VERSION = 1


class EngineState(BaseModel):
    """Full tuple of engine state: active records, history and the offline queue."""

    schema_version: int = STATE_SCHEMA_VERSION
    saved_at: datetime = Field(default_factory=utc_now)

    active_deployment: Optional[DeploymentInfo] = None
    deployment_budget: Optional[DeploymentBudget] = None
    savings_tracker: Optional[DeploymentSavingsTracker] = None
    deployment_history: list[DeploymentInfo] = Field(default_factory=list)
    offline_sync: OfflineSyncState = Field(default_factory=OfflineSyncState)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, payload: str) -> "EngineState":
        return cls.model_validate_json(payload)
