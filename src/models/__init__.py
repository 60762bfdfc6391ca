"""
Data Models Package

This package contains all Pydantic models used by the deployment engine.
All data flowing through the engine must conform to these schemas.
"""

from src.models.deployment import (
    ConnectivityLevel,
    CountdownMilestone,
    CountdownMilestoneType,
    CZTEStatus,
    DeploymentInfo,
    DeploymentLocation,
    DeploymentPayAdjustments,
    DeploymentPhase,
    DeploymentType,
)
from src.models.budget import (
    AdjustmentType,
    DeploymentBudget,
    DeploymentExpenseAdjustment,
    DeploymentSavingsSnapshot,
    DeploymentSavingsTracker,
    FamilyBudget,
    FamilyBudgetCategory,
    SavingsAllocation,
    SavingsMilestone,
    SavingsSnapshotInput,
)
from src.models.countdown import (
    DeploymentCountdown,
    DeploymentSummary,
    UpcomingMilestone,
)
from src.models.sync import (
    OfflineItemType,
    OfflineQueueItem,
    OfflineSyncState,
    SyncStatus,
)
from src.models.state import EngineState
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Deployment models
    "ConnectivityLevel",
    "CountdownMilestone",
    "CountdownMilestoneType",
    "CZTEStatus",
    "DeploymentInfo",
    "DeploymentLocation",
    "DeploymentPayAdjustments",
    "DeploymentPhase",
    "DeploymentType",
    # Budget and savings models
    "AdjustmentType",
    "DeploymentBudget",
    "DeploymentExpenseAdjustment",
    "DeploymentSavingsSnapshot",
    "DeploymentSavingsTracker",
    "FamilyBudget",
    "FamilyBudgetCategory",
    "SavingsAllocation",
    "SavingsMilestone",
    "SavingsSnapshotInput",
    # Derived views
    "DeploymentCountdown",
    "DeploymentSummary",
    "UpcomingMilestone",
    # Offline sync models
    "OfflineItemType",
    "OfflineQueueItem",
    "OfflineSyncState",
    "SyncStatus",
    # Persistence
    "EngineState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
