"""
Audit Models for the Deployment Engine

Every state change in the engine is logged as an audit event.
This provides:
1. Traceability of every figure the member sees (which operation set it)
2. Debugging information when a projection looks wrong
3. Visibility into skipped operations and sync failures

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.clock import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every public mutating operation of the lifecycle manager has its own
    event type.
    """
    # Deployment lifecycle
    DEPLOYMENT_STARTED = "deployment_started"
    DEPLOYMENT_UPDATED = "deployment_updated"
    DEPLOYMENT_ENDED = "deployment_ended"
    DEPLOYMENT_CANCELLED = "deployment_cancelled"
    PHASE_CHANGED = "phase_changed"

    # Pay
    PAY_ADJUSTED = "pay_adjusted"

    # Budget
    BUDGET_CREATED = "budget_created"
    EXPENSE_ADJUSTED = "expense_adjusted"
    FAMILY_BUDGET_SET = "family_budget_set"
    SAVINGS_ALLOCATION_SET = "savings_allocation_set"

    # Savings
    SAVINGS_TRACKER_INITIALIZED = "savings_tracker_initialized"
    SAVINGS_GOAL_UPDATED = "savings_goal_updated"
    SNAPSHOT_RECORDED = "snapshot_recorded"
    MILESTONE_ADDED = "milestone_added"
    MILESTONE_ACHIEVED = "milestone_achieved"

    # Countdown
    COUNTDOWN_MILESTONE_ADDED = "countdown_milestone_added"
    COUNTDOWN_MILESTONE_REMOVED = "countdown_milestone_removed"

    # Offline sync
    QUEUE_ITEM_ADDED = "queue_item_added"
    QUEUE_PROCESSED = "queue_processed"
    QUEUE_ITEM_FAILED = "queue_item_failed"
    QUEUE_CLEARED = "queue_cleared"
    CONNECTIVITY_CHANGED = "connectivity_changed"

    # Skipped operations
    PRECONDITION_NOT_MET = "precondition_not_met"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    STATE_SAVE_FAILED = "state_save_failed"
    STATE_RESET = "state_reset"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'deployment', 'budget', 'queue_item')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one engine session)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.deployment_started(deployment_id, "combat", "pre_deployment")
        event = AuditEventBuilder.precondition_not_met("update_expense_adjustment", "no budget")
    """

    @staticmethod
    def deployment_started(
        deployment_id: UUID,
        deployment_type: str,
        phase: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPLOYMENT_STARTED,
            entity_type="deployment",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description=f"Deployment started: {deployment_type} ({phase})",
            details={
                "type": deployment_type,
                "phase": phase,
            },
        )

    @staticmethod
    def deployment_updated(
        deployment_id: UUID,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPLOYMENT_UPDATED,
            entity_type="deployment",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description=f"Deployment updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
        )

    @staticmethod
    def deployment_ended(
        deployment_id: UUID,
        actual_return_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPLOYMENT_ENDED,
            entity_type="deployment",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description=f"Deployment ended, returned {actual_return_date}",
            details={"actual_return_date": actual_return_date},
        )

    @staticmethod
    def deployment_cancelled(
        deployment_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEPLOYMENT_CANCELLED,
            severity=AuditSeverity.WARNING,
            entity_type="deployment",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description="Deployment cancelled and discarded",
        )

    @staticmethod
    def phase_changed(
        deployment_id: UUID,
        old_phase: str,
        new_phase: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PHASE_CHANGED,
            entity_type="deployment",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description=f"Phase changed: {old_phase} -> {new_phase}",
            details={"old_phase": old_phase, "new_phase": new_phase},
        )

    @staticmethod
    def pay_adjusted(
        deployment_id: UUID,
        additional_monthly_pay: str,
        estimated_tax_savings: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAY_ADJUSTED,
            entity_type="deployment",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description=f"Pay adjusted: +${additional_monthly_pay}/month",
            details={
                "additional_monthly_pay": additional_monthly_pay,
                "estimated_tax_savings": estimated_tax_savings,
            },
        )

    @staticmethod
    def budget_event(
        event_type: AuditEventType,
        budget_id: UUID,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def savings_event(
        event_type: AuditEventType,
        deployment_id: UUID,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="savings_tracker",
            entity_id=deployment_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def milestone_achieved(
        milestone_id: UUID,
        name: str,
        target_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MILESTONE_ACHIEVED,
            entity_type="milestone",
            entity_id=milestone_id,
            correlation_id=correlation_id,
            description=f"Milestone achieved: {name} (${target_amount})",
            details={"name": name, "target_amount": target_amount},
        )

    @staticmethod
    def countdown_milestone(
        event_type: AuditEventType,
        milestone_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = "added" if event_type == AuditEventType.COUNTDOWN_MILESTONE_ADDED else "removed"
        return AuditEvent(
            event_type=event_type,
            entity_type="countdown_milestone",
            entity_id=milestone_id,
            correlation_id=correlation_id,
            description=f"Countdown milestone {verb}: {name}",
            details={"name": name},
        )

    @staticmethod
    def queue_item_added(
        item_id: UUID,
        item_type: str,
        pending_items: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUEUE_ITEM_ADDED,
            entity_type="queue_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Queued offline {item_type} ({pending_items} pending)",
            details={"type": item_type, "pending_items": pending_items},
        )

    @staticmethod
    def queue_processed(
        attempted: int,
        synced: int,
        failed: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUEUE_PROCESSED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            entity_type="queue",
            correlation_id=correlation_id,
            description=f"Offline queue processed: {synced}/{attempted} synced",
            details={"attempted": attempted, "synced": synced, "failed": failed},
        )

    @staticmethod
    def queue_item_failed(
        item_id: UUID,
        retry_count: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUEUE_ITEM_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="queue_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Queue item failed to sync (attempt {retry_count})",
            details={"retry_count": retry_count},
            error_message=error_message,
        )

    @staticmethod
    def queue_cleared(
        removed: int,
        remaining: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUEUE_CLEARED,
            entity_type="queue",
            correlation_id=correlation_id,
            description=f"Cleared {removed} synced items, {remaining} remain",
            details={"removed": removed, "remaining": remaining},
        )

    @staticmethod
    def connectivity_changed(
        is_online: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTIVITY_CHANGED,
            entity_type="queue",
            correlation_id=correlation_id,
            description="Device is online" if is_online else "Device is offline",
            details={"is_online": is_online},
        )

    @staticmethod
    def precondition_not_met(
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRECONDITION_NOT_MET,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Skipped {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )

    @staticmethod
    def state_persisted(
        event_type: AuditEventType,
        has_active_deployment: bool,
        queue_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.DEBUG,
            entity_type="state",
            correlation_id=correlation_id,
            description=f"Engine state {event_type.value.removeprefix('state_')}",
            details={
                "has_active_deployment": has_active_deployment,
                "queue_length": queue_length,
            },
        )

    @staticmethod
    def state_save_failed(
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            description=f"Failed to save engine state: {error_type}",
            error_code=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
