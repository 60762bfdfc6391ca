"""
Offline Sync Records

Mutations made while the device has no connectivity are buffered as
queue items and pushed when connectivity returns.

CRITICAL: The queue never silently drops work. An item leaves the queue
only after it reached SYNCED and the caller explicitly cleared synced
items. FAILED items stay visible until a later retry succeeds.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.clock import utc_now


class OfflineItemType(str, Enum):
    """Kind of mutation buffered while offline."""
    TRANSACTION = "transaction"
    BUDGET_UPDATE = "budget_update"
    GOAL_UPDATE = "goal_update"


class SyncStatus(str, Enum):
    """
    Per-item sync state.

    pending -> syncing -> synced
    pending -> syncing -> failed -> (retry) pending
    """
    PENDING = "pending"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"


class OfflineQueueItem(BaseModel):
    """One buffered mutation."""

    id: UUID = Field(default_factory=uuid4)
    type: OfflineItemType
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque mutation payload"
    )
    created_at: datetime = Field(default_factory=utc_now)
    sync_status: SyncStatus = SyncStatus.PENDING
    retry_count: int = Field(default=0, ge=0)
    last_attempt: Optional[datetime] = None
    error: Optional[str] = None


class OfflineSyncState(BaseModel):
    """Connectivity flag, aggregate counters and the queue itself."""

    is_online: bool = True
    last_sync_at: Optional[datetime] = None
    pending_items: int = Field(default=0, ge=0)
    failed_items: int = Field(default=0, ge=0)
    queue: list[OfflineQueueItem] = Field(default_factory=list)

    def items_with_status(self, status: SyncStatus) -> list[OfflineQueueItem]:
        return [item for item in self.queue if item.sync_status == status]
