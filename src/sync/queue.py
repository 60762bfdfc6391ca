"""
Offline Mutation Queue

Buffers state-changing operations made while the device has no
connectivity and drains them, in FIFO order, when it comes back.

GUARANTEES:
- Items are attempted one at a time, in the order they were added
- A failure on one item never blocks or rolls back the others
- Failed items stay in the queue with their error and retry count
- Only clear_synced_items removes anything, and only SYNCED items

Retry policy is the caller's business: the queue records attempts and
outcomes, it never schedules them.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

from src.clock import ClockInterface, SystemClock
from src.models.sync import (
    OfflineItemType,
    OfflineQueueItem,
    OfflineSyncState,
    SyncStatus,
)


class SyncError(Exception):
    """Raised by a sync handler when an item could not be delivered."""
    pass


class SyncHandlerInterface(ABC):
    """
    Delivers one queued mutation to the remote system.

    Implementations raise on failure; returning normally means delivered.
    """

    @abstractmethod
    async def push(self, item: OfflineQueueItem) -> None:
        pass


class AcknowledgingSyncHandler(SyncHandlerInterface):
    """
    Accepts every item.

    Used when the app runs without a remote backend: items still move
    through the full pending -> syncing -> synced cycle.
    """

    async def push(self, item: OfflineQueueItem) -> None:
        return None


class OfflineMutationQueue:
    """
    FIFO queue of offline mutations with per-item sync status.

    Operates directly on an OfflineSyncState so the owner can persist
    that record as part of its own state.
    """

    def __init__(
        self,
        state: Optional[OfflineSyncState] = None,
        handler: Optional[SyncHandlerInterface] = None,
        clock: Optional[ClockInterface] = None,
    ):
        self._state = state or OfflineSyncState()
        self._handler = handler or AcknowledgingSyncHandler()
        self._clock = clock or SystemClock()

    @property
    def state(self) -> OfflineSyncState:
        return self._state

    def add(self, item_type: OfflineItemType, data: dict[str, Any]) -> OfflineQueueItem:
        """Append a new pending item."""
        item = OfflineQueueItem(
            type=OfflineItemType(item_type),
            data=dict(data),
            created_at=self._clock.now(),
        )
        self._state.queue.append(item)
        self._state.pending_items += 1
        return item

    async def process(self) -> list[OfflineQueueItem]:
        """
        Attempt every pending item, oldest first.

        No-op when offline or when nothing is pending. Returns the attempted
        items in their final state (SYNCED or FAILED).

        An item whose push is interrupted (cancelled, timed out) goes back
        to PENDING before the interruption propagates.
        """
        state = self._state
        if not state.is_online:
            return []

        pending_ids = [
            item.id for item in state.queue if item.sync_status == SyncStatus.PENDING
        ]
        if not pending_ids:
            return []
        attempted = []

        for item_id in pending_ids:
            index = self._index_of(item_id)
            if index is None:
                continue

            now = self._clock.now()
            item = state.queue[index].model_copy(update={
                "sync_status": SyncStatus.SYNCING,
                "last_attempt": now,
            })
            state.queue[index] = item

            try:
                await self._handler.push(item)
            except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
                state.queue[index] = item.model_copy(update={"sync_status": SyncStatus.PENDING})
                self._recount()
                raise
            except Exception as e:
                item = item.model_copy(update={
                    "sync_status": SyncStatus.FAILED,
                    "retry_count": item.retry_count + 1,
                    "error": str(e) or type(e).__name__,
                })
            else:
                item = item.model_copy(update={
                    "sync_status": SyncStatus.SYNCED,
                    "error": None,
                })

            state.queue[index] = item
            attempted.append(item)

        self._recount()
        state.last_sync_at = self._clock.now()
        return attempted

    async def set_online_status(self, is_online: bool) -> list[OfflineQueueItem]:
        """
        Record connectivity. Going from offline to online drains the queue.

        Returns the items attempted by that drain (empty otherwise).
        """
        came_online = is_online and not self._state.is_online
        self._state.is_online = is_online
        if came_online:
            return await self.process()
        return []

    def clear_synced_items(self) -> int:
        """Drop SYNCED items. Pending and failed items are kept. Returns the number removed."""
        before = len(self._state.queue)
        self._state.queue = [
            item for item in self._state.queue if item.sync_status != SyncStatus.SYNCED
        ]
        return before - len(self._state.queue)

    def retry_failed_items(self) -> int:
        """Move FAILED items back to PENDING so the next drain retries them."""
        retried = 0
        for index, item in enumerate(self._state.queue):
            if item.sync_status == SyncStatus.FAILED:
                self._state.queue[index] = item.model_copy(
                    update={"sync_status": SyncStatus.PENDING}
                )
                retried += 1
        if retried:
            self._recount()
        return retried

    def _index_of(self, item_id) -> Optional[int]:
        for index, item in enumerate(self._state.queue):
            if item.id == item_id:
                return index
        return None

    def _recount(self) -> None:
        state = self._state
        state.pending_items = len(state.items_with_status(SyncStatus.PENDING))
        state.failed_items = len(state.items_with_status(SyncStatus.FAILED))
