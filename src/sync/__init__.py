"""Offline sync package."""

from src.sync.queue import (
    AcknowledgingSyncHandler,
    OfflineMutationQueue,
    SyncError,
    SyncHandlerInterface,
)

__all__ = [
    "AcknowledgingSyncHandler",
    "OfflineMutationQueue",
    "SyncError",
    "SyncHandlerInterface",
]
