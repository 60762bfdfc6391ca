"""
Abstract Storage Interface

DESIGN DECISION: The engine persists ONE blob, the whole EngineState,
under one key. Storage backends only move that blob; they never look
inside it beyond (de)serialization. This allows us to:
1. Run fully offline on a local JSON file
2. Use in-memory storage for testing
3. Mirror state to Google Sheets when a spreadsheet is configured

Audit events go through a separate, append-only interface.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.state import EngineState


class StateStorageInterface(ABC):
    """
    Abstract interface for engine state persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load(self) -> Optional[EngineState]:
        """
        Load the last saved state.

        Returns:
            The saved state, or None if nothing was ever saved

        Raises:
            CorruptStateError: If the stored blob cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, state: EngineState) -> None:
        """
        Replace the stored state.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove any stored state. Later loads return None."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """Get all events for a correlation ID, oldest first."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get the most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class CorruptStateError(StorageError):
    """Stored state exists but could not be decoded."""
    pass
