"""
In-Memory Storage

Used by tests and by callers that don't want anything written to disk.
State is held as its JSON encoding so a load always returns a fresh,
independent copy, exactly as a real backend would.
"""

from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.state import EngineState
from src.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
)


class InMemoryStateStorage(StateStorageInterface):
    """Keeps the serialized state in a single attribute."""

    def __init__(self, initial: Optional[EngineState] = None):
        self._payload: Optional[str] = initial.to_json() if initial else None
        self.save_count = 0

    def load(self) -> Optional[EngineState]:
        if self._payload is None:
            return None
        return EngineState.from_json(self._payload)

    def save(self, state: EngineState) -> None:
        self._payload = state.to_json()
        self.save_count += 1

    def clear(self) -> None:
        self._payload = None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
