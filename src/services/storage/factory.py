"""Backend selection from settings."""

from typing import Optional

from src.config import Settings, get_settings
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
)
from src.services.storage.interface import AuditStorageInterface, StateStorageInterface
from src.services.storage.json_file import JsonFileStateStorage
from src.services.storage.memory import InMemoryStateStorage


def create_state_storage(settings: Optional[Settings] = None) -> StateStorageInterface:
    """Build the state backend named by STORAGE_BACKEND."""
    settings = settings or get_settings()
    storage_settings = settings.storage

    if storage_settings.backend == "memory":
        return InMemoryStateStorage()
    if storage_settings.backend == "sheets":
        return GoogleSheetsStateStorage(
            state_key=storage_settings.state_key,
            client=GoogleSheetsClient(settings.google_sheets),
        )
    return JsonFileStateStorage(storage_settings.state_file_path)


def create_audit_storage(settings: Optional[Settings] = None) -> Optional[AuditStorageInterface]:
    """
    Audit events are persisted only on the sheets backend.

    Other backends log them locally through structlog and nothing else.
    """
    settings = settings or get_settings()
    if settings.storage.backend == "sheets":
        return GoogleSheetsAuditStorage(GoogleSheetsClient(settings.google_sheets))
    return None
