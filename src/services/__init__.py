"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    CorruptStateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    InMemoryAuditStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    StateStorageInterface,
    StorageError,
    create_audit_storage,
    create_state_storage,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "CorruptStateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "StateStorageInterface",
    "StorageError",
    "create_audit_storage",
    "create_state_storage",
]
