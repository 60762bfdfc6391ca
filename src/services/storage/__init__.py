"""
Storage Services Package

Provides the abstract state/audit interfaces and their backends: a local
JSON file (default), Google Sheets, and in-memory storage for tests.
"""

from src.services.storage.factory import create_audit_storage, create_state_storage
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CorruptStateError,
    StateStorageInterface,
    StorageError,
)
from src.services.storage.json_file import JsonFileStateStorage
from src.services.storage.memory import InMemoryAuditStorage, InMemoryStateStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptStateError",
    "StorageError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    # Factories
    "create_audit_storage",
    "create_state_storage",
]
