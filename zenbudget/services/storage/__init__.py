"""
Storage Services Package

Provides abstract interfaces and concrete implementations for storing
budget documents and audit events. Google Sheets is the remote backend;
a local JSON cache and in-memory stores share the same interface.
"""

from zenbudget.services.storage.interface import (
    PLACEHOLDER_DISPLAY_NAME,
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)
from zenbudget.services.storage.local_cache import LocalStateCache
from zenbudget.services.storage.memory import InMemoryAuditStorage, InMemoryStateStorage
from zenbudget.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
)

__all__ = [
    "PLACEHOLDER_DISPLAY_NAME",
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "LocalStateCache",
]
