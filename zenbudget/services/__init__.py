"""Services package."""

from zenbudget.services.export import export_filename, export_to_csv
from zenbudget.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    InMemoryAuditStorage,
    InMemoryStateStorage,
    LocalStateCache,
    NotFoundError,
    StateStorageInterface,
    StorageError,
)

__all__ = [
    # Export
    "export_filename",
    "export_to_csv",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "LocalStateCache",
    "NotFoundError",
    "StateStorageInterface",
    "StorageError",
]
