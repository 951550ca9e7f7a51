"""Sync between the session, the local cache and the remote store."""

from zenbudget.services.sync.debounce import DebouncedWriter
from zenbudget.services.sync.service import StateSyncService, SyncStatus

__all__ = ["DebouncedWriter", "StateSyncService", "SyncStatus"]
