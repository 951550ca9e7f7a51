"""
In-memory storage backends.

Test doubles for the remote backends; without Sheets the app runs on
LocalStateCache instead. Documents are stored as their persisted dict
form so every load goes through the same merge path as the remote store.
"""

from typing import Optional
from uuid import UUID

from zenbudget.models.audit import AuditEvent
from zenbudget.models.budget import BudgetState
from zenbudget.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
)
from zenbudget.state.mutations import merge_remote


class InMemoryStateStorage(StateStorageInterface):

    def __init__(self):
        self._documents: dict[str, dict] = {}
        self.save_count = 0

    async def load_state(self, user_id: str) -> Optional[BudgetState]:
        document = self._documents.get(user_id)
        if document is None:
            return None
        return merge_remote(document)

    async def save_state(self, user_id: str, state: BudgetState) -> bool:
        self._documents[user_id] = state.to_document()
        self.save_count += 1
        return True

    def put_document(self, user_id: str, document: dict) -> None:
        """Store a raw document, as another device would."""
        self._documents[user_id] = dict(document)


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.user_id == user_id]
        return sorted(events, key=lambda e: e.timestamp, reverse=True)[:limit]
