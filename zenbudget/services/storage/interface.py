"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for another document store later
2. Use in-memory storage for testing
3. Keep an offline copy behind the same interface

The interface is intentionally simple: one budget document per user,
read and written whole.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from zenbudget.models.audit import AuditEvent
from zenbudget.models.budget import BudgetState, initial_state
from zenbudget.state.mutations import set_display_name


# Placeholder name shown before the user has told us who they are
PLACEHOLDER_DISPLAY_NAME = "Friend"


class StateStorageInterface(ABC):
    """
    Abstract interface for budget document storage.

    Any storage implementation (Google Sheets, local files, memory)
    must implement these methods.
    """

    @abstractmethod
    async def load_state(self, user_id: str) -> Optional[BudgetState]:
        """
        Load a user's budget document.

        Args:
            user_id: Opaque identifier of the document owner

        Returns:
            The stored document merged over the initial state,
            or None if the user has no document yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save_state(self, user_id: str, state: BudgetState) -> bool:
        """
        Replace a user's budget document.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    async def initialize_user(
        self,
        user_id: str,
        display_name: Optional[str] = None,
        new_state: Optional[BudgetState] = None,
    ) -> BudgetState:
        """
        Make sure a document exists for the user.

        Creates it from `new_state` (default: the initial state) when
        absent. A missing or placeholder display name is filled from
        `display_name`.
        """
        state = await self.load_state(user_id)
        if state is None:
            state = new_state if new_state is not None else initial_state(display_name)
            await self.save_state(user_id, state)
            return state

        current = (state.display_name or "").strip()
        if display_name and (not current or current == PLACEHOLDER_DISPLAY_NAME):
            state = set_display_name(state, display_name)
            await self.save_state(user_id, state)
        return state


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent events for one user (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
