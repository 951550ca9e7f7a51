"""
State Sync Service

Keeps the in-session budget document, the local cache and the remote
store in step:

    edit -> local cache (immediately) -> remote store (debounced, retried)
    remote store -> poll -> observers (documents changed elsewhere)

DESIGN DECISION: The local state always wins while a write is pending
or in flight. A poll that sees a remote document different from the last one we wrote
or read is ignored until our own pending write lands, so an edit is never
overwritten by the stale copy it is about to replace.

Failures never reach the calculation path: a failed remote write leaves
the status at ERROR with the document safe in the local cache, and an
unreachable backend at load time puts the session OFFLINE.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

import structlog

from zenbudget.audit.logger import AuditLogger
from zenbudget.models.budget import BudgetState, initial_state
from zenbudget.services.storage.interface import StateStorageInterface, StorageError
from zenbudget.services.sync.debounce import DebouncedWriter


class SyncStatus(str, Enum):
    """Connection state shown next to the document."""
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"
    OFFLINE = "offline"


UpdateCallback = Callable[[BudgetState], None]
ErrorCallback = Callable[[Exception], None]


class StateSyncService:
    """
    Loads, saves and watches one user's budget document.

    Args:
        storage: Remote store. None runs the service offline.
        cache: Local copy, written on every save.
        audit_logger: Receives sync events. Defaults to a local-only logger.
        debounce_seconds: Quiet period before a remote write.
        poll_interval_seconds: Delay between subscription polls.
        default_monthly_budget: Daily-ledger budget for newly created documents.
        default_fixed_budget: Fixed-ledger budget for newly created documents.
    """

    def __init__(
        self,
        storage: Optional[StateStorageInterface],
        cache: Optional[StateStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        debounce_seconds: float = 1.0,
        poll_interval_seconds: float = 15.0,
        default_monthly_budget: Optional[Decimal] = None,
        default_fixed_budget: Optional[Decimal] = None,
    ):
        self._storage = storage
        self._cache = cache
        self._audit = audit_logger or AuditLogger()
        self._logger = structlog.get_logger("zenbudget.sync")
        self._writer = DebouncedWriter(debounce_seconds, self._write_remote)
        self._poll_interval = poll_interval_seconds
        self._default_monthly_budget = default_monthly_budget
        self._default_fixed_budget = default_fixed_budget

        self._status = SyncStatus.IDLE if storage is not None else SyncStatus.OFFLINE
        self._last_error: Optional[str] = None
        self._last_synced_at: Optional[datetime] = None
        # Last document exchanged with the remote store, per user
        self._known: dict[str, dict] = {}
        # Bumped whenever a remote write starts
        self._write_generation = 0

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def last_synced_at(self) -> Optional[datetime]:
        return self._last_synced_at

    @property
    def is_online(self) -> bool:
        return self._storage is not None and self._status != SyncStatus.OFFLINE

    @property
    def has_pending_write(self) -> bool:
        return self._writer.is_busy

    def _mark_synced(self, user_id: str, state: BudgetState) -> None:
        self._known[user_id] = state.to_document()
        self._status = SyncStatus.SYNCED
        self._last_error = None
        self._last_synced_at = datetime.utcnow()

    async def _write_cache(self, user_id: str, state: BudgetState) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.save_state(user_id, state)
        except StorageError as e:
            await self._audit.log_error("cache_write_failed", str(e), {"user_id": user_id})

    # =========================================================================
    # LOAD / SAVE
    # =========================================================================

    def new_document(self, display_name: Optional[str] = None) -> BudgetState:
        """Initial state for a user with no stored document."""
        return initial_state(
            display_name,
            default_monthly_budget=self._default_monthly_budget,
            default_fixed_budget=self._default_fixed_budget,
        )

    async def load(self, user_id: str, display_name: Optional[str] = None) -> BudgetState:
        """
        Load the user's document.

        Order: remote store (creating the document if needed), then the
        local cache, then a fresh initial state.
        """
        if self._storage is not None:
            try:
                state = await self._storage.initialize_user(
                    user_id, display_name, self.new_document(display_name)
                )
            except StorageError as e:
                self._status = SyncStatus.OFFLINE
                self._last_error = str(e)
                await self._audit.log_sync_error(user_id, str(e))
            else:
                self._mark_synced(user_id, state)
                await self._write_cache(user_id, state)
                await self._audit.log_state_loaded(user_id, "remote")
                return state

        if self._cache is not None:
            try:
                state = await self._cache.load_state(user_id)
            except StorageError as e:
                state = None
                await self._audit.log_error("cache_read_failed", str(e), {"user_id": user_id})
            if state is not None:
                await self._audit.log_state_loaded(user_id, "cache")
                return state

        await self._audit.log_state_loaded(user_id, "initial")
        return self.new_document(display_name)

    async def save(self, user_id: str, state: BudgetState) -> Optional[asyncio.Task]:
        """
        Persist an edited document.

        The cache is written now; the remote write is debounced. Returns
        the pending write task, or None when running offline.
        """
        await self._write_cache(user_id, state)
        if self._storage is None or self._status == SyncStatus.OFFLINE:
            return None
        self._status = SyncStatus.SYNCING
        return self._writer.schedule(user_id, state)

    async def flush(self) -> Optional[bool]:
        """Push any pending write immediately (e.g. before the session ends)."""
        return await self._writer.flush()

    async def _write_remote(self, user_id: str, state: BudgetState) -> bool:
        self._write_generation += 1
        try:
            await self._storage.save_state(user_id, state)
        except StorageError as e:
            self._status = SyncStatus.ERROR
            self._last_error = str(e)
            await self._audit.log_save_failed(user_id, str(e))
            return False

        self._mark_synced(user_id, state)
        await self._audit.log_state_saved(user_id, "remote")
        return True

    async def reconnect(self, user_id: str) -> Optional[BudgetState]:
        """
        Leave offline mode if the remote store answers again.

        Returns the remote document, or None when still unreachable.
        """
        if self._storage is None:
            return None
        try:
            state = await self._storage.load_state(user_id)
        except StorageError as e:
            self._last_error = str(e)
            return None
        self._status = SyncStatus.IDLE
        if state is not None:
            self._mark_synced(user_id, state)
        return state

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    async def poll_once(self, user_id: str) -> Optional[BudgetState]:
        """
        Fetch the remote document once.

        Returns it only when it differs from the last document exchanged
        and no local write is pending or running; otherwise None.
        """
        if self._storage is None or self._writer.is_busy:
            return None
        generation = self._write_generation
        state = await self._storage.load_state(user_id)
        # A write that started during the read makes the result stale
        if state is None or self._writer.is_busy or generation != self._write_generation:
            return None
        document = state.to_document()
        if document == self._known.get(user_id):
            return None
        self._mark_synced(user_id, state)
        await self._write_cache(user_id, state)
        return state

    def subscribe(
        self,
        user_id: str,
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """
        Watch the remote document for changes made elsewhere.

        Must be called from a running event loop. Returns an unsubscribe
        callable that stops the polling task.
        """
        if self._storage is None:
            return lambda: None

        task = asyncio.get_running_loop().create_task(
            self._poll_loop(user_id, on_update, on_error)
        )

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def _poll_loop(
        self,
        user_id: str,
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        while True:
            try:
                state = await self.poll_once(user_id)
            except StorageError as e:
                self._status = SyncStatus.ERROR
                self._last_error = str(e)
                await self._audit.log_sync_error(user_id, str(e))
                if on_error is not None:
                    on_error(e)
            else:
                if state is not None:
                    self._logger.info("remote_update", user_id=user_id)
                    on_update(state)
            await asyncio.sleep(self._poll_interval)
