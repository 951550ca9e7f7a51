"""
Main Orchestrator for ZenBudget

This module ties together all the components and defines the
end-to-end flow for every user action:

    UI event -> mutate a copy of the state -> persist the copy
             -> recompute the year -> re-render

DESIGN DECISION: The session is the only place where the document
changes. It enforces:
- Every edit goes through a copy-on-write mutation (validated)
- Every edit is cached locally before the remote write is scheduled
- Every edit is audited
- AI results are proposals; they reach the document only through the
  same edit methods a user would call

The engine itself stays pure: the session recomputes the year from the
current snapshot on demand and memoizes it until the next change.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import ValidationError

from zenbudget.agents import InsightAgent, ReceiptScanAgent, ReceiptScanError
from zenbudget.audit import AuditLogger, create_correlation_id
from zenbudget.config import get_settings
from zenbudget.engine import (
    calculate_year_data,
    get_daily_trend,
    get_month_view,
    get_monthly_summary,
    get_year_summaries,
    get_yearly_overview,
    month_key,
)
from zenbudget.models.budget import (
    BudgetState,
    DayCalculation,
    FixedExpenseCategory,
    FixedExpenseItem,
    MonthlySummary,
    MonthView,
    ThemeColor,
    YearlyOverview,
    initial_state,
)
from zenbudget.models.receipt import ReceiptExtraction, ReceiptImage, SpendingInsight
from zenbudget.services.export import export_filename, export_rows, export_to_csv
from zenbudget.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    LocalStateCache,
)
from zenbudget.services.sync import StateSyncService
from zenbudget.state import mutations


logger = structlog.get_logger("zenbudget.orchestrator")


class BudgetSession:
    """
    One user's open budget document.

    Holds the current snapshot, exposes the edit operations the UI needs
    and the derived views the engine computes from the snapshot.
    """

    def __init__(
        self,
        user_id: str,
        sync: StateSyncService,
        state: Optional[BudgetState] = None,
        audit_logger: Optional[AuditLogger] = None,
        receipt_agent: Optional[ReceiptScanAgent] = None,
        insight_agent: Optional[InsightAgent] = None,
    ):
        if not user_id:
            raise ValueError("user_id must not be empty")
        self.user_id = user_id
        self._sync = sync
        self._state = state or initial_state()
        self._audit = audit_logger or AuditLogger()
        self._receipt_agent = receipt_agent
        self._insight_agent = insight_agent
        self._year_cache: dict[int, dict[str, DayCalculation]] = {}

    @classmethod
    async def open(
        cls,
        user_id: str,
        sync: StateSyncService,
        display_name: Optional[str] = None,
        **kwargs,
    ) -> "BudgetSession":
        """Load the user's document (remote, cache or fresh) and open a session."""
        state = await sync.load(user_id, display_name)
        return cls(user_id, sync, state=state, **kwargs)

    @property
    def state(self) -> BudgetState:
        return self._state

    @property
    def sync(self) -> StateSyncService:
        return self._sync

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def year_data(self, year: int) -> dict[str, DayCalculation]:
        """Day rows for the year, recomputed after every change."""
        if year not in self._year_cache:
            self._year_cache[year] = calculate_year_data(year, self._state)
        return self._year_cache[year]

    def monthly_summary(self, year: int, month: int) -> MonthlySummary:
        return get_monthly_summary(year, month, self._state, self.year_data(year))

    def year_summaries(self, year: int) -> list[MonthlySummary]:
        return get_year_summaries(year, self._state, self.year_data(year))

    def yearly_overview(self, year: int) -> YearlyOverview:
        return get_yearly_overview(year, self._state, self.year_data(year))

    def daily_trend(self, year: int) -> list[DayCalculation]:
        return get_daily_trend(year, self.year_data(year))

    def month_view(self, year: int, month: int) -> MonthView:
        return get_month_view(year, month, self._state, self.year_data(year))

    # =========================================================================
    # EDITS
    # =========================================================================

    async def _commit(self, new_state: BudgetState) -> Optional[asyncio.Task]:
        self._state = new_state
        self._year_cache.clear()
        return await self._sync.save(self.user_id, new_state)

    def apply_remote(self, state: BudgetState) -> None:
        """Adopt a document changed elsewhere (no save, no audit)."""
        self._state = state
        self._year_cache.clear()

    async def refresh(self) -> bool:
        """Pull remote changes once. Returns True if the document changed."""
        state = await self._sync.poll_once(self.user_id)
        if state is None:
            return False
        self.apply_remote(state)
        return True

    async def update_expense(self, date_key: str, amount: Decimal, note: str = "") -> None:
        await self._commit(mutations.set_expense(self._state, date_key, amount, note))
        await self._audit.log_expense_updated(
            self.user_id, date_key, self._state.expenses[date_key]
        )

    async def update_month_budget(self, year: int, month: int, amount: Decimal) -> None:
        await self._commit(mutations.set_month_budget(self._state, year, month, amount))
        key = month_key(year, month)
        await self._audit.log_budget_updated(
            self.user_id, "month", key, self._state.custom_budgets[key]
        )

    async def update_month_fixed_budget(self, year: int, month: int, amount: Decimal) -> None:
        await self._commit(mutations.set_month_fixed_budget(self._state, year, month, amount))
        key = month_key(year, month)
        await self._audit.log_budget_updated(
            self.user_id, "fixed", key, self._state.custom_fixed_budgets[key]
        )

    async def update_default_budget(self, amount: Decimal) -> None:
        await self._commit(mutations.set_default_budget(self._state, amount))
        await self._audit.log_budget_updated(
            self.user_id, "default", "default", self._state.default_monthly_budget
        )

    async def update_default_fixed_budget(self, amount: Decimal) -> None:
        await self._commit(mutations.set_default_fixed_budget(self._state, amount))
        await self._audit.log_budget_updated(
            self.user_id, "default_fixed", "default", self._state.default_fixed_budget
        )

    async def add_fixed_expense(
        self,
        year: int,
        month: int,
        category: FixedExpenseCategory,
        amount: Decimal,
        note: str = "",
    ) -> FixedExpenseItem:
        key = month_key(year, month)
        new_state, item = mutations.add_fixed_expense(self._state, key, category, amount, note)
        await self._commit(new_state)
        await self._audit.log_fixed_expense_added(
            self.user_id, key, item.id, item.category.value, item.amount
        )
        return item

    async def delete_fixed_expense(self, year: int, month: int, item_id: str) -> None:
        key = month_key(year, month)
        await self._commit(mutations.delete_fixed_expense(self._state, key, item_id))
        await self._audit.log_fixed_expense_deleted(self.user_id, key, item_id)

    async def update_preferences(
        self,
        theme_color: Optional[ThemeColor] = None,
        is_dark_mode: Optional[bool] = None,
        display_name: Optional[str] = None,
    ) -> None:
        """Change any subset of the display preferences in one save."""
        state = self._state
        changes = {}
        if theme_color is not None:
            state = mutations.set_theme(state, theme_color)
            changes["theme_color"] = state.theme_color.value
        if is_dark_mode is not None:
            state = mutations.set_dark_mode(state, is_dark_mode)
            changes["is_dark_mode"] = state.is_dark_mode
        if display_name is not None:
            state = mutations.set_display_name(state, display_name)
            changes["display_name"] = state.display_name
        if not changes:
            return
        await self._commit(state)
        await self._audit.log_preferences_updated(self.user_id, changes)

    async def close(self) -> Optional[bool]:
        """Write any pending edit before the session goes away."""
        return await self._sync.flush()

    # =========================================================================
    # EXPORT
    # =========================================================================

    async def export_csv(self, year: int) -> tuple[str, str]:
        """Returns (filename, csv_text) for the year."""
        content = export_to_csv(self._state, year)
        await self._audit.log_export_created(
            self.user_id, year, len(export_rows(self._state, year))
        )
        return export_filename(year), content

    # =========================================================================
    # AI COLLABORATORS
    # =========================================================================

    async def scan_receipt(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: str,
    ) -> tuple[Optional[ReceiptExtraction], str]:
        """
        Read a receipt photo into a proposed entry.

        Returns (extraction, message). Nothing is saved here: the UI shows
        the proposal and calls log_receipt / add_fixed_expense if the user
        accepts it.
        """
        if self._receipt_agent is None:
            return None, "Receipt scanning is not available."

        correlation_id = create_correlation_id()
        try:
            upload = ReceiptImage(
                original_filename=filename,
                file_size_bytes=len(image_bytes),
                mime_type=mime_type,
            )
        except ValidationError as e:
            return None, e.errors()[0]["msg"]

        try:
            extraction, message = await self._receipt_agent.scan(image_bytes, upload.mime_type)
        except ReceiptScanError as e:
            await self._audit.log_receipt_rejected(upload.upload_id, str(e), correlation_id)
            return None, str(e)

        if extraction is None:
            await self._audit.log_receipt_rejected(upload.upload_id, message, correlation_id)
        else:
            await self._audit.log_receipt_scanned(
                upload.upload_id,
                extraction.amount,
                extraction.category.value,
                correlation_id,
            )
        return extraction, message

    async def log_receipt(self, extraction: ReceiptExtraction, date_key: str) -> None:
        """Add a scanned receipt to a day's spend (amounts accumulate)."""
        current = self._state.expenses.get(date_key, Decimal("0"))
        note = self._state.notes.get(date_key, "")
        if extraction.note:
            note = f"{note}; {extraction.note}" if note else extraction.note
        await self.update_expense(date_key, current + extraction.amount, note)

    async def generate_insight(self, year: int) -> SpendingInsight:
        if self._insight_agent is None:
            insight = SpendingInsight(text="Insights are not available.", year=year)
        else:
            insight = await self._insight_agent.generate_insight(self._state, year)
        await self._audit.log_insight_generated(self.user_id, year, insight.generated)
        return insight


def create_app_components(
    use_storage: bool = True,
) -> tuple[StateSyncService, AuditLogger, ReceiptScanAgent, InsightAgent]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on the local cache only.

    Returns:
        (sync_service, audit_logger, receipt_agent, insight_agent)
    """
    app_settings = get_settings().app
    state_storage = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            state_storage = GoogleSheetsStateStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except ValidationError as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    sync_service = StateSyncService(
        storage=state_storage,
        cache=LocalStateCache(app_settings.local_cache_dir),
        audit_logger=audit_logger,
        debounce_seconds=app_settings.save_debounce_seconds,
        poll_interval_seconds=app_settings.sync_poll_interval_seconds,
        default_monthly_budget=app_settings.default_monthly_budget,
        default_fixed_budget=app_settings.default_fixed_budget,
    )

    receipt_agent = ReceiptScanAgent(app_settings=app_settings, audit_logger=audit_logger)
    insight_agent = InsightAgent(app_settings=app_settings, audit_logger=audit_logger)

    return sync_service, audit_logger, receipt_agent, insight_agent
