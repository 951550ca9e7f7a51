"""
Integration tests for BudgetSession.

Runs the full edit -> persist -> recompute flow against in-memory
storage, a temporary local cache and fake AI collaborators.
"""

import asyncio
import pytest
from decimal import Decimal

from zenbudget.agents import ReceiptScanError
from zenbudget.audit import AuditLogger
from zenbudget.models.audit import AuditEventType
from zenbudget.models.budget import FixedExpenseCategory, ThemeColor
from zenbudget.models.receipt import ReceiptExtraction, SpendingInsight
from zenbudget.orchestrator import BudgetSession
from zenbudget.services.storage import (
    InMemoryAuditStorage,
    InMemoryStateStorage,
    LocalStateCache,
)
from zenbudget.services.sync import StateSyncService


class FakeReceiptAgent:

    def __init__(self, extraction=None, message="ok", error=None):
        self.extraction = extraction
        self.message = message
        self.error = error
        self.calls = []

    async def scan(self, image_bytes, mime_type):
        self.calls.append(mime_type)
        if self.error is not None:
            raise self.error
        return self.extraction, self.message


class FakeInsightAgent:

    async def generate_insight(self, state, year):
        return SpendingInsight(text=f"Nice work, {state.display_name}.", generated=True, year=year)


def open_session(tmp_path, **kwargs):
    storage = InMemoryStateStorage()
    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)
    sync = StateSyncService(
        storage=storage,
        cache=LocalStateCache(tmp_path),
        audit_logger=audit_logger,
        debounce_seconds=0,
    )

    async def scenario():
        return await BudgetSession.open("u1", sync, "Asha", audit_logger=audit_logger, **kwargs)

    session = asyncio.run(scenario())
    return session, storage, audit_storage


class TestSessionEdits:
    """Tests for edits flowing through to storage and views."""

    def test_open_creates_document(self, tmp_path):
        session, storage, _ = open_session(tmp_path)
        assert session.state.display_name == "Asha"
        assert asyncio.run(storage.load_state("u1")) == session.state

    def test_empty_user_id_rejected(self, tmp_path):
        sync = StateSyncService(storage=None)
        with pytest.raises(ValueError):
            BudgetSession("", sync)

    def test_edits_persist_and_recompute(self, tmp_path):
        """Test a month of edits lands remotely and shows in the views."""
        session, storage, audit = open_session(tmp_path)

        async def scenario():
            await session.update_month_budget(2025, 1, Decimal("3100"))
            await session.update_expense("2025-01-01", Decimal("500"), "Groceries")
            await session.add_fixed_expense(2025, 1, FixedExpenseCategory.RENT, Decimal("9000"))
            before = session.month_view(2025, 1).daily_remaining
            await session.update_expense("2025-01-02", Decimal("100"))
            after = session.month_view(2025, 1).daily_remaining
            await session.close()
            return before, after

        before, after = asyncio.run(scenario())

        assert before == Decimal("2600")
        assert after == Decimal("2500")
        view = session.month_view(2025, 1)
        assert view.total_fixed == Decimal("9000")
        assert view.grand_total_spent == Decimal("9600")

        stored = asyncio.run(storage.load_state("u1"))
        assert stored == session.state
        types = [e.event_type for e in audit.events]
        assert AuditEventType.MONTH_BUDGET_UPDATED in types
        assert types.count(AuditEventType.EXPENSE_UPDATED) == 2
        assert AuditEventType.FIXED_EXPENSE_ADDED in types

    def test_carry_over_visible_in_next_month(self, tmp_path):
        session, _, _ = open_session(tmp_path)

        async def scenario():
            await session.update_expense("2025-01-15", Decimal("1000"))
            await session.close()

        asyncio.run(scenario())
        february = session.month_view(2025, 2)
        assert february.start_balance == Decimal("2100")
        assert february.effective_budget == Decimal("5200")

    def test_delete_fixed_expense(self, tmp_path):
        session, _, audit = open_session(tmp_path)

        async def scenario():
            item = await session.add_fixed_expense(2025, 3, FixedExpenseCategory.BILLS, Decimal("800"))
            await session.delete_fixed_expense(2025, 3, item.id)
            await session.close()

        asyncio.run(scenario())
        assert session.state.fixed_items_for("2025-03") == []
        assert audit.events[-1].event_type in (
            AuditEventType.FIXED_EXPENSE_DELETED,
            AuditEventType.STATE_SAVED,
        )

    def test_preferences_single_save(self, tmp_path):
        session, _, audit = open_session(tmp_path)

        async def scenario():
            await session.update_preferences(theme_color=ThemeColor.ROSE, is_dark_mode=False)
            await session.update_preferences()
            await session.close()

        asyncio.run(scenario())
        assert session.state.theme_color == ThemeColor.ROSE
        assert session.state.is_dark_mode is False
        prefs = [e for e in audit.events if e.event_type == AuditEventType.PREFERENCES_UPDATED]
        assert len(prefs) == 1
        assert prefs[0].details == {"theme_color": "rose", "is_dark_mode": False}

    def test_invalid_edit_leaves_state_alone(self, tmp_path):
        session, _, _ = open_session(tmp_path)
        before = session.state
        with pytest.raises(ValueError):
            asyncio.run(session.update_expense("2025-01-01", Decimal("-1")))
        assert session.state is before

    def test_refresh_adopts_remote_change(self, tmp_path):
        session, storage, _ = open_session(tmp_path)
        other = session.state.model_copy(update={"display_name": "Asha K"})
        storage.put_document("u1", other.to_document())

        assert asyncio.run(session.refresh()) is True
        assert session.state.display_name == "Asha K"
        assert asyncio.run(session.refresh()) is False


class TestSessionExport:

    def test_export_csv(self, tmp_path):
        session, _, audit = open_session(tmp_path)

        async def scenario():
            await session.update_expense("2025-01-01", Decimal("50"))
            filename, content = await session.export_csv(2025)
            await session.close()
            return filename, content

        filename, content = asyncio.run(scenario())
        assert filename == "zenbudget_export_2025.csv"
        assert content.splitlines()[1] == "2025-01-01,Daily,General,50,"
        exports = [e for e in audit.events if e.event_type == AuditEventType.EXPORT_CREATED]
        assert exports[0].details == {"year": 2025, "row_count": 1}


class TestSessionAi:
    """Tests for the receipt and insight flows."""

    def test_scan_receipt_is_only_a_proposal(self, tmp_path):
        """Test scanning does not change the document."""
        extraction = ReceiptExtraction(amount=Decimal("45.50"), category="Grocery", note="Cafe")
        agent = FakeReceiptAgent(extraction=extraction)
        session, _, audit = open_session(tmp_path, receipt_agent=agent)
        before = session.state

        result, message = asyncio.run(session.scan_receipt(b"img", "r.png", "image/PNG"))

        assert result == extraction
        assert message == "ok"
        assert agent.calls == ["image/png"]
        assert session.state is before
        assert audit.events[-1].event_type == AuditEventType.RECEIPT_SCANNED

    def test_scan_rejected_image(self, tmp_path):
        agent = FakeReceiptAgent(error=ReceiptScanError("Image quality too low"))
        session, _, audit = open_session(tmp_path, receipt_agent=agent)

        result, message = asyncio.run(session.scan_receipt(b"img", "r.png", "image/png"))

        assert result is None
        assert message == "Image quality too low"
        assert audit.events[-1].event_type == AuditEventType.RECEIPT_REJECTED

    def test_scan_wrong_file_type(self, tmp_path):
        agent = FakeReceiptAgent()
        session, _, _ = open_session(tmp_path, receipt_agent=agent)

        result, message = asyncio.run(session.scan_receipt(b"%PDF", "r.pdf", "application/pdf"))
        assert result is None
        assert "Unsupported image type" in message
        assert agent.calls == []

    def test_scan_without_agent(self, tmp_path):
        session, _, _ = open_session(tmp_path)
        result, message = asyncio.run(session.scan_receipt(b"img", "r.png", "image/png"))
        assert result is None
        assert message == "Receipt scanning is not available."

    def test_log_receipt_adds_to_day(self, tmp_path):
        """Test an accepted receipt accumulates onto the day's spend and note."""
        session, _, _ = open_session(tmp_path)
        extraction = ReceiptExtraction(amount=Decimal("45.50"), note="Cafe")

        async def scenario():
            await session.update_expense("2025-01-05", Decimal("100"), "Lunch")
            await session.log_receipt(extraction, "2025-01-05")
            await session.log_receipt(extraction.model_copy(update={"note": ""}), "2025-01-06")
            await session.close()

        asyncio.run(scenario())
        assert session.state.expenses["2025-01-05"] == Decimal("145.50")
        assert session.state.notes["2025-01-05"] == "Lunch; Cafe"
        assert session.state.expenses["2025-01-06"] == Decimal("45.50")

    def test_generate_insight(self, tmp_path):
        session, _, audit = open_session(tmp_path, insight_agent=FakeInsightAgent())
        insight = asyncio.run(session.generate_insight(2025))

        assert insight.text == "Nice work, Asha."
        assert audit.events[-1].details == {"year": 2025, "generated": True}

    def test_insight_without_agent(self, tmp_path):
        session, _, audit = open_session(tmp_path)
        insight = asyncio.run(session.generate_insight(2025))

        assert insight.generated is False
        assert audit.events[-1].details == {"year": 2025, "generated": False}
