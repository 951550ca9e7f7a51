"""Tests for the audit logger."""

import asyncio
from decimal import Decimal
from uuid import UUID

from zenbudget.audit import AuditLogger, create_correlation_id
from zenbudget.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from zenbudget.services.storage import InMemoryAuditStorage


class BrokenAuditStorage(InMemoryAuditStorage):

    async def append_event(self, event):
        raise RuntimeError("sheet is read-only")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_local_only_logging_succeeds(self):
        """Test logging with no storage configured."""
        logger = AuditLogger()
        assert asyncio.run(logger.log_state_loaded("u1", "initial")) is None

    def test_events_reach_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        async def scenario():
            await logger.log_expense_updated("u1", "2025-01-10", Decimal("500"), correlation_id)
            await logger.log_budget_updated("u1", "month", "2025-01", Decimal("4000"))
            await logger.log_fixed_expense_deleted("u1", "2025-01", "item-1")

        asyncio.run(scenario())

        assert [e.event_type for e in storage.events] == [
            AuditEventType.EXPENSE_UPDATED,
            AuditEventType.MONTH_BUDGET_UPDATED,
            AuditEventType.FIXED_EXPENSE_DELETED,
        ]
        assert storage.events[0].correlation_id == correlation_id
        assert storage.events[0].details == {"amount": "500"}
        assert all(e.user_id == "u1" for e in storage.events)

    def test_storage_failure_does_not_raise(self):
        """Test a broken audit sheet never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        event_logged = asyncio.run(logger.log(AuditEventBuilder.state_saved("u1", "remote")))
        assert event_logged is False

    def test_error_events(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        async def scenario():
            await logger.log_error("cache_write_failed", "disk full", {"user_id": "u1"})
            await logger.log_external_service_error("gemini", "timeout")

        asyncio.run(scenario())

        assert storage.events[0].severity == AuditSeverity.ERROR
        assert storage.events[0].details == {"user_id": "u1"}
        assert storage.events[1].details == {"service": "gemini"}

    def test_lookup_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        upload_id = create_correlation_id()

        async def scenario():
            await logger.log_receipt_rejected(upload_id, "too dark", correlation_id)
            await logger.log_receipt_scanned(upload_id, Decimal("12.50"), "Grocery", correlation_id)
            await logger.log_state_saved("u1", "remote")
            return await storage.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())
        assert isinstance(correlation_id, UUID)
        assert [e.event_type for e in events] == [
            AuditEventType.RECEIPT_REJECTED,
            AuditEventType.RECEIPT_SCANNED,
        ]
