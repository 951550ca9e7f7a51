"""
Audit Logger

DESIGN DECISION: Every edit, sync outcome and AI call is logged.
This provides:
1. Traceability of how a budget document changed
2. Debugging capability when sync or AI calls fail

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from zenbudget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from zenbudget.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured (Google Sheets)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("zenbudget.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_updated(
        self,
        user_id: str,
        date_key: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a daily expense edit."""
        await self.log(AuditEventBuilder.expense_updated(
            user_id=user_id,
            date_key=date_key,
            amount=str(amount),
            correlation_id=correlation_id,
        ))

    async def log_budget_updated(
        self,
        user_id: str,
        scope: str,
        key: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a monthly, fixed or default budget edit."""
        await self.log(AuditEventBuilder.budget_updated(
            user_id=user_id,
            scope=scope,
            key=key,
            amount=str(amount),
            correlation_id=correlation_id,
        ))

    async def log_fixed_expense_added(
        self,
        user_id: str,
        month_key: str,
        item_id: str,
        category: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.fixed_expense_added(
            user_id=user_id,
            month_key=month_key,
            item_id=item_id,
            category=category,
            amount=str(amount),
            correlation_id=correlation_id,
        ))

    async def log_fixed_expense_deleted(
        self,
        user_id: str,
        month_key: str,
        item_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.fixed_expense_deleted(
            user_id=user_id,
            month_key=month_key,
            item_id=item_id,
            correlation_id=correlation_id,
        ))

    async def log_preferences_updated(
        self,
        user_id: str,
        changes: dict[str, Any],
    ) -> None:
        await self.log(AuditEventBuilder.preferences_updated(user_id, changes))

    async def log_state_loaded(self, user_id: str, source: str) -> None:
        await self.log(AuditEventBuilder.state_loaded(user_id, source))

    async def log_state_saved(self, user_id: str, target: str) -> None:
        await self.log(AuditEventBuilder.state_saved(user_id, target))

    async def log_save_failed(self, user_id: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.save_failed(user_id, error_message))

    async def log_sync_error(self, user_id: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.sync_error(user_id, error_message))

    async def log_receipt_scanned(
        self,
        upload_id: UUID,
        amount: Decimal,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful receipt extraction."""
        await self.log(AuditEventBuilder.receipt_scanned(
            upload_id=upload_id,
            amount=str(amount),
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_receipt_rejected(
        self,
        upload_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a receipt that could not be used."""
        await self.log(AuditEventBuilder.receipt_rejected(
            upload_id=upload_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_insight_generated(
        self,
        user_id: Optional[str],
        year: int,
        generated: bool,
    ) -> None:
        await self.log(AuditEventBuilder.insight_generated(user_id, year, generated))

    async def log_export_created(
        self,
        user_id: Optional[str],
        year: int,
        row_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.export_created(user_id, year, row_count))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a receipt scan).
    Pass it through all subsequent operations.
    """
    return uuid4()
