"""
Audit Models for ZenBudget

Every edit to a budget document, every sync outcome and every AI call is
recorded as an AuditEvent. This gives:
1. A history of what the user changed and when
2. Debugging information when sync or AI calls fail
3. Ability to reconstruct how a document reached its current state

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Daily ledger edits
    EXPENSE_UPDATED = "expense_updated"
    MONTH_BUDGET_UPDATED = "month_budget_updated"
    DEFAULT_BUDGET_UPDATED = "default_budget_updated"

    # Fixed ledger edits
    FIXED_BUDGET_UPDATED = "fixed_budget_updated"
    FIXED_EXPENSE_ADDED = "fixed_expense_added"
    FIXED_EXPENSE_DELETED = "fixed_expense_deleted"

    # Preferences
    PREFERENCES_UPDATED = "preferences_updated"

    # Persistence / sync
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    SAVE_FAILED = "save_failed"
    SYNC_ERROR = "sync_error"

    # AI collaborators
    RECEIPT_SCANNED = "receipt_scanned"
    RECEIPT_REJECTED = "receipt_rejected"
    INSIGHT_GENERATED = "insight_generated"

    # Export
    EXPORT_CREATED = "export_created"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which user document / entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the budget document"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'fixed_expense', 'receipt')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Key or ID of the entity (date key, month key, item id)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the Google Sheets audit worksheet.

        Columns:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_updated(user_id, "2025-01-10", "500")
        event = AuditEventBuilder.save_failed(user_id, str(exc))
    """

    @staticmethod
    def expense_updated(
        user_id: str,
        date_key: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=date_key,
            correlation_id=correlation_id,
            description=f"Daily expense for {date_key} set to {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def budget_updated(
        user_id: str,
        scope: str,
        key: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """scope is one of 'month', 'fixed', 'default', 'default_fixed'."""
        event_type = {
            "month": AuditEventType.MONTH_BUDGET_UPDATED,
            "fixed": AuditEventType.FIXED_BUDGET_UPDATED,
        }.get(scope, AuditEventType.DEFAULT_BUDGET_UPDATED)
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="budget",
            entity_id=key,
            correlation_id=correlation_id,
            description=f"{scope.replace('_', ' ').capitalize()} budget for {key} set to {amount}",
            details={"scope": scope, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def fixed_expense_added(
        user_id: str,
        month_key: str,
        item_id: str,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FIXED_EXPENSE_ADDED,
            user_id=user_id,
            entity_type="fixed_expense",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Fixed expense added to {month_key}: {category} {amount}",
            details={"month_key": month_key, "category": category, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def fixed_expense_deleted(
        user_id: str,
        month_key: str,
        item_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FIXED_EXPENSE_DELETED,
            user_id=user_id,
            entity_type="fixed_expense",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Fixed expense removed from {month_key}",
            details={"month_key": month_key},
            is_user_action=True,
        )

    @staticmethod
    def preferences_updated(
        user_id: str,
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            user_id=user_id,
            entity_type="preferences",
            description=f"Preferences updated: {', '.join(sorted(changes))}",
            details=changes,
            is_user_action=True,
        )

    @staticmethod
    def state_loaded(user_id: str, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            user_id=user_id,
            entity_type="document",
            entity_id=user_id,
            description=f"Budget document loaded from {source}",
            details={"source": source},
        )

    @staticmethod
    def state_saved(user_id: str, target: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            user_id=user_id,
            entity_type="document",
            entity_id=user_id,
            description=f"Budget document saved to {target}",
            details={"target": target},
        )

    @staticmethod
    def save_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="document",
            entity_id=user_id,
            description="Remote save failed; changes kept locally",
            error_message=error_message,
        )

    @staticmethod
    def sync_error(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_ERROR,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="document",
            entity_id=user_id,
            description="Subscription could not refresh the budget document",
            error_message=error_message,
        )

    @staticmethod
    def receipt_scanned(
        upload_id: UUID,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCANNED,
            entity_type="receipt",
            entity_id=str(upload_id),
            correlation_id=correlation_id,
            description=f"Receipt scanned: {category} {amount}",
            details={"amount": amount, "category": category},
            is_user_action=True,
        )

    @staticmethod
    def receipt_rejected(
        upload_id: UUID,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=str(upload_id),
            correlation_id=correlation_id,
            description="Receipt could not be used",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def insight_generated(user_id: Optional[str], year: int, generated: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_GENERATED,
            user_id=user_id,
            entity_type="insight",
            description=f"Spending insight for {year} ({'model' if generated else 'fallback'})",
            details={"year": year, "generated": generated},
            is_user_action=True,
        )

    @staticmethod
    def export_created(user_id: Optional[str], year: int, row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_CREATED,
            user_id=user_id,
            entity_type="export",
            description=f"CSV export for {year} with {row_count} rows",
            details={"year": year, "row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
