"""
Data Models Package

This package contains all Pydantic models used in ZenBudget.
All data flowing through the system must conform to these schemas.
"""

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
    is_date_key,
    is_month_key,
)
from zenbudget.models.receipt import (
    ReceiptExtraction,
    ReceiptImage,
    ReceiptImageQuality,
    SpendingInsight,
)
from zenbudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Budget document and engine output
    "BudgetState",
    "DayCalculation",
    "FixedExpenseCategory",
    "FixedExpenseItem",
    "MonthlySummary",
    "MonthView",
    "ThemeColor",
    "YearlyOverview",
    "initial_state",
    "is_date_key",
    "is_month_key",
    # AI collaborator models
    "ReceiptExtraction",
    "ReceiptImage",
    "ReceiptImageQuality",
    "SpendingInsight",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
