"""
Core Data Models for ZenBudget

These models define the budget document a user edits and the rows the
budget engine derives from it.

DESIGN DECISION: BudgetState is serialized with camelCase aliases so the
stored document keeps the flat layout the rest of the ecosystem reads
(`customBudgets`, `monthlyFixedExpenses`, ...). In Python code we use the
snake_case field names.

Money is Decimal everywhere. Engine output keeps full Decimal precision;
rounding happens only at display time.
"""

import re
from datetime import date as _date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


DEFAULT_MONTHLY_BUDGET = Decimal("3100")
DEFAULT_FIXED_BUDGET = Decimal("0")

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_date_key(key: str) -> bool:
    """True for a real calendar date formatted YYYY-MM-DD."""
    if not _DATE_KEY_RE.match(key):
        return False
    try:
        _date.fromisoformat(key)
    except ValueError:
        return False
    return True


def is_month_key(key: str) -> bool:
    """True for a month formatted YYYY-MM."""
    return bool(_MONTH_KEY_RE.match(key))


# =============================================================================
# ENUMS
# =============================================================================

class FixedExpenseCategory(str, Enum):
    """Categories for monthly fixed (non-daily) expenses."""
    GROCERY = "Grocery"
    TRAVEL = "Travel"
    RENT = "Rent"
    BILLS = "Bills"
    OTHER = "Other"


class ThemeColor(str, Enum):
    """Accent colours offered in settings."""
    VIOLET = "violet"
    BLUE = "blue"
    EMERALD = "emerald"
    ROSE = "rose"
    AMBER = "amber"


# =============================================================================
# USER DOCUMENT
# =============================================================================

class FixedExpenseItem(BaseModel):
    """
    A single fixed expense logged against a month.

    Fixed items live in their own budget bucket and never touch the
    daily carry-over chain.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique item ID"
    )
    category: FixedExpenseCategory = Field(
        default=FixedExpenseCategory.OTHER,
        description="Fixed expense category"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent"
    )
    note: str = Field(
        default="",
        max_length=500,
    )
    date: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the item was logged"
    )


class BudgetState(BaseModel):
    """
    The complete budget document of one user.

    Treated as immutable: every edit produces a new instance
    (see zenbudget.state.mutations).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    expenses: dict[str, Decimal] = Field(
        default_factory=dict,
        description="YYYY-MM-DD -> amount spent that day"
    )
    notes: dict[str, str] = Field(
        default_factory=dict,
        description="YYYY-MM-DD -> free text note"
    )
    custom_budgets: dict[str, Decimal] = Field(
        default_factory=dict,
        description="YYYY-MM -> monthly budget override"
    )
    custom_fixed_budgets: dict[str, Decimal] = Field(
        default_factory=dict,
        description="YYYY-MM -> fixed budget override"
    )
    monthly_fixed_expenses: dict[str, list[FixedExpenseItem]] = Field(
        default_factory=dict,
        description="YYYY-MM -> fixed expense items in creation order"
    )
    default_monthly_budget: Decimal = Field(
        default=DEFAULT_MONTHLY_BUDGET,
        ge=0,
    )
    default_fixed_budget: Decimal = Field(
        default=DEFAULT_FIXED_BUDGET,
        ge=0,
    )

    # Preferences carried in the same document
    theme_color: ThemeColor = ThemeColor.VIOLET
    is_dark_mode: bool = True
    display_name: str = ""

    @field_validator("expenses")
    @classmethod
    def validate_expenses(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        for key, amount in v.items():
            if not is_date_key(key):
                raise ValueError(f"Invalid date key: {key!r} (expected YYYY-MM-DD)")
            if amount < 0:
                raise ValueError(f"Expense for {key} cannot be negative")
        return v

    @field_validator("notes")
    @classmethod
    def validate_note_keys(cls, v: dict[str, str]) -> dict[str, str]:
        for key in v:
            if not is_date_key(key):
                raise ValueError(f"Invalid date key: {key!r} (expected YYYY-MM-DD)")
        return v

    @field_validator("custom_budgets", "custom_fixed_budgets")
    @classmethod
    def validate_budget_overrides(
        cls, v: dict[str, Decimal]
    ) -> dict[str, Decimal]:
        for key, amount in v.items():
            if not is_month_key(key):
                raise ValueError(f"Invalid month key: {key!r} (expected YYYY-MM)")
            if amount < 0:
                raise ValueError(f"Budget for {key} cannot be negative")
        return v

    @field_validator("monthly_fixed_expenses")
    @classmethod
    def validate_fixed_keys(
        cls, v: dict[str, list[FixedExpenseItem]]
    ) -> dict[str, list[FixedExpenseItem]]:
        for key in v:
            if not is_month_key(key):
                raise ValueError(f"Invalid month key: {key!r} (expected YYYY-MM)")
        return v

    def monthly_budget_for(self, month_key: str) -> Decimal:
        """Effective daily-ledger budget for a month."""
        return self.custom_budgets.get(month_key, self.default_monthly_budget)

    def fixed_budget_for(self, month_key: str) -> Decimal:
        """Effective fixed-expense budget for a month."""
        return self.custom_fixed_budgets.get(month_key, self.default_fixed_budget)

    def fixed_items_for(self, month_key: str) -> list[FixedExpenseItem]:
        return self.monthly_fixed_expenses.get(month_key, [])

    def to_document(self) -> dict:
        """Serialize to the stored (camelCase, JSON-safe) document."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# DERIVED MODELS (engine output, never persisted)
# =============================================================================

class DayCalculation(BaseModel):
    """One calendar day of the carry-over calculation."""
    model_config = ConfigDict(frozen=True)

    date: str
    day_of_month: int = Field(ge=1, le=31)
    spent: Decimal
    cumulative_spent: Decimal
    remaining_balance: Decimal
    # Carried-over balance; only populated on day 1 of the month
    start_balance: Decimal
    # Nominal pacing target, independent of carry-over
    daily_limit: Decimal
    note: str = ""


class MonthlySummary(BaseModel):
    """Per-month totals derived from the day rows."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(ge=1, le=12)
    budget: Decimal
    total_daily_spent: Decimal
    total_fixed_spent: Decimal
    total_spent: Decimal
    # budget - total_daily_spent; fixed spend is a separate ledger
    remaining: Decimal
    percent_used: Decimal


class YearlyOverview(BaseModel):
    """Totals for the dashboard's yearly overview."""
    model_config = ConfigDict(frozen=True)

    year: int
    total_budget: Decimal
    total_daily_spent: Decimal
    total_fixed_spent: Decimal
    total_grand_spent: Decimal
    total_yearly_savings: Decimal
    remaining_daily_budget: Decimal
    months: list[MonthlySummary] = Field(default_factory=list)


class MonthView(BaseModel):
    """
    Everything the month screen shows, split into the daily ledger
    and the fixed ledger.
    """
    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(ge=1, le=12)
    days: list[DayCalculation]

    # Daily ledger
    monthly_budget: Decimal
    start_balance: Decimal
    daily_limit: Decimal
    effective_budget: Decimal
    total_daily_spent: Decimal
    daily_remaining: Decimal
    daily_percent_used: Decimal

    # Fixed ledger
    fixed_budget: Decimal
    fixed_items: list[FixedExpenseItem] = Field(default_factory=list)
    total_fixed: Decimal
    fixed_remaining: Decimal
    fixed_percent_used: Decimal

    grand_total_spent: Decimal

    @property
    def is_overspent(self) -> bool:
        return self.daily_remaining < 0


def initial_state(
    display_name: Optional[str] = None,
    default_monthly_budget: Optional[Decimal] = None,
    default_fixed_budget: Optional[Decimal] = None,
) -> BudgetState:
    """
    The document a brand-new user starts with.

    Budget defaults fall back to DEFAULT_MONTHLY_BUDGET / DEFAULT_FIXED_BUDGET;
    the app passes the configured values.
    """
    return BudgetState(
        display_name=display_name or "",
        default_monthly_budget=(
            DEFAULT_MONTHLY_BUDGET if default_monthly_budget is None else default_monthly_budget
        ),
        default_fixed_budget=(
            DEFAULT_FIXED_BUDGET if default_fixed_budget is None else default_fixed_budget
        ),
    )
