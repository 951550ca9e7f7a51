"""
Monthly and Yearly Summaries

Aggregations over the day table produced by calculate_year_data.

DESIGN DECISION: Daily totals are always summed from the precomputed day
rows, never from the raw expenses map. A summary can therefore never
disagree with the table it is shown next to.

The fixed ledger is summed from the document's fixed items and is kept
out of `remaining`.
"""

from decimal import Decimal

from zenbudget.engine.calendar import date_key, days_in_month, month_key
from zenbudget.models.budget import (
    BudgetState,
    DayCalculation,
    MonthlySummary,
    MonthView,
    YearlyOverview,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _percent(part: Decimal, whole: Decimal, cap: bool = False) -> Decimal:
    """part / whole * 100, or 0 when there is nothing to divide by."""
    if whole <= 0:
        return ZERO
    value = part / whole * HUNDRED
    if cap:
        return min(value, HUNDRED)
    return value


def _month_days(
    year: int,
    month: int,
    daily_data: dict[str, DayCalculation],
) -> list[DayCalculation]:
    days = []
    for day in range(1, days_in_month(year, month) + 1):
        row = daily_data.get(date_key(year, month, day))
        if row is not None:
            days.append(row)
    return days


def get_monthly_summary(
    year: int,
    month: int,
    state: BudgetState,
    daily_data: dict[str, DayCalculation],
) -> MonthlySummary:
    """Summarize one month from its day rows and fixed items."""
    key = month_key(year, month)
    budget = Decimal(state.monthly_budget_for(key))

    total_daily_spent = sum(
        (row.spent for row in _month_days(year, month, daily_data)),
        ZERO,
    )
    total_fixed_spent = sum(
        (Decimal(item.amount) for item in state.fixed_items_for(key)),
        ZERO,
    )

    return MonthlySummary(
        year=year,
        month=month,
        budget=budget,
        total_daily_spent=total_daily_spent,
        total_fixed_spent=total_fixed_spent,
        total_spent=total_daily_spent + total_fixed_spent,
        remaining=budget - total_daily_spent,
        percent_used=_percent(total_daily_spent, budget),
    )


def get_year_summaries(
    year: int,
    state: BudgetState,
    daily_data: dict[str, DayCalculation],
) -> list[MonthlySummary]:
    return [
        get_monthly_summary(year, month, state, daily_data)
        for month in range(1, 13)
    ]


def get_yearly_overview(
    year: int,
    state: BudgetState,
    daily_data: dict[str, DayCalculation],
) -> YearlyOverview:
    """
    Year totals for the dashboard.

    Savings compare the summed budgets against daily spend only,
    matching the per-month `remaining` figure.
    """
    months = get_year_summaries(year, state, daily_data)

    total_budget = sum((m.budget for m in months), ZERO)
    total_daily = sum((m.total_daily_spent for m in months), ZERO)
    total_fixed = sum((m.total_fixed_spent for m in months), ZERO)

    return YearlyOverview(
        year=year,
        total_budget=total_budget,
        total_daily_spent=total_daily,
        total_fixed_spent=total_fixed,
        total_grand_spent=total_daily + total_fixed,
        total_yearly_savings=total_budget - total_daily,
        remaining_daily_budget=sum((m.remaining for m in months), ZERO),
        months=months,
    )


def get_daily_trend(
    year: int,
    daily_data: dict[str, DayCalculation],
) -> list[DayCalculation]:
    """Day rows of `year` in date order (cumulative spend chart)."""
    prefix = f"{year:04d}-"
    return sorted(
        (row for key, row in daily_data.items() if key.startswith(prefix)),
        key=lambda row: row.date,
    )


def get_month_view(
    year: int,
    month: int,
    state: BudgetState,
    daily_data: dict[str, DayCalculation],
) -> MonthView:
    """Both ledgers of one month, as shown on the month screen."""
    key = month_key(year, month)
    days = _month_days(year, month, daily_data)

    monthly_budget = Decimal(state.monthly_budget_for(key))
    start_balance = days[0].start_balance if days else ZERO
    daily_limit = days[0].daily_limit if days else ZERO
    total_daily_spent = days[-1].cumulative_spent if days else ZERO
    effective_budget = monthly_budget + start_balance

    fixed_budget = Decimal(state.fixed_budget_for(key))
    fixed_items = list(state.fixed_items_for(key))
    total_fixed = sum((Decimal(item.amount) for item in fixed_items), ZERO)

    return MonthView(
        year=year,
        month=month,
        days=days,
        monthly_budget=monthly_budget,
        start_balance=start_balance,
        daily_limit=daily_limit,
        effective_budget=effective_budget,
        total_daily_spent=total_daily_spent,
        daily_remaining=effective_budget - total_daily_spent,
        daily_percent_used=_percent(total_daily_spent, effective_budget, cap=True),
        fixed_budget=fixed_budget,
        fixed_items=fixed_items,
        total_fixed=total_fixed,
        fixed_remaining=fixed_budget - total_fixed,
        fixed_percent_used=_percent(total_fixed, fixed_budget, cap=True),
        grand_total_spent=total_daily_spent + total_fixed,
    )
