"""
Year Carry-Over Calculation

The core of the budget engine. Given a year and a user's budget document it
produces one DayCalculation per calendar day.

RULES:
1. Each month's available money = its budget + the balance carried in
   from the previous month (positive = saved, negative = overspent).
2. January always starts at zero. The carry-over chain never crosses a
   year boundary, so every year is its own ledger.
3. The daily limit is budget / days in month. Carry-over moves the
   remaining balance, never the pacing target.
4. Negative balances propagate untouched. No clamping.
5. Fixed expenses are a separate ledger and are not read here.

The function is pure: no I/O, no mutation of the input, same input ->
same output.
"""

from decimal import Decimal

from zenbudget.engine.calendar import date_key, days_in_month, month_key
from zenbudget.models.budget import BudgetState, DayCalculation


ZERO = Decimal("0")


def calculate_year_data(
    year: int,
    state: BudgetState,
) -> dict[str, DayCalculation]:
    """
    Compute the day-by-day carry-over table for `year`.

    Returns a dict keyed by date key, in chronological order,
    with 365 or 366 entries.
    """
    result: dict[str, DayCalculation] = {}

    previous_month_balance = ZERO

    for month in range(1, 13):
        monthly_budget = Decimal(state.monthly_budget_for(month_key(year, month)))
        num_days = days_in_month(year, month)

        start_balance = ZERO if month == 1 else previous_month_balance
        total_available = monthly_budget + start_balance
        daily_limit = monthly_budget / num_days

        cumulative_spent = ZERO

        for day in range(1, num_days + 1):
            key = date_key(year, month, day)
            spent = Decimal(state.expenses.get(key, ZERO))
            note = state.notes.get(key, "")

            cumulative_spent += spent

            result[key] = DayCalculation(
                date=key,
                day_of_month=day,
                spent=spent,
                cumulative_spent=cumulative_spent,
                remaining_balance=total_available - cumulative_spent,
                start_balance=start_balance if day == 1 else ZERO,
                daily_limit=daily_limit,
                note=note,
            )

        # This month's ending balance seeds next month
        previous_month_balance = total_available - cumulative_spent

    return result


def month_ending_balance(
    year_data: dict[str, DayCalculation],
    year: int,
    month: int,
) -> Decimal:
    """Balance left on the last day of a month (what carries into the next)."""
    last_day = year_data[date_key(year, month, days_in_month(year, month))]
    return last_day.remaining_balance
