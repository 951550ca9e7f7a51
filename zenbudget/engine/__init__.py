"""
Budget engine package.

Pure calculation functions over a BudgetState snapshot.
"""

from zenbudget.engine.calendar import (
    date_key,
    days_in_month,
    month_key,
    month_key_for_date,
    shift_month,
)
from zenbudget.engine.carry_over import calculate_year_data, month_ending_balance
from zenbudget.engine.summary import (
    get_daily_trend,
    get_month_view,
    get_monthly_summary,
    get_year_summaries,
    get_yearly_overview,
)

__all__ = [
    "calculate_year_data",
    "date_key",
    "days_in_month",
    "get_daily_trend",
    "get_month_view",
    "get_monthly_summary",
    "get_year_summaries",
    "get_yearly_overview",
    "month_ending_balance",
    "month_key",
    "month_key_for_date",
    "shift_month",
]
