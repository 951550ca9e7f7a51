"""Copy-on-write edits to the budget document."""

from zenbudget.state.mutations import (
    add_fixed_expense,
    delete_fixed_expense,
    merge_remote,
    set_dark_mode,
    set_default_budget,
    set_default_fixed_budget,
    set_display_name,
    set_expense,
    set_month_budget,
    set_month_fixed_budget,
    set_theme,
)

__all__ = [
    "add_fixed_expense",
    "delete_fixed_expense",
    "merge_remote",
    "set_dark_mode",
    "set_default_budget",
    "set_default_fixed_budget",
    "set_display_name",
    "set_expense",
    "set_month_budget",
    "set_month_fixed_budget",
    "set_theme",
]
