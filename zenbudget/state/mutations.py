"""
Copy-on-Write State Mutations

Every user edit is expressed as a function BudgetState -> BudgetState.
The input is never modified; the caller receives a new document it can
persist and hand to the engine.

DESIGN DECISION: Mutations rebuild the document through model validation
(`model_validate`), so an edit that would produce an invalid document
(negative amount, malformed key) raises ValueError instead of slipping
into storage.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Union

from zenbudget.engine.calendar import month_key
from zenbudget.models.budget import (
    BudgetState,
    FixedExpenseCategory,
    FixedExpenseItem,
    ThemeColor,
    initial_state,
)


Amount = Union[Decimal, int, float, str]


def _to_decimal(amount: Amount) -> Decimal:
    # str() first so floats keep their printed value (0.1 -> 0.1)
    return amount if isinstance(amount, Decimal) else Decimal(str(amount))


def _replace(state: BudgetState, **changes: Any) -> BudgetState:
    data = state.model_dump()
    data.update(changes)
    return BudgetState.model_validate(data)


def set_expense(
    state: BudgetState,
    date_key: str,
    amount: Amount,
    note: str = "",
) -> BudgetState:
    """Set the amount (and note) logged for one day."""
    expenses = dict(state.expenses)
    expenses[date_key] = _to_decimal(amount)
    notes = dict(state.notes)
    notes[date_key] = note
    return _replace(state, expenses=expenses, notes=notes)


def set_month_budget(
    state: BudgetState,
    year: int,
    month: int,
    amount: Amount,
) -> BudgetState:
    budgets = dict(state.custom_budgets)
    budgets[month_key(year, month)] = _to_decimal(amount)
    return _replace(state, custom_budgets=budgets)


def set_month_fixed_budget(
    state: BudgetState,
    year: int,
    month: int,
    amount: Amount,
) -> BudgetState:
    budgets = dict(state.custom_fixed_budgets)
    budgets[month_key(year, month)] = _to_decimal(amount)
    return _replace(state, custom_fixed_budgets=budgets)


def set_default_budget(state: BudgetState, amount: Amount) -> BudgetState:
    return _replace(state, default_monthly_budget=_to_decimal(amount))


def set_default_fixed_budget(state: BudgetState, amount: Amount) -> BudgetState:
    return _replace(state, default_fixed_budget=_to_decimal(amount))


def add_fixed_expense(
    state: BudgetState,
    month: str,
    category: FixedExpenseCategory,
    amount: Amount,
    note: str = "",
) -> tuple[BudgetState, FixedExpenseItem]:
    """
    Append a fixed expense to a month.

    The item gets a fresh id and a UTC creation timestamp. Existing items
    keep their order.
    """
    item = FixedExpenseItem(
        category=FixedExpenseCategory(category),
        amount=_to_decimal(amount),
        note=note,
        date=datetime.utcnow(),
    )
    fixed = {key: list(items) for key, items in state.monthly_fixed_expenses.items()}
    fixed[month] = fixed.get(month, []) + [item]
    return _replace(state, monthly_fixed_expenses=fixed), item


def delete_fixed_expense(
    state: BudgetState,
    month: str,
    item_id: str,
) -> BudgetState:
    """Remove one fixed expense. Unknown ids leave the month unchanged."""
    fixed = {key: list(items) for key, items in state.monthly_fixed_expenses.items()}
    fixed[month] = [item for item in fixed.get(month, []) if item.id != item_id]
    return _replace(state, monthly_fixed_expenses=fixed)


def set_theme(state: BudgetState, color: ThemeColor) -> BudgetState:
    return _replace(state, theme_color=ThemeColor(color))


def set_dark_mode(state: BudgetState, is_dark: bool) -> BudgetState:
    return _replace(state, is_dark_mode=bool(is_dark))


def set_display_name(state: BudgetState, name: str) -> BudgetState:
    return _replace(state, display_name=name.strip())


def merge_remote(document: dict) -> BudgetState:
    """
    Lay a stored document over the initial state.

    Documents written by older versions may miss keys (e.g. the fixed
    budget fields); those fall back to the initial values.
    """
    base = initial_state().to_document()
    base.update({key: value for key, value in document.items() if value is not None})
    return BudgetState.model_validate(base)
