"""CSV export helpers for ZenBudget."""

import csv
import io
from decimal import Decimal
from pathlib import Path
from typing import Union

from zenbudget.models.budget import BudgetState


EXPORT_HEADERS = ["Date", "Type", "Category", "Amount", "Note"]

DAILY_CATEGORY = "General"


def _serialize_amount(value: Decimal) -> str:
    # 500.00 -> "500", 12.50 -> "12.5"
    return format(value.normalize(), "f")


def export_filename(year: int) -> str:
    return f"zenbudget_export_{year}.csv"


def export_rows(state: BudgetState, year: int) -> list[dict[str, str]]:
    """Build the export rows for one year.

    Daily expenses come first, sorted by date, with category "General".
    Fixed expenses follow month by month, dated by their month key.
    """
    prefix = f"{year}-"
    rows = []

    for key in sorted(state.expenses):
        if not key.startswith(prefix):
            continue
        rows.append({
            "Date": key,
            "Type": "Daily",
            "Category": DAILY_CATEGORY,
            "Amount": _serialize_amount(state.expenses[key]),
            "Note": state.notes.get(key, ""),
        })

    for month in sorted(state.monthly_fixed_expenses):
        if not month.startswith(prefix):
            continue
        for item in state.monthly_fixed_expenses[month]:
            rows.append({
                "Date": month,
                "Type": "Fixed",
                "Category": item.category.value,
                "Amount": _serialize_amount(item.amount),
                "Note": item.note,
            })

    return rows


def export_to_csv(state: BudgetState, year: int) -> str:
    """Render the year's export as CSV text (header row included)."""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=EXPORT_HEADERS,
        extrasaction="ignore",
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writeheader()
    writer.writerows(export_rows(state, year))
    return buffer.getvalue()


def write_export(state: BudgetState, year: int, output_dir: Union[str, Path]) -> Path:
    """Write the year's export to `output_dir` and return the path written."""
    output_path = Path(output_dir) / export_filename(year)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    # Use newline='' for csv on Windows
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        fh.write(export_to_csv(state, year))

    return output_path
