"""
Calendar helpers.

Date keys (YYYY-MM-DD) and month keys (YYYY-MM) are the only join key
between the stored budget document and engine output. They are zero-padded
and fixed width so that sorting the strings sorts chronologically.
"""

import calendar


def days_in_month(year: int, month: int) -> int:
    """Number of days in a 1-12 month of the proleptic Gregorian calendar."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be 1-12, got {month}")
    return calendar.monthrange(year, month)[1]


def date_key(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_key_for_date(key: str) -> str:
    """The YYYY-MM month a YYYY-MM-DD date key belongs to."""
    return key[:7]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """
    Move `delta` months forward (or back) from (year, month).

    Used for previous/next navigation, so December rolls into January
    of the following year.
    """
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
