"""Display formatting for amounts, dates and month keys."""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, Optional


def parse_date(value: Any) -> Optional[dt.date]:
    """Return a calendar date for a date, datetime or ISO date/timestamp string."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return None
    elif value is None:
        return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
    if not math.isfinite(number):
        return None
    return number


def format_amount(value: Any) -> str:
    number = _to_number(value)
    if number is None:
        return ""
    return f"{number:,.2f}"


def ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_date_with_ordinal(value: Any) -> str:
    """Render ``2024-01-01`` as ``1st Jan 2024``.

    Empty input gives ``""``; anything unparseable is returned stringified.
    """
    if value is None or value == "":
        return ""
    d = parse_date(value)
    if d is None:
        return str(value)
    return f"{d.day}{ordinal_suffix(d.day)} {d.strftime('%b')} {d.year:04d}"


def format_month_label(key: Any) -> Any:
    """Render a ``YYYY-MM`` key as ``March 2024``; bad keys come back unchanged."""
    if not key or not isinstance(key, str):
        return key
    parts = key.split("-")
    if len(parts) != 2:
        return key
    year, month = parts
    if not (year.isdigit() and month.isdigit()):
        return key
    if not 1 <= int(month) <= 12 or int(year) < 1:
        return key
    return dt.date(int(year), int(month), 1).strftime("%B %Y")
