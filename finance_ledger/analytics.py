"""Analytics over ledger records.

Totals, month buckets and per-type sums computed from plain record mappings.
Everything here is a pure function of its input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from .formatting import parse_date

INCOME = "Income"
EXPENDITURE = "Expenditure"


@dataclass(frozen=True)
class Totals:
    income: float = 0.0
    expenditure: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expenditure

    def as_dict(self) -> Dict[str, float]:
        return {"income": self.income, "expenditure": self.expenditure, "net": self.net}


@dataclass
class MonthBucket:
    income: float = 0.0
    expenditure: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {"income": self.income, "expenditure": self.expenditure}


@dataclass
class Aggregate:
    totals: Totals = field(default_factory=Totals)
    by_month: Dict[str, MonthBucket] = field(default_factory=dict)
    by_type: Dict[Optional[str], float] = field(default_factory=dict)


def coerce_amount(value: Any) -> float:
    """Numeric value of ``value``; anything non-numeric counts as 0."""
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip()) if value.strip() else 0.0
        except ValueError:
            return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def month_key(value: Any) -> str:
    d = parse_date(value)
    if d is None:
        return ""
    return f"{d.year:04d}-{d.month:02d}"


def is_income(record: Mapping[str, Any]) -> bool:
    return record.get("type") == INCOME


def compute_totals(records: Iterable[Mapping[str, Any]]) -> Totals:
    income = 0.0
    expenditure = 0.0
    for r in records:
        n = coerce_amount(r.get("amount"))
        if is_income(r):
            income += n
        else:
            expenditure += n
    return Totals(income=income, expenditure=expenditure)


def aggregate(records: Iterable[Mapping[str, Any]]) -> Aggregate:
    """Totals, month buckets and per-type sums for ``records``.

    Any type other than exactly ``"Income"`` counts as expenditure in the
    totals and month buckets, but keeps its own key in ``by_type``. Records
    without a usable date are left out of ``by_month`` only.
    """

    income = 0.0
    expenditure = 0.0
    months: Dict[str, MonthBucket] = {}
    types: Dict[Optional[str], float] = {}
    for r in records:
        n = coerce_amount(r.get("amount"))
        income_row = is_income(r)
        if income_row:
            income += n
        else:
            expenditure += n
        key = month_key(r.get("date"))
        if key:
            bucket = months.setdefault(key, MonthBucket())
            if income_row:
                bucket.income += n
            else:
                bucket.expenditure += n
        row_type = r.get("type")
        types[row_type] = types.get(row_type, 0.0) + n

    return Aggregate(
        totals=Totals(income=income, expenditure=expenditure),
        by_month={k: months[k] for k in sorted(months)},
        by_type=types,
    )
