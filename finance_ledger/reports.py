"""Reporting utilities.

Turns an aggregate into a JSON-serializable summary and a text report.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from . import analytics as an
from .formatting import format_amount, format_month_label


def build_summary(records: Iterable[Mapping[str, Any]]) -> Dict:
    records = list(records)
    agg = an.aggregate(records)
    return {
        "totals": agg.totals.as_dict(),
        "by_month": {k: bucket.as_dict() for k, bucket in agg.by_month.items()},
        "by_type": {("" if k is None else str(k)): v for k, v in agg.by_type.items()},
        "record_count": len(records),
    }


def format_text_report(summary: Dict) -> str:
    lines: List[str] = []
    t = summary["totals"]
    lines.append("=== Financial Data Summary ===")
    lines.append(f"Income:       {format_amount(t['income'])}")
    lines.append(f"Expenditure:  {format_amount(t['expenditure'])}")
    lines.append(f"Net:          {format_amount(t['net'])}")
    lines.append(f"Records:      {summary.get('record_count', 0)}")
    lines.append("")

    lines.append("-- By Month --")
    if not summary["by_month"]:
        lines.append("No data")
    for key, vals in summary["by_month"].items():
        net = vals["income"] - vals["expenditure"]
        lines.append(
            f"{format_month_label(key):20} Inc {format_amount(vals['income'])}  "
            f"Exp {format_amount(vals['expenditure'])}  Net {format_amount(net)}"
        )
    lines.append("")

    lines.append("-- By Type --")
    for type_, amt in summary["by_type"].items():
        lines.append(f"{(type_ or '(none)'):20} {format_amount(amt)}")
    return "\n".join(lines)


def save_json(summary: Dict, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)
