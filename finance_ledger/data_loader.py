"""Import and export helpers.

Reads CSV text or Excel workbooks into header->value rows, resolves them into
``RecordDraft`` insert payloads, and writes records back out as a workbook.

Headers are matched case-insensitively, so ``name``/``Name``/``NAME`` all
resolve to the same field. Rows whose name, date or amount cannot be
resolved are dropped.
"""

from __future__ import annotations

import datetime as dt
import io
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from .formatting import parse_date
from .models import COLUMNS, TABLE_NAME, TYPE_OPTIONS

EXCEL_SUFFIXES = (".xlsx", ".xlsm")
EXPORT_FILENAME = "financial_data_all.xlsx"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_LINE_BREAK = re.compile(r"\r?\n")


@dataclass
class RecordDraft:
    name: str
    date: dt.date
    type: str
    amount: float

    def as_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "date": self.date, "type": self.type, "amount": self.amount}

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Optional["RecordDraft"]:
        """Resolve a header->value row, or ``None`` if a required field is unusable."""
        name = _text(_find_value(row, "name"))
        date = _to_date(_find_value(row, "date"))
        type_ = _text(_find_value(row, "type")) or TYPE_OPTIONS[0]
        amount = _to_amount(_find_value(row, "amount"))
        if not name or date is None or amount is None:
            return None
        return cls(name=name, date=date, type=type_, amount=amount)


def _find_value(row: Mapping[str, Any], field: str) -> Any:
    for key, value in row.items():
        if str(key).strip().lower() == field and value not in (None, ""):
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_date(value: Any) -> Optional[dt.date]:
    if value is None:
        return None
    parsed = parse_date(value)
    if parsed is not None:
        return parsed
    text = str(value).strip()
    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d", "%d.%m.%Y"):
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _to_amount(value: Any) -> Optional[float]:
    # Missing amounts import as 0; only garbage is unresolvable.
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    v = str(value).replace(",", "").strip()
    if v.startswith("(") and v.endswith(")"):
        v = "-" + v[1:-1]
    try:
        return float(v)
    except ValueError:
        return None


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line on commas outside quotes; fields are trimmed.

    Any ``"`` toggles quoting, even mid-field (``ab"c,d"`` is one field,
    ``abc,d``). Inside quotes, ``""`` is a literal quote.
    """
    fields: List[str] = []
    current: List[str] = []
    quoted = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if quoted and line[i + 1 : i + 2] == '"':
                current.append('"')
                i += 1
            else:
                quoted = not quoted
        elif ch == "," and not quoted:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return [f.strip() for f in fields]


def parse_csv(text: str) -> List[Dict[str, str]]:
    lines = [line for line in _LINE_BREAK.split(text) if line.strip()]
    if not lines:
        return []
    headers = split_csv_line(lines[0])
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        cols = split_csv_line(line)
        rows.append({h: cols[i] if i < len(cols) else "" for i, h in enumerate(headers)})
    return rows


def load_xlsx_rows(payload: bytes) -> List[Dict[str, Any]]:
    """Rows of the first worksheet, keyed by the first row's headers."""
    try:
        wb = openpyxl.load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValueError("Unable to read the Excel file.") from exc
    try:
        if not wb.worksheets:
            return []
        values = wb.worksheets[0].iter_rows(values_only=True)
        header_row = next(values, None)
        if not header_row:
            return []
        headers = ["" if h is None else str(h).strip() for h in header_row]
        rows: List[Dict[str, Any]] = []
        for raw in values:
            if all(cell in (None, "") for cell in raw):
                continue
            rows.append(
                {h: ("" if i >= len(raw) or raw[i] is None else raw[i]) for i, h in enumerate(headers) if h}
            )
        return rows
    finally:
        wb.close()


def read_upload(filename: str, payload: bytes) -> List[Dict[str, Any]]:
    """Parse an uploaded CSV or Excel file into header->value rows."""
    if not payload:
        return []
    if Path(filename or "").suffix.lower() in EXCEL_SUFFIXES:
        return load_xlsx_rows(payload)
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValueError("Unable to decode the uploaded file. Ensure it is UTF-8 encoded.") from exc
    return parse_csv(text)


def load_file(path: str | Path) -> List[Dict[str, Any]]:
    p = Path(path)
    return read_upload(p.name, p.read_bytes())


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> List[RecordDraft]:
    drafts = []
    for row in rows:
        draft = RecordDraft.from_mapping(row)
        if draft is not None:
            drafts.append(draft)
    return drafts


def export_xlsx(records: Sequence[Mapping[str, Any]]) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = TABLE_NAME
    ws.append(list(COLUMNS))
    for r in records:
        ws.append([r.get(column) for column in COLUMNS])
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
