"""Record store over the ``financial_data`` table.

Reads go through ``RecordQuery``, a small chainable builder (equality,
case-insensitive LIKE, IN, range comparisons, OR groups, ordering and an
inclusive row range). Writes are plain insert/update/delete by id. Every
failure surfaces as ``StoreError`` with a message fit for the user.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from .analytics import Totals, compute_totals
from .errors import StoreError
from .formatting import parse_date
from .logging_setup import get_logger
from .models import COLUMNS, INTEGER_MAX, INTEGER_MIN, FinancialRecord, db
from .view import ALL_TYPES, FilterState, ViewState, page_range, parse_search

logger = get_logger(__name__)

WRITABLE_COLUMNS = ("name", "date", "type", "amount")
COUNT_MODES = (None, "exact")

Clause = Tuple[str, str, Any]


class QueryResult(NamedTuple):
    rows: List[Dict[str, Any]]
    count: Optional[int] = None


def _error_message(exc: Exception) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _parse_columns(columns: Union[str, Sequence[str]]) -> Tuple[str, ...]:
    if isinstance(columns, str):
        if columns.strip() == "*":
            return COLUMNS
        columns = [c.strip() for c in columns.split(",") if c.strip()]
    selected = tuple(columns)
    for name in selected:
        if name not in COLUMNS:
            raise StoreError(f"column financial_data.{name} does not exist")
    return selected or COLUMNS


def _column(name: str):
    if name not in COLUMNS:
        raise StoreError(f"column financial_data.{name} does not exist")
    return getattr(FinancialRecord, name)


def _coerce_value(column: str, value: Any) -> Any:
    if column == "date" and not isinstance(value, dt.date):
        parsed = parse_date(value)
        if parsed is None:
            raise StoreError(f'invalid input syntax for type date: "{value}"')
        return parsed
    if column == "amount":
        try:
            return float(value)
        except (TypeError, ValueError, OverflowError):
            raise StoreError(f'invalid input syntax for type numeric: "{value}"') from None
    return value


def _id_in_range(record_id: Any) -> bool:
    return not isinstance(record_id, int) or INTEGER_MIN <= record_id <= INTEGER_MAX


def _id_matches(record_id: Any):
    """``id == record_id``; ids outside the INTEGER range match nothing."""
    if not _id_in_range(record_id):
        return sa.false()
    return FinancialRecord.id == record_id


class RecordQuery:
    """A pending read against ``financial_data``."""

    def __init__(self, columns: Union[str, Sequence[str]] = "*", count: Optional[str] = None):
        if count not in COUNT_MODES:
            raise StoreError(f"Unsupported count mode: {count}")
        self._columns = _parse_columns(columns)
        self._count = count
        self._conditions: list = []
        self._order: List[Tuple[str, bool]] = []
        self._range: Optional[Tuple[int, int]] = None

    def _clause(self, column: str, op: str, value: Any):
        col = _column(column)
        if op == "eq" and column == "id":
            return _id_matches(value)
        if op == "eq":
            return col == _coerce_value(column, value)
        if op == "ilike":
            return col.ilike(str(value))
        if op == "in":
            return col.in_([_coerce_value(column, v) for v in value if column != "id" or _id_in_range(v)])
        if op == "gte":
            return col >= _coerce_value(column, value)
        if op == "lte":
            return col <= _coerce_value(column, value)
        raise StoreError(f"Unsupported operator: {op}")

    def eq(self, column: str, value: Any) -> "RecordQuery":
        self._conditions.append(self._clause(column, "eq", value))
        return self

    def ilike(self, column: str, pattern: str) -> "RecordQuery":
        self._conditions.append(self._clause(column, "ilike", pattern))
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "RecordQuery":
        self._conditions.append(self._clause(column, "in", list(values)))
        return self

    def gte(self, column: str, value: Any) -> "RecordQuery":
        self._conditions.append(self._clause(column, "gte", value))
        return self

    def lte(self, column: str, value: Any) -> "RecordQuery":
        self._conditions.append(self._clause(column, "lte", value))
        return self

    def or_(self, *clauses: Clause) -> "RecordQuery":
        """Match rows satisfying any of ``(column, operator, value)`` clauses."""
        if clauses:
            self._conditions.append(sa.or_(*(self._clause(c, op, v) for c, op, v in clauses)))
        return self

    def order(self, column: str, ascending: bool = True) -> "RecordQuery":
        _column(column)
        self._order.append((column, ascending))
        return self

    def range(self, start: int, end: int) -> "RecordQuery":
        """Limit to rows ``start`` through ``end`` inclusive (0-based)."""
        self._range = (max(0, start), end)
        return self

    def execute(self) -> QueryResult:
        stmt = sa.select(FinancialRecord)
        if self._conditions:
            stmt = stmt.where(*self._conditions)
        for column, ascending in self._order:
            col = _column(column)
            stmt = stmt.order_by(col.asc() if ascending else col.desc())
        if self._order and self._order[-1][0] != "id":
            stmt = stmt.order_by(FinancialRecord.id.asc())
        if self._range is not None:
            start, end = self._range
            stmt = stmt.offset(start).limit(max(0, end - start + 1))

        try:
            records = db.session.execute(stmt).scalars().all()
            count = None
            if self._count == "exact":
                count_stmt = sa.select(sa.func.count()).select_from(FinancialRecord)
                if self._conditions:
                    count_stmt = count_stmt.where(*self._conditions)
                count = db.session.execute(count_stmt).scalar_one()
        except (SQLAlchemyError, OverflowError) as exc:
            db.session.rollback()
            logger.warning("Record read failed: %s", exc)
            raise StoreError(_error_message(exc)) from exc

        rows = []
        for record in records:
            data = record.to_dict()
            rows.append({name: data[name] for name in self._columns})
        return QueryResult(rows=rows, count=count)


def apply_filters(query: RecordQuery, filters: FilterState) -> RecordQuery:
    """Add the predicates for ``filters`` to ``query``."""
    if filters.type != ALL_TYPES:
        query = query.eq("type", filters.type)
    term = parse_search(filters.query)
    if term is not None:
        if term.record_id is not None:
            query = query.eq("id", term.record_id)
        else:
            pattern = f"%{term.text}%"
            query = query.or_(("name", "ilike", pattern), ("type", "ilike", pattern))
    if filters.names:
        query = query.in_("name", filters.names)
    if filters.date_from:
        query = query.gte("date", filters.date_from)
    if filters.date_to:
        query = query.lte("date", filters.date_to)
    return query


class RecordStore:
    """Reads and writes ``financial_data`` rows through the Flask-SQLAlchemy session."""

    def select(self, columns: Union[str, Sequence[str]] = "*", count: Optional[str] = None) -> RecordQuery:
        return RecordQuery(columns, count=count)

    def _values(self, row: Any) -> Dict[str, Any]:
        if hasattr(row, "as_dict"):
            row = row.as_dict()
        values = {}
        for key, value in dict(row).items():
            if key not in WRITABLE_COLUMNS:
                raise StoreError(f"Could not find the '{key}' column of 'financial_data'")
            values[key] = _coerce_value(key, value)
        return values

    def _commit(self, action: str) -> None:
        try:
            db.session.commit()
        except (SQLAlchemyError, OverflowError) as exc:
            db.session.rollback()
            logger.warning("Record %s failed: %s", action, exc)
            raise StoreError(_error_message(exc)) from exc

    def insert(self, rows: Union[Mapping[str, Any], Sequence[Any]]) -> int:
        if isinstance(rows, Mapping) or hasattr(rows, "as_dict"):
            rows = [rows]
        records = [FinancialRecord(**self._values(row)) for row in rows]
        try:
            db.session.add_all(records)
        except (SQLAlchemyError, OverflowError) as exc:
            db.session.rollback()
            raise StoreError(_error_message(exc)) from exc
        self._commit("insert")
        logger.info("Inserted %d record(s)", len(records))
        return len(records)

    def update(self, fields: Mapping[str, Any], record_id: int) -> int:
        values = self._values(fields)
        if not values or not _id_in_range(record_id):
            return 0
        try:
            result = db.session.execute(
                sa.update(FinancialRecord).where(FinancialRecord.id == record_id).values(**values)
            )
        except (SQLAlchemyError, OverflowError) as exc:
            db.session.rollback()
            raise StoreError(_error_message(exc)) from exc
        self._commit("update")
        logger.info("Updated record %s", record_id)
        return result.rowcount

    def delete(self, record_id: int) -> int:
        if not _id_in_range(record_id):
            return 0
        try:
            result = db.session.execute(sa.delete(FinancialRecord).where(FinancialRecord.id == record_id))
        except (SQLAlchemyError, OverflowError) as exc:
            db.session.rollback()
            raise StoreError(_error_message(exc)) from exc
        self._commit("delete")
        logger.info("Deleted record %s", record_id)
        return result.rowcount

    def distinct_names(self) -> List[str]:
        rows = self.select("name").order("name", ascending=True).execute().rows
        return list(dict.fromkeys(r["name"] for r in rows if r["name"]))

    def fetch_page(self, state: ViewState) -> QueryResult:
        query = apply_filters(self.select("*", count="exact"), state.filters)
        query = query.order(state.sort.column, ascending=state.sort.ascending)
        start, end = page_range(state)
        return query.range(start, end).execute()

    def fetch_totals(self, filters: FilterState) -> Totals:
        rows = apply_filters(self.select("type,amount"), filters).execute().rows
        return compute_totals(rows)

    def fetch_all(self, columns: Union[str, Sequence[str]] = "*") -> List[Dict[str, Any]]:
        return self.select(columns).execute().rows
