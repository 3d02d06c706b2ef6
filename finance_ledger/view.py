"""Table view state and the client-side view engine.

The view is described by an immutable ``ViewState`` (filters, sort, page).
User actions are pure transitions ``ViewState -> ViewState``; the
``ViewController`` applies them and refetches from the record store.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .analytics import Totals, coerce_amount
from .config import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS
from .errors import StoreError
from .formatting import parse_date
from .logging_setup import get_logger
from .models import INTEGER_MAX, TYPE_OPTIONS

logger = get_logger(__name__)

ALL_TYPES = "All"
SORT_COLUMNS = ("name", "date", "type", "amount")
DEFAULT_SORT_COLUMN = "date"


@dataclass(frozen=True)
class FilterState:
    type: str = ALL_TYPES
    query: str = ""
    names: Optional[Tuple[str, ...]] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None


@dataclass(frozen=True)
class SortState:
    column: str = DEFAULT_SORT_COLUMN
    ascending: bool = False


@dataclass(frozen=True)
class PageState:
    index: int = 0
    size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class ViewState:
    filters: FilterState = field(default_factory=FilterState)
    sort: SortState = field(default_factory=SortState)
    page: PageState = field(default_factory=PageState)

    def to_params(self) -> Dict[str, Any]:
        """Query parameters for this state; unset filters and the default sort are omitted."""
        params: Dict[str, Any] = {}
        f = self.filters
        if f.type != ALL_TYPES:
            params["type"] = f.type
        if f.query:
            params["q"] = f.query
        if f.names:
            params["name"] = list(f.names)
        if f.date_from:
            params["from"] = f.date_from.isoformat()
        if f.date_to:
            params["to"] = f.date_to.isoformat()
        if self.sort != SortState():
            params["sort"] = self.sort.column
            params["dir"] = "asc" if self.sort.ascending else "desc"
        if self.page.index:
            params["page"] = self.page.index
        params["size"] = self.page.size
        return params

    @classmethod
    def from_params(
        cls,
        args: Mapping[str, Any],
        page_sizes: Sequence[int] = PAGE_SIZE_OPTIONS,
        default_size: int = DEFAULT_PAGE_SIZE,
    ) -> "ViewState":
        """Rebuild a state from query parameters; invalid values fall back to defaults."""
        type_filter = args.get("type") or ALL_TYPES
        if type_filter not in (ALL_TYPES, *TYPE_OPTIONS):
            type_filter = ALL_TYPES
        if hasattr(args, "getlist"):
            raw_names = args.getlist("name")
        else:
            raw_names = args.get("name") or []
            if isinstance(raw_names, str):
                raw_names = [raw_names]
        names = tuple(n for n in raw_names if n) or None
        filters = FilterState(
            type=type_filter,
            query=args.get("q") or "",
            names=names,
            date_from=parse_date(args.get("from") or ""),
            date_to=parse_date(args.get("to") or ""),
        )

        column = args.get("sort") or DEFAULT_SORT_COLUMN
        if column not in SORT_COLUMNS:
            column = DEFAULT_SORT_COLUMN
        direction = args.get("dir")
        ascending = direction == "asc" if direction in ("asc", "desc") else SortState().ascending

        index = _to_int(args.get("page"), 0)
        size = _to_int(args.get("size"), default_size)
        if size not in page_sizes and size != default_size:
            size = default_size
        # The row offset of the page has to fit a SQLite INTEGER.
        index = min(max(0, index), INTEGER_MAX // max(size, 1) - 1)
        return cls(
            filters=filters,
            sort=SortState(column=column, ascending=ascending),
            page=PageState(index=index, size=size),
        )


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# Pagination -----------------------------------------------------------------


def page_count(total: int, size: int) -> int:
    if size <= 0:
        return 1
    return max(1, math.ceil((total or 0) / size))


def has_previous(state: ViewState) -> bool:
    return state.page.index > 0


def has_next(state: ViewState, total: int) -> bool:
    return (state.page.index + 1) * state.page.size < (total or 0)


def page_range(state: ViewState) -> Tuple[int, int]:
    """Inclusive row range of the current page."""
    start = state.page.index * state.page.size
    return start, start + state.page.size - 1


def _with_page(state: ViewState, index: int) -> ViewState:
    return replace(state, page=replace(state.page, index=index))


def _clamp(state: ViewState, index: int, total: int) -> ViewState:
    last = page_count(total, state.page.size) - 1
    return _with_page(state, min(max(0, index), last))


def first_page(state: ViewState, total: int = 0) -> ViewState:
    return _with_page(state, 0)


def previous_page(state: ViewState, total: int = 0) -> ViewState:
    return _with_page(state, max(0, state.page.index - 1))


def next_page(state: ViewState, total: int) -> ViewState:
    return _clamp(state, state.page.index + 1, total)


def last_page(state: ViewState, total: int) -> ViewState:
    return _clamp(state, page_count(total, state.page.size) - 1, total)


def after_delete(state: ViewState, rows_on_page: int) -> ViewState:
    """Step back a page when the deleted row was the last one on it."""
    if rows_on_page - 1 <= 0 and state.page.index > 0:
        return _with_page(state, state.page.index - 1)
    return state


# Filter and sort transitions; all of them reset to the first page. ---------


def _with_filters(state: ViewState, **changes: Any) -> ViewState:
    return ViewState(filters=replace(state.filters, **changes), sort=state.sort, page=replace(state.page, index=0))


def set_type_filter(state: ViewState, type_filter: str) -> ViewState:
    return _with_filters(state, type=type_filter or ALL_TYPES)


def set_query(state: ViewState, query: str) -> ViewState:
    return _with_filters(state, query=query or "")


def set_names(state: ViewState, names: Optional[Iterable[str]]) -> ViewState:
    selected = tuple(n for n in (names or ()) if n)
    return _with_filters(state, names=selected or None)


def set_date_range(state: ViewState, date_from: Optional[dt.date], date_to: Optional[dt.date]) -> ViewState:
    return _with_filters(state, date_from=date_from, date_to=date_to)


def clear_filters(state: ViewState) -> ViewState:
    return ViewState(filters=FilterState(), sort=state.sort, page=replace(state.page, index=0))


def toggle_sort(state: ViewState, column: str) -> ViewState:
    if state.sort.column == column:
        sort = SortState(column=column, ascending=not state.sort.ascending)
    else:
        sort = SortState(column=column, ascending=True)
    return ViewState(filters=state.filters, sort=sort, page=replace(state.page, index=0))


def set_page_size(state: ViewState, size: int) -> ViewState:
    return ViewState(filters=state.filters, sort=state.sort, page=PageState(index=0, size=size))


# Search and client-side re-filter ---------------------------------------------


@dataclass(frozen=True)
class SearchTerm:
    record_id: Optional[Union[int, float]] = None
    text: Optional[str] = None


def parse_search(query: Optional[str]) -> Optional[SearchTerm]:
    """Interpret a free-text query: a number means an exact id, anything else a substring."""
    s = (query or "").strip()
    if not s:
        return None
    if "_" not in s:
        try:
            number = float(s)
        except ValueError:
            pass
        else:
            if math.isfinite(number):
                return SearchTerm(record_id=int(number) if number.is_integer() else number)
    return SearchTerm(text=s)


def visible_rows(rows: Iterable[Mapping[str, Any]], filters: FilterState) -> List[Mapping[str, Any]]:
    """Re-filter an already fetched page by type and free-text query.

    The store applied equivalent predicates when the page was read; this pass
    runs again on the loaded rows and never changes their order.
    """
    out = []
    s = filters.query.lower()
    for r in rows:
        if filters.type != ALL_TYPES and r.get("type") != filters.type:
            continue
        if filters.query.strip():
            if not (
                s in str(r.get("id"))
                or s in (r.get("name") or "").lower()
                or s in (r.get("type") or "").lower()
            ):
                continue
        out.append(r)
    return out


def page_total(rows: Iterable[Mapping[str, Any]]) -> float:
    return sum((coerce_amount(r.get("amount")) for r in rows), 0.0)


# Controller -----------------------------------------------------------------


Transition = Callable[..., ViewState]


class ViewController:
    """Owns the table view state and the data last read for it.

    Every state change issues one page read, plus a totals read when the
    filters changed. Reads are ticketed; a result whose ticket has been
    superseded by a newer read is discarded.
    """

    def __init__(self, store, state: Optional[ViewState] = None):
        self.store = store
        self.state = state or ViewState()
        self.rows: List[Dict[str, Any]] = []
        self.total = 0
        self.totals = Totals()
        self.error: Optional[str] = None
        self._page_ticket = 0
        self._totals_ticket = 0

    @property
    def visible(self) -> List[Mapping[str, Any]]:
        return visible_rows(self.rows, self.state.filters)

    @property
    def page_total(self) -> float:
        return page_total(self.visible)

    @property
    def page_count(self) -> int:
        return page_count(self.total, self.state.page.size)

    @property
    def has_previous(self) -> bool:
        return has_previous(self.state)

    @property
    def has_next(self) -> bool:
        return has_next(self.state, self.total)

    def dispatch(self, transition: Transition, *args: Any) -> ViewState:
        previous = self.state
        new_state = transition(previous, *args)
        if new_state == previous:
            return previous
        self.state = new_state
        self.refresh(totals=new_state.filters != previous.filters)
        return new_state

    def begin_page_fetch(self) -> int:
        self._page_ticket += 1
        return self._page_ticket

    def begin_totals_fetch(self) -> int:
        self._totals_ticket += 1
        return self._totals_ticket

    def apply_page(self, ticket: int, rows: Sequence[Dict[str, Any]], count: Optional[int]) -> bool:
        if ticket != self._page_ticket:
            logger.debug("Discarding stale page read %s (latest %s)", ticket, self._page_ticket)
            return False
        self.rows = list(rows)
        self.total = count or 0
        return True

    def apply_totals(self, ticket: int, totals: Totals) -> bool:
        if ticket != self._totals_ticket:
            logger.debug("Discarding stale totals read %s (latest %s)", ticket, self._totals_ticket)
            return False
        self.totals = totals
        return True

    def refresh(self, totals: bool = True) -> bool:
        """Reread the current page (and totals); returns False if any read failed."""
        ok = True
        self.error = None
        ticket = self.begin_page_fetch()
        try:
            result = self.store.fetch_page(self.state)
        except StoreError as exc:
            self.error = str(exc)
            ok = False
        else:
            self.apply_page(ticket, result.rows, result.count)
        if totals:
            ticket = self.begin_totals_fetch()
            try:
                computed = self.store.fetch_totals(self.state.filters)
            except StoreError as exc:
                self.error = str(exc)
                ok = False
            else:
                self.apply_totals(ticket, computed)
        return ok
