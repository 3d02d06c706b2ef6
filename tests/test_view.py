"""Tests for the table view state, pagination and controller."""

import datetime as dt

import pytest
from werkzeug.datastructures import MultiDict

from finance_ledger.analytics import Totals
from finance_ledger.errors import StoreError
from finance_ledger.store import QueryResult
from finance_ledger.view import (
    FilterState,
    PageState,
    SearchTerm,
    SortState,
    ViewController,
    ViewState,
    after_delete,
    clear_filters,
    first_page,
    has_next,
    has_previous,
    last_page,
    next_page,
    page_count,
    page_total,
    parse_search,
    previous_page,
    set_date_range,
    set_names,
    set_page_size,
    set_query,
    set_type_filter,
    toggle_sort,
    visible_rows,
)

ROWS = [
    {"id": 10, "name": "Rent", "type": "Expenditure", "amount": 1200},
    {"id": 1, "name": "Salary", "type": "Income", "amount": "3000"},
    {"id": 7, "name": "Coffee", "type": "Expenditure", "amount": "n/a"},
]


def on_page(index: int, size: int = 10) -> ViewState:
    return ViewState(page=PageState(index=index, size=size))


class TestPagination:
    def test_page_count(self):
        assert page_count(23, 10) == 3
        assert page_count(20, 10) == 2
        assert page_count(0, 10) == 1

    def test_last_and_next(self):
        assert last_page(on_page(0), 23).page.index == 2
        assert next_page(on_page(1), 23).page.index == 2
        assert next_page(on_page(2), 23).page.index == 2
        assert not has_next(on_page(2), 23)
        assert has_next(on_page(1), 23)

    def test_first_and_previous(self):
        assert previous_page(on_page(0)).page.index == 0
        assert previous_page(on_page(2)).page.index == 1
        assert first_page(on_page(2)).page.index == 0
        assert not has_previous(on_page(0))

    def test_last_on_empty_set(self):
        assert last_page(on_page(0), 0).page.index == 0

    def test_after_delete_steps_back_from_emptied_page(self):
        assert after_delete(on_page(2), rows_on_page=1).page.index == 1
        assert after_delete(on_page(2), rows_on_page=3).page.index == 2
        assert after_delete(on_page(0), rows_on_page=1).page.index == 0


class TestTransitions:
    def test_filter_changes_reset_page(self):
        state = on_page(3)
        assert set_query(state, "rent").page.index == 0
        assert set_type_filter(state, "Income").page.index == 0
        assert set_names(state, ["Rent"]).page.index == 0
        assert set_date_range(state, dt.date(2024, 1, 1), None).page.index == 0
        assert clear_filters(state).page.index == 0

    def test_empty_name_selection_clears_filter(self):
        assert set_names(ViewState(), []).filters.names is None
        assert set_names(ViewState(), ["A", "B"]).filters.names == ("A", "B")

    def test_clear_keeps_sort(self):
        state = toggle_sort(set_query(ViewState(), "x"), "name")
        cleared = clear_filters(state)
        assert cleared.filters == FilterState()
        assert cleared.sort == SortState(column="name", ascending=True)

    def test_toggle_sort(self):
        state = on_page(2)
        flipped = toggle_sort(state, "date")
        assert flipped.sort == SortState(column="date", ascending=True)
        assert toggle_sort(flipped, "date").sort.ascending is False
        assert toggle_sort(flipped, "amount").sort == SortState(column="amount", ascending=True)
        assert flipped.page.index == 0

    def test_page_size_resets_page(self):
        state = set_page_size(on_page(4), 50)
        assert state.page == PageState(index=0, size=50)


class TestParams:
    def test_round_trip(self):
        state = ViewState(
            filters=FilterState(
                type="Income",
                query="sal",
                names=("Salary", "Bonus"),
                date_from=dt.date(2024, 1, 1),
                date_to=dt.date(2024, 6, 30),
            ),
            sort=SortState(column="amount", ascending=True),
            page=PageState(index=2, size=20),
        )
        assert ViewState.from_params(MultiDict(state.to_params())) == state

    def test_defaults_omit_filters(self):
        assert ViewState().to_params() == {"size": 10}

    def test_page_index_is_capped(self):
        state = ViewState.from_params({"page": "99999999999999999999", "size": "10"})
        assert state.page.index * state.page.size + state.page.size <= 2**63 - 1
        assert state.page.index > 0

    def test_invalid_values_fall_back(self):
        state = ViewState.from_params({"type": "Bogus", "sort": "id", "size": "7", "page": "-3", "from": "soon"})
        assert state == ViewState()


class TestSearch:
    def test_numbers_are_ids(self):
        assert parse_search("42") == SearchTerm(record_id=42)
        assert parse_search(" 7 ") == SearchTerm(record_id=7)
        assert parse_search("1.5") == SearchTerm(record_id=1.5)

    def test_text(self):
        assert parse_search("Rent") == SearchTerm(text="Rent")
        assert parse_search("nan") == SearchTerm(text="nan")
        assert parse_search("1_000") == SearchTerm(text="1_000")

    def test_blank(self):
        assert parse_search("   ") is None


class TestVisibleRows:
    def test_no_filters_keeps_order(self):
        assert visible_rows(ROWS, FilterState()) == ROWS

    def test_type_filter(self):
        assert [r["id"] for r in visible_rows(ROWS, FilterState(type="Expenditure"))] == [10, 7]

    def test_query_matches_id_name_and_type(self):
        assert [r["id"] for r in visible_rows(ROWS, FilterState(query="1"))] == [10, 1]
        assert [r["id"] for r in visible_rows(ROWS, FilterState(query="COF"))] == [7]
        assert [r["id"] for r in visible_rows(ROWS, FilterState(query="income"))] == [1]

    def test_page_total_ignores_bad_amounts(self):
        assert page_total(ROWS) == 4200.0
        assert page_total([]) == 0.0


class FakeStore:
    def __init__(self, rows=None, count=0, totals=None):
        self.rows = rows or []
        self.count = count
        self.totals = totals or Totals()
        self.page_reads = []
        self.totals_reads = []
        self.fail = None

    def fetch_page(self, state):
        self.page_reads.append(state)
        if self.fail:
            raise StoreError(self.fail)
        return QueryResult(rows=list(self.rows), count=self.count)

    def fetch_totals(self, filters):
        self.totals_reads.append(filters)
        if self.fail:
            raise StoreError(self.fail)
        return self.totals


class TestViewController:
    @pytest.fixture
    def fake(self):
        return FakeStore(rows=ROWS, count=23, totals=Totals(income=3000, expenditure=1200))

    def test_refresh_loads_rows_and_totals(self, fake):
        view = ViewController(fake)
        assert view.refresh()
        assert view.total == 23
        assert view.page_count == 3
        assert view.totals.net == 1800
        assert view.page_total == 4200.0

    def test_filter_change_fetches_page_and_totals(self, fake):
        view = ViewController(fake)
        view.dispatch(set_query, "rent")
        assert len(fake.page_reads) == 1
        assert len(fake.totals_reads) == 1
        assert view.state.filters.query == "rent"

    def test_page_move_fetches_page_only(self, fake):
        view = ViewController(fake)
        view.refresh()
        view.dispatch(next_page, view.total)
        assert view.state.page.index == 1
        assert len(fake.page_reads) == 2
        assert len(fake.totals_reads) == 1

    def test_unchanged_state_does_not_fetch(self, fake):
        view = ViewController(fake)
        view.dispatch(first_page)
        assert fake.page_reads == []

    def test_stale_results_are_discarded(self, fake):
        view = ViewController(fake)
        older = view.begin_page_fetch()
        newer = view.begin_page_fetch()
        assert view.apply_page(newer, [{"id": 2}], 1)
        assert not view.apply_page(older, [{"id": 1}], 5)
        assert view.rows == [{"id": 2}]
        assert view.total == 1

        old_totals = view.begin_totals_fetch()
        view.begin_totals_fetch()
        assert not view.apply_totals(old_totals, Totals(income=99))
        assert view.totals == Totals()

    def test_failure_keeps_previous_state(self, fake):
        view = ViewController(fake)
        view.refresh()
        fake.fail = "connection refused"
        assert not view.refresh()
        assert view.error == "connection refused"
        assert view.rows == ROWS
        assert view.totals.income == 3000

    def test_successful_refresh_clears_error(self, fake):
        view = ViewController(fake)
        fake.fail = "connection refused"
        view.refresh()
        fake.fail = None
        assert view.refresh()
        assert view.error is None
