"""Tests for display formatting."""

import datetime as dt
import re

from finance_ledger.formatting import (
    format_amount,
    format_date_with_ordinal,
    format_month_label,
    ordinal_suffix,
)


class TestFormatAmount:
    def test_two_decimals_with_grouping(self):
        assert format_amount(1234.5) == "1,234.50"
        assert re.search(r"\.\d{2}$", format_amount(1234.5))

    def test_numeric_string(self):
        assert format_amount("12") == "12.00"

    def test_rounds_to_two_places(self):
        assert format_amount(0.125) in ("0.12", "0.13")
        assert format_amount(-3) == "-3.00"

    def test_non_numeric_is_empty(self):
        assert format_amount("abc") == ""
        assert format_amount(float("nan")) == ""

    def test_non_finite_is_empty(self):
        assert format_amount(float("inf")) == ""
        assert format_amount("-inf") == ""


class TestOrdinalDates:
    def test_suffixes(self):
        assert [ordinal_suffix(d) for d in (1, 2, 3, 4, 11, 12, 13, 21, 22, 23, 31)] == [
            "st", "nd", "rd", "th", "th", "th", "th", "st", "nd", "rd", "st",
        ]

    def test_format(self):
        assert format_date_with_ordinal("2024-01-01") == "1st Jan 2024"
        assert format_date_with_ordinal("2024-01-11") == "11th Jan 2024"
        assert format_date_with_ordinal("2024-02-22") == "22nd Feb 2024"
        assert format_date_with_ordinal(dt.date(2023, 12, 3)) == "3rd Dec 2023"

    def test_timestamp_input(self):
        assert format_date_with_ordinal("2024-05-31T08:30:00") == "31st May 2024"

    def test_unparseable_is_returned_unchanged(self):
        assert format_date_with_ordinal("not-a-date") == "not-a-date"
        assert format_date_with_ordinal("") == ""


class TestMonthLabel:
    def test_valid_key(self):
        assert format_month_label("2024-03") == "March 2024"

    def test_out_of_range_month(self):
        assert format_month_label("2024-13") == "2024-13"
        assert format_month_label("2024-00") == "2024-00"

    def test_malformed(self):
        assert format_month_label("March") == "March"
        assert format_month_label("") == ""
        assert format_month_label(None) is None
