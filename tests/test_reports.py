"""Tests for the monthly statement."""

from datetime import date, datetime, timedelta, timezone

import pytest

from fairshare.reports.monthly import (
    build_monthly_report,
    current_month,
    month_key,
    shift_month,
)

from conftest import make_expense


class TestMonthSelectors:
    """Resolving whatever the caller passes to a YYYY-MM key."""

    def test_none_is_current_month(self):
        assert month_key(None) == current_month()

    def test_string(self):
        assert month_key("2024-03") == "2024-03"
        assert month_key("2024-03-15T10:00:00.000Z") == "2024-03"

    def test_date(self):
        assert month_key(date(2024, 3, 15)) == "2024-03"

    def test_aware_datetime_converted_to_utc(self):
        moment = datetime(2024, 3, 31, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert month_key(moment) == "2024-04"

    def test_unreadable_falls_back(self):
        assert month_key("soon") == current_month()

    @pytest.mark.parametrize("key,offset,expected", [
        ("2024-01", -1, "2023-12"),
        ("2024-12", 1, "2025-01"),
        ("2024-06", 0, "2024-06"),
        ("2024-03", -14, "2023-01"),
    ])
    def test_shift_month(self, key, offset, expected):
        assert shift_month(key, offset) == expected

    @pytest.mark.parametrize("key,offset,expected", [
        ("0001-01", -1, "0001-01"),
        ("0001-03", -120, "0001-01"),
        ("9999-12", 1, "9999-12"),
        ("9999-01", 10_000, "9999-12"),
    ])
    def test_shift_month_clamped_to_calendar(self, key, offset, expected):
        shifted = shift_month(key, offset)

        assert shifted == expected
        assert month_key(shifted) == shifted

    def test_aware_datetime_at_range_edge(self):
        moment = datetime(1, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=5)))
        assert month_key(moment) == "0001-01"


class TestBuildMonthlyReport:
    """Statement for one month."""

    def test_only_selected_month(self, sample_expenses, participants):
        report = build_monthly_report(sample_expenses, participants, "2024-02")

        assert report.month == "2024-02"
        assert report.label == "February 2024"
        assert {r.name for r in report.records} == {"Rent", "Dinner"}
        assert report.summary.total == 960
        assert report.headline == "Blake owes Alex $420.00"

    def test_records_newest_first(self, sample_expenses, participants):
        report = build_monthly_report(sample_expenses, participants, "2024-02")
        dates = [r.date for r in report.records]
        assert dates == sorted(dates, reverse=True)

    def test_empty_month(self, sample_expenses, participants):
        report = build_monthly_report(sample_expenses, participants, "2022-05")

        assert not report.has_expenses
        assert report.summary.total == 0
        assert report.headline == "No expenses"

    def test_raw_rows(self):
        report = build_monthly_report(
            [{"amount": "10", "paidBy": "User A", "date": "2024-05-02T00:00:00Z"}],
            None,
            "2024-05",
        )
        assert report.headline == "User B owes User A $5.00"

    def test_balanced_month(self, participants):
        report = build_monthly_report(
            [make_expense(20, "Alex"), make_expense(20, "Blake")],
            participants,
            "2024-01",
        )
        assert report.headline == "Blake owes Alex $0.00"
