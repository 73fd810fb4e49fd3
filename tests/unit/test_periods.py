"""
Unit tests - Period presets, bucketing and report filters.
"""

from datetime import date, datetime, time, timedelta

import pytest

from app.domain.errors import InvalidArgumentError
from app.domain.periods import (
    bucket_key,
    end_of_day,
    filter_for_preset,
    previous_range,
    resolve,
    start_of_week,
)
from app.domain.value_objects import DateRange, EntityScope, EntityType, ReportFilter, ReportPeriod

REFERENCE = datetime(2024, 3, 15, 10, 0)  # a Friday


class TestResolvePresets:
    """Test named presets against a fixed reference instant."""

    def test_this_month_ends_at_reference(self):
        result = resolve("thisMonth", REFERENCE)
        assert result.start == datetime(2024, 3, 1, 0, 0)
        assert result.end == REFERENCE

    def test_last_month_covers_leap_february(self):
        result = resolve("lastMonth", REFERENCE)
        assert result.start == datetime(2024, 2, 1)
        assert result.end == datetime.combine(date(2024, 2, 29), time.max)

    def test_last_month_in_january_rolls_back_a_year(self):
        result = resolve("lastMonth", datetime(2024, 1, 10, 9, 0))
        assert result.start == datetime(2023, 12, 1)
        assert result.end.date() == date(2023, 12, 31)

    def test_today_and_yesterday(self):
        today = resolve("today", REFERENCE)
        yesterday = resolve("yesterday", REFERENCE)
        assert today.start == datetime(2024, 3, 15)
        assert today.end == datetime.combine(date(2024, 3, 15), time.max)
        assert yesterday.start == datetime(2024, 3, 14)
        assert yesterday.end.date() == date(2024, 3, 14)

    def test_this_week_starts_on_sunday(self):
        result = resolve("thisWeek", REFERENCE)
        assert result.start == datetime(2024, 3, 10)
        assert result.end == REFERENCE

    def test_this_week_on_a_sunday_starts_that_day(self):
        sunday = datetime(2024, 3, 10, 8, 30)
        assert resolve("thisWeek", sunday).start == datetime(2024, 3, 10)

    def test_last_week(self):
        result = resolve("lastWeek", REFERENCE)
        assert result.start == datetime(2024, 3, 3)
        assert result.end == datetime.combine(date(2024, 3, 9), time.max)

    def test_this_year_and_last_year(self):
        this_year = resolve("thisYear", REFERENCE)
        last_year = resolve("lastYear", REFERENCE)
        assert this_year.start == datetime(2024, 1, 1)
        assert this_year.end == REFERENCE
        assert last_year.start == datetime(2023, 1, 1)
        assert last_year.end == datetime.combine(date(2023, 12, 31), time.max)

    def test_unknown_preset_rejected(self):
        with pytest.raises(InvalidArgumentError):
            resolve("nextMonth", REFERENCE)

    def test_filter_for_preset_carries_period_and_scope(self):
        scope = EntityScope(EntityType.CUSTOMER, 7)
        report_filter = filter_for_preset("lastWeek", ReportPeriod.DAILY, REFERENCE, scope)
        assert report_filter.start_date == datetime(2024, 3, 3)
        assert report_filter.period is ReportPeriod.DAILY
        assert report_filter.entity_scope == scope


class TestBucketKey:

    def test_formats(self):
        instant = datetime(2024, 3, 15, 23, 59)
        assert bucket_key(instant, ReportPeriod.DAILY) == "2024-03-15"
        assert bucket_key(instant, ReportPeriod.WEEKLY) == "2024-03-10"
        assert bucket_key(instant, ReportPeriod.MONTHLY) == "2024-03"
        assert bucket_key(instant, ReportPeriod.QUARTERLY) == "2024-Q1"
        assert bucket_key(instant, ReportPeriod.YEARLY) == "2024"

    def test_quarter_boundaries(self):
        assert bucket_key(date(2024, 4, 1), "quarterly") == "2024-Q2"
        assert bucket_key(date(2024, 11, 30), "quarterly") == "2024-Q4"

    def test_weekly_key_matches_this_week_preset(self):
        week = resolve("thisWeek", REFERENCE)
        assert bucket_key(REFERENCE, ReportPeriod.WEEKLY) == week.start.date().isoformat()

    def test_unknown_period_rejected(self):
        with pytest.raises(InvalidArgumentError):
            bucket_key(REFERENCE, "hourly")


class TestRanges:

    def test_start_of_week(self):
        assert start_of_week(date(2024, 3, 16)) == date(2024, 3, 10)  # Saturday
        assert start_of_week(date(2024, 3, 17)) == date(2024, 3, 17)  # Sunday

    def test_previous_range_has_equal_length_and_no_overlap(self):
        current = DateRange(datetime(2024, 3, 1), end_of_day(date(2024, 3, 31)))
        previous = previous_range(current)
        assert previous.end == current.start - timedelta(microseconds=1)
        assert previous.end - previous.start == current.end - current.start

    def test_report_filter_rejects_inverted_window(self):
        with pytest.raises(InvalidArgumentError):
            ReportFilter(datetime(2024, 3, 31), datetime(2024, 3, 1))

    def test_report_filter_coerces_period(self):
        report_filter = ReportFilter(datetime(2024, 3, 1), datetime(2024, 3, 31), "weekly")
        assert report_filter.period is ReportPeriod.WEEKLY

    def test_report_filter_rejects_unknown_period(self):
        with pytest.raises(InvalidArgumentError):
            ReportFilter(datetime(2024, 3, 1), datetime(2024, 3, 31), "hourly")

    def test_invalid_argument_is_a_value_error(self):
        with pytest.raises(ValueError):
            ReportFilter(datetime(2024, 3, 31), datetime(2024, 3, 1))
