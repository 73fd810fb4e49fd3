"""
Period Resolver - Turns named presets into concrete date ranges.

Weeks start on Sunday. "this*" presets end at the reference instant rather
than at the end of the period, so a report run mid-month only covers data
through now. Closed past periods end at the last representable instant of
their last day.
"""

from datetime import date, datetime, time, timedelta, tzinfo

from .errors import InvalidArgumentError
from .value_objects import DateRange, EntityScope, PeriodPreset, ReportFilter, ReportPeriod


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_day(day: date | datetime, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(_as_date(day), time.min, tzinfo=tz)


def end_of_day(day: date | datetime, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(_as_date(day), time.max, tzinfo=tz)


def start_of_week(day: date | datetime) -> date:
    """Sunday on or before the given day."""
    day = _as_date(day)
    # date.weekday(): Monday=0 ... Sunday=6
    offset = (day.weekday() + 1) % 7
    return day - timedelta(days=offset)


def resolve(preset: PeriodPreset | str, reference: datetime | None = None) -> DateRange:
    """
    Resolve a preset name into a DateRange.

    Args:
        preset: one of PeriodPreset (or its string value, e.g. "thisMonth")
        reference: instant the preset is relative to; defaults to now

    Raises:
        InvalidArgumentError: unknown preset
    """
    try:
        preset = PeriodPreset(preset)
    except ValueError:
        raise InvalidArgumentError(f"Unknown period preset: {preset!r}") from None

    now = reference if reference is not None else datetime.now()
    tz = now.tzinfo
    today = now.date()

    if preset is PeriodPreset.TODAY:
        return DateRange(start_of_day(today, tz), end_of_day(today, tz))
    if preset is PeriodPreset.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return DateRange(start_of_day(yesterday, tz), end_of_day(yesterday, tz))
    if preset is PeriodPreset.THIS_WEEK:
        return DateRange(start_of_day(start_of_week(today), tz), now)
    if preset is PeriodPreset.LAST_WEEK:
        week_start = start_of_week(today)
        return DateRange(
            start_of_day(week_start - timedelta(days=7), tz),
            end_of_day(week_start - timedelta(days=1), tz),
        )
    if preset is PeriodPreset.THIS_MONTH:
        return DateRange(start_of_day(today.replace(day=1), tz), now)
    if preset is PeriodPreset.LAST_MONTH:
        last_of_previous = today.replace(day=1) - timedelta(days=1)
        return DateRange(
            start_of_day(last_of_previous.replace(day=1), tz),
            end_of_day(last_of_previous, tz),
        )
    if preset is PeriodPreset.THIS_YEAR:
        return DateRange(start_of_day(date(today.year, 1, 1), tz), now)
    # LAST_YEAR
    return DateRange(
        start_of_day(date(today.year - 1, 1, 1), tz),
        end_of_day(date(today.year - 1, 12, 31), tz),
    )


def filter_for_preset(
    preset: PeriodPreset | str,
    period: ReportPeriod = ReportPeriod.MONTHLY,
    reference: datetime | None = None,
    entity_scope: EntityScope | None = None,
) -> ReportFilter:
    date_range = resolve(preset, reference)
    return ReportFilter(date_range.start, date_range.end, period, entity_scope)


def previous_range(current: DateRange) -> DateRange:
    """Window of equal length ending just before current.start."""
    span = current.end - current.start
    previous_end = current.start - timedelta(microseconds=1)
    return DateRange(previous_end - span, previous_end)


def bucket_key(instant: date | datetime, period: ReportPeriod) -> str:
    """
    Group key of an instant for trend reports.

    Keys sort chronologically as plain strings. Weekly keys are the ISO date
    of the Sunday that starts the week, matching the thisWeek/lastWeek presets.
    """
    try:
        period = ReportPeriod(period)
    except ValueError:
        raise InvalidArgumentError(f"Unsupported period: {period!r}") from None

    day = _as_date(instant)
    if period is ReportPeriod.DAILY:
        return day.isoformat()
    if period is ReportPeriod.WEEKLY:
        return start_of_week(day).isoformat()
    if period is ReportPeriod.MONTHLY:
        return f"{day.year:04d}-{day.month:02d}"
    if period is ReportPeriod.QUARTERLY:
        return f"{day.year:04d}-Q{(day.month - 1) // 3 + 1}"
    return f"{day.year:04d}"
