from datetime import date, datetime, timezone
from zoneinfo import available_timezones

import pytest

from activity_timeline.errors import (
    INVALID_DATE_FORMAT,
    INVALID_TIME_PERIOD,
    INVALID_TIME_RANGE,
    INVALID_TIMEZONE,
    TimelineError,
)
from activity_timeline.timeutils import (
    days_between,
    end_of_day,
    end_of_month,
    format_duration,
    format_timezone_offset,
    get_time_range,
    parse_date,
    parse_timezone_offset,
    percentage_of,
    resolve_tzinfo,
    seconds_to_hours,
    start_of_day,
    weeks_between,
)

UTC = timezone.utc
NOW = datetime(2025, 3, 12, 15, 0, tzinfo=UTC)  # Wednesday


@pytest.mark.parametrize(
    "value,minutes",
    [("IST", 60), ("EST", -300), ("PST", -480), ("est", -300), ("UTC+1", 60), ("+1", 60), ("+5:30", 330), ("GMT", 0)],
)
def test_parse_timezone_offset(value, minutes):
    assert parse_timezone_offset(value) == minutes


@pytest.mark.skipif("Europe/London" not in available_timezones(), reason="tz database not installed")
def test_iana_zone_follows_daylight_saving():
    assert parse_timezone_offset("Europe/London", at=datetime(2025, 7, 1, tzinfo=UTC)) == 60
    assert parse_timezone_offset("Europe/London", at=datetime(2025, 1, 1, tzinfo=UTC)) == 0


def test_unknown_timezone_raises():
    with pytest.raises(TimelineError) as info:
        resolve_tzinfo("Mars/Olympus_Mons")
    assert info.value.code == INVALID_TIMEZONE


@pytest.mark.parametrize("value", ["UTC+30", "-24", "+24:00"])
def test_offsets_outside_a_day_raise(value):
    with pytest.raises(TimelineError) as info:
        resolve_tzinfo(value)
    assert info.value.code == INVALID_TIMEZONE


def test_largest_offsets_still_resolve():
    assert parse_timezone_offset("UTC+14") == 840
    assert parse_timezone_offset("-23:59") == -1439


def test_format_timezone_offset():
    assert format_timezone_offset(0) == "UTC"
    assert format_timezone_offset(60) == "UTC+1"
    assert format_timezone_offset(330) == "UTC+5:30"
    assert format_timezone_offset(-300) == "UTC-5"


def test_day_boundaries_in_fixed_offsets():
    moment = datetime(2025, 10, 11, 12, 0, tzinfo=UTC)
    assert start_of_day(moment, resolve_tzinfo("+1")) == datetime(2025, 10, 10, 23, 0, tzinfo=UTC)
    assert start_of_day(moment, resolve_tzinfo("EST")) == datetime(2025, 10, 11, 5, 0, tzinfo=UTC)
    assert end_of_day(moment, UTC) == datetime(2025, 10, 11, 23, 59, 59, 999000, tzinfo=UTC)


def test_end_of_month_handles_leap_year():
    assert end_of_month(datetime(2024, 2, 10, tzinfo=UTC), UTC) == datetime(2024, 2, 29, 23, 59, 59, 999000, tzinfo=UTC)


def test_custom_range_must_be_ordered():
    with pytest.raises(TimelineError) as info:
        get_time_range("custom", "2025-01-31", "2025-01-01")
    assert info.value.code == INVALID_TIME_RANGE


def test_custom_range_requires_both_ends():
    with pytest.raises(TimelineError) as info:
        get_time_range("custom", "2025-01-01")
    assert info.value.code == INVALID_TIME_PERIOD


def test_unknown_period_and_bad_dates():
    with pytest.raises(TimelineError) as info:
        get_time_range("fortnight")
    assert info.value.code == INVALID_TIME_PERIOD

    for value in ("2025-13-01", "not-a-date"):
        with pytest.raises(TimelineError) as info:
            parse_date(value)
        assert info.value.code == INVALID_DATE_FORMAT


def test_bare_dates_are_local_midnight():
    assert parse_date("2025-01-01", "EST") == datetime(2025, 1, 1, 5, 0, tzinfo=UTC)
    assert parse_date("2025-01-01T10:00:00Z") == datetime(2025, 1, 1, 10, 0, tzinfo=UTC)


def test_yesterday_and_last_week():
    yesterday = get_time_range("yesterday", now=NOW)
    assert yesterday.start == datetime(2025, 3, 11, tzinfo=UTC)
    assert yesterday.end == datetime(2025, 3, 11, 23, 59, 59, 999000, tzinfo=UTC)

    last_week = get_time_range("last_week", now=NOW)
    assert last_week.start == datetime(2025, 3, 3, tzinfo=UTC)
    assert last_week.end == datetime(2025, 3, 9, 23, 59, 59, tzinfo=UTC)


def test_today_uses_local_midnight():
    now = datetime(2025, 3, 12, 23, 30, tzinfo=UTC)
    today = get_time_range("today", tz="+1", now=now)
    assert today.start == datetime(2025, 3, 12, 23, 0, tzinfo=UTC)
    assert today.end == now


def test_days_and_weeks_between():
    days = days_between(datetime(2025, 3, 1, tzinfo=UTC), datetime(2025, 3, 3, 12, tzinfo=UTC), UTC)
    assert days == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3)]

    weeks = weeks_between(datetime(2025, 3, 12, tzinfo=UTC), datetime(2025, 3, 20, tzinfo=UTC), UTC)
    assert [week.start for week in weeks] == [datetime(2025, 3, 10, tzinfo=UTC), datetime(2025, 3, 17, tzinfo=UTC)]


def test_duration_formatting():
    assert seconds_to_hours(5400) == 1.5
    assert format_duration(3900) == "1h 5m"
    assert format_duration(182) == "3m 2s"
    assert format_duration(42) == "42s"


def test_percentages_truncate_to_two_decimals():
    assert percentage_of(1, 6) == 16.66
    assert percentage_of(2, 3) == 66.66
    assert percentage_of(29, 100) == 29.0
    assert percentage_of(0.29, 100) == 0.29
    assert percentage_of(5, 0) == 0.0
