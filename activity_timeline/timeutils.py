"""Time range and timezone helpers.

Abbreviations such as ``EST`` or ``IST`` map to fixed offsets and ignore
daylight saving. IANA names resolve through ``zoneinfo`` so their local
day/week/month boundaries follow the zone's real rules.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from activity_timeline.errors import (
    INVALID_DATE_FORMAT,
    INVALID_TIME_PERIOD,
    INVALID_TIME_RANGE,
    INVALID_TIMEZONE,
    TimelineError,
)
from activity_timeline.intervals import Interval, to_epoch_ms

TIMEZONE_ABBREVIATIONS = {
    "UTC": 0,
    "GMT": 0,
    "IST": 60,
    "BST": 60,
    "CET": 60,
    "CEST": 120,
    "EET": 120,
    "EEST": 180,
    "MSK": 180,
    "EST": -300,
    "EDT": -240,
    "CST": -360,
    "CDT": -300,
    "MST": -420,
    "MDT": -360,
    "PST": -480,
    "PDT": -420,
    "AKST": -540,
    "HST": -600,
    "JST": 540,
    "KST": 540,
    "AEST": 600,
    "AEDT": 660,
    "NZST": 720,
}

TIME_PERIODS = ("today", "yesterday", "this_week", "last_week", "last_7_days", "last_30_days", "custom")

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$")
_BARE_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ONE_MS = timedelta(milliseconds=1)
_MAX_OFFSET_MINUTES = 24 * 60

TimezoneLike = Union[str, tzinfo, None]


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    @property
    def interval(self) -> Interval:
        return Interval(to_epoch_ms(self.start), to_epoch_ms(self.end))

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _fixed_offset_minutes(value: str) -> Optional[int]:
    key = value.strip().upper()
    if key in TIMEZONE_ABBREVIATIONS:
        return TIMEZONE_ABBREVIATIONS[key]
    match = _OFFSET_RE.match(key)
    if not match:
        return None
    sign, hours, minutes = match.groups()
    total = int(hours) * 60 + int(minutes or 0)
    return -total if sign == "-" else total


def resolve_tzinfo(value: TimezoneLike) -> tzinfo:
    """Turn a timezone value (abbreviation, offset or IANA name) into a tzinfo."""

    if value is None:
        return timezone.utc
    if isinstance(value, tzinfo):
        return value

    offset = _fixed_offset_minutes(value)
    if offset is not None:
        # datetime.timezone only accepts offsets strictly inside +/-24h
        if abs(offset) >= _MAX_OFFSET_MINUTES:
            raise TimelineError(f"Invalid timezone: {value}", INVALID_TIMEZONE, {"timezone": value})
        return timezone.utc if offset == 0 else timezone(timedelta(minutes=offset))
    try:
        return ZoneInfo(value.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise TimelineError(f"Invalid timezone: {value}", INVALID_TIMEZONE, {"timezone": value}) from exc


def parse_timezone_offset(value: str, at: Optional[datetime] = None) -> int:
    """Offset from UTC in minutes for ``value`` at instant ``at`` (default now)."""

    tz = resolve_tzinfo(value)
    moment = at or datetime.now(timezone.utc)
    offset = moment.astimezone(tz).utcoffset() or timedelta(0)
    return int(offset.total_seconds() // 60)


def format_timezone_offset(minutes: int) -> str:
    if minutes == 0:
        return "UTC"
    sign = "+" if minutes > 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours}" if mins == 0 else f"UTC{sign}{hours}:{mins:02d}"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """UTC instant of 00:00 local time on ``day``."""

    return datetime.combine(day, time(0), tzinfo=tz).astimezone(timezone.utc)


def local_date(instant: datetime, tz: tzinfo) -> date:
    return _as_utc(instant).astimezone(tz).date()


def start_of_day(instant: datetime, tz: tzinfo) -> datetime:
    return local_midnight(local_date(instant, tz), tz)


def end_of_day(instant: datetime, tz: tzinfo) -> datetime:
    return local_midnight(local_date(instant, tz) + timedelta(days=1), tz) - _ONE_MS


def start_of_week(instant: datetime, tz: tzinfo) -> datetime:
    day = local_date(instant, tz)
    return local_midnight(day - timedelta(days=day.weekday()), tz)


def end_of_week(instant: datetime, tz: tzinfo) -> datetime:
    day = local_date(instant, tz)
    return local_midnight(day + timedelta(days=7 - day.weekday()), tz) - _ONE_MS


def start_of_month(instant: datetime, tz: tzinfo) -> datetime:
    return local_midnight(local_date(instant, tz).replace(day=1), tz)


def end_of_month(instant: datetime, tz: tzinfo) -> datetime:
    day = local_date(instant, tz)
    if day.month == 12:
        first_next = date(day.year + 1, 1, 1)
    else:
        first_next = date(day.year, day.month + 1, 1)
    return local_midnight(first_next, tz) - _ONE_MS


def days_between(start: datetime, end: datetime, tz: tzinfo) -> list[date]:
    """Local calendar days touched by ``[start, end]``."""

    first, last = local_date(start, tz), local_date(end, tz)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def weeks_between(start: datetime, end: datetime, tz: tzinfo) -> list[TimeRange]:
    """Monday-start local weeks touched by ``[start, end]``."""

    weeks = []
    cursor = start_of_week(start, tz)
    while cursor <= end:
        weeks.append(TimeRange(cursor, end_of_week(cursor, tz)))
        cursor = local_midnight(local_date(cursor, tz) + timedelta(days=7), tz)
    return weeks


def parse_date(value: str, tz: TimezoneLike = None) -> datetime:
    """Parse ISO-8601 or bare ``YYYY-MM-DD``; naive values are local to ``tz``."""

    tzinfo_ = resolve_tzinfo(tz)
    text = value.strip()
    match = _BARE_DATE_RE.match(text)
    if match:
        try:
            day = date(*(int(part) for part in match.groups()))
        except ValueError as exc:
            raise TimelineError(
                f"Invalid date format: {value}. Use YYYY-MM-DD or ISO 8601 format.",
                INVALID_DATE_FORMAT,
                {"date": value},
            ) from exc
        return local_midnight(day, tzinfo_)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise TimelineError(
            f"Invalid date format: {value}. Use YYYY-MM-DD or ISO 8601 format.",
            INVALID_DATE_FORMAT,
            {"date": value},
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tzinfo_)
    return parsed.astimezone(timezone.utc)


def get_time_range(
    time_period: str,
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    *,
    tz: TimezoneLike = None,
    now: Optional[datetime] = None,
) -> TimeRange:
    """Resolve a symbolic period into a concrete UTC range."""

    tzinfo_ = resolve_tzinfo(tz)
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    today = start_of_day(now, tzinfo_)
    today_local = local_date(now, tzinfo_)

    if time_period == "today":
        return TimeRange(today, now)
    if time_period == "yesterday":
        yesterday = local_midnight(today_local - timedelta(days=1), tzinfo_)
        return TimeRange(yesterday, today - _ONE_MS)
    if time_period == "this_week":
        return TimeRange(start_of_week(now, tzinfo_), now)
    if time_period == "last_week":
        this_week = start_of_week(now, tzinfo_)
        last_week = local_midnight(local_date(this_week, tzinfo_) - timedelta(days=7), tzinfo_)
        return TimeRange(last_week, this_week - timedelta(seconds=1))
    if time_period == "last_7_days":
        return TimeRange(local_midnight(today_local - timedelta(days=7), tzinfo_), now)
    if time_period == "last_30_days":
        return TimeRange(local_midnight(today_local - timedelta(days=30), tzinfo_), now)
    if time_period == "custom":
        if not custom_start or not custom_end:
            raise TimelineError(
                "Custom time period requires custom_start and custom_end parameters",
                INVALID_TIME_PERIOD,
                {"time_period": time_period, "custom_start": custom_start, "custom_end": custom_end},
            )
        start = parse_date(custom_start, tzinfo_)
        end = parse_date(custom_end, tzinfo_)
        if start >= end:
            raise TimelineError(
                "custom_start must be before custom_end",
                INVALID_TIME_RANGE,
                {"custom_start": custom_start, "custom_end": custom_end},
            )
        return TimeRange(start, end)

    raise TimelineError(f"Invalid time period: {time_period}", INVALID_TIME_PERIOD, {"time_period": time_period})


def seconds_to_hours(seconds: float) -> float:
    return round(seconds / 3600.0, 2)


def format_duration(seconds: float) -> str:
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def percentage_of(part: float, total: float) -> float:
    """Share of ``total`` in percent, truncated to 2 decimals.

    Truncating instead of rounding keeps any set of disjoint shares at or
    below 100.
    """

    if total <= 0:
        return 0.0
    # absorb float noise such as 0.29 * 10000 == 2899.9999999999995
    return math.floor(round(part / total * 10000.0, 6)) / 100.0
