"""Daily, weekly, monthly and rolling period summaries.

The canonical builder and calendar fusion run once over the whole period.
Breakdown rows are produced afterwards by slicing the same event set with an
overlap matrix (events x slices), so no per-slice refetch or rebuild happens.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Sequence

import numpy as np

from activity_timeline.afk import afk_intervals, filter_period_intersect, summarize_afk
from activity_timeline.canonical import build_canonical_events
from activity_timeline.categories import CategoryMatcher
from activity_timeline.config import DEFAULT_CONFIG, EngineConfig
from activity_timeline.errors import INVALID_DETAIL_LEVEL, INVALID_PERIOD_TYPE, TimelineError
from activity_timeline.grouping import group_events
from activity_timeline.intervals import Interval, from_epoch_ms, to_epoch_ms
from activity_timeline.meetings import filter_meetings, fuse_calendar, summarize_meetings, timed_meetings
from activity_timeline.schema import CanonicalEvent, EventStreams
from activity_timeline.timeutils import (
    TimeRange,
    days_between,
    end_of_day,
    end_of_month,
    end_of_week,
    local_midnight,
    percentage_of,
    resolve_tzinfo,
    seconds_to_hours,
    start_of_month,
    start_of_week,
    weeks_between,
)

logger = logging.getLogger(__name__)

PERIOD_TYPES = ("daily", "weekly", "monthly", "last_24_hours", "last_7_days", "last_30_days")
DETAIL_LEVELS = ("hourly", "daily", "weekly", "none")

DEFAULT_DETAIL_LEVELS = {
    "daily": "hourly",
    "last_24_hours": "hourly",
    "weekly": "daily",
    "last_7_days": "daily",
    "monthly": "daily",
    "last_30_days": "daily",
}

PERIOD_LABELS = {
    "daily": "Daily summary",
    "weekly": "Weekly summary",
    "monthly": "Monthly summary",
    "last_24_hours": "Last 24 hours",
    "last_7_days": "Last 7 days",
    "last_30_days": "Last 30 days",
}

TOP_LIMIT = 5
_HOUR_MS = 3600 * 1000
_DAY_SECONDS = 24 * 3600


def _check_period_type(period_type: str) -> None:
    if period_type not in PERIOD_TYPES:
        raise TimelineError(
            f"Invalid period type: {period_type}", INVALID_PERIOD_TYPE, {"period_type": period_type}
        )


def resolve_detail_level(period_type: str, detail_level: Optional[str] = None) -> str:
    """Requested detail level, or the default for ``period_type``."""

    _check_period_type(period_type)
    detail = detail_level or DEFAULT_DETAIL_LEVELS[period_type]
    if detail not in DETAIL_LEVELS:
        raise TimelineError(f"Invalid detail level: {detail}", INVALID_DETAIL_LEVEL, {"detail_level": detail})
    return detail


def get_period_boundaries(
    period_type: str, day: date, tz: tzinfo, now: Optional[datetime] = None
) -> TimeRange:
    """UTC boundaries of the period containing ``day`` (local to ``tz``)."""

    _check_period_type(period_type)
    anchor = local_midnight(day, tz)
    if period_type == "daily":
        return TimeRange(anchor, end_of_day(anchor, tz))
    if period_type == "weekly":
        return TimeRange(start_of_week(anchor, tz), end_of_week(anchor, tz))
    if period_type == "monthly":
        return TimeRange(start_of_month(anchor, tz), end_of_month(anchor, tz))

    end = now or datetime.now(timezone.utc)
    hours = {"last_24_hours": 24, "last_7_days": 7 * 24, "last_30_days": 30 * 24}[period_type]
    return TimeRange(end - timedelta(hours=hours), end)


def overlap_matrix(intervals: Sequence[Interval], slices: Sequence[Interval]) -> np.ndarray:
    """Seconds of overlap between every interval (rows) and slice (columns)."""

    if not intervals or not slices:
        return np.zeros((len(intervals), len(slices)))
    starts = np.array([interval.start for interval in intervals], dtype=np.int64)
    ends = np.array([interval.end for interval in intervals], dtype=np.int64)
    slice_starts = np.array([piece.start for piece in slices], dtype=np.int64)
    slice_ends = np.array([piece.end for piece in slices], dtype=np.int64)
    overlap = np.minimum(ends[:, None], slice_ends[None, :]) - np.maximum(starts[:, None], slice_starts[None, :])
    return np.clip(overlap, 0, None) / 1000.0


def top_key_per_slice(matrix: np.ndarray, keys: Sequence[Optional[str]]) -> list[Optional[str]]:
    """Key with the most overlap in each column; ``None`` where nothing is keyed."""

    top: list[Optional[str]] = [None] * matrix.shape[1]
    rows = [index for index, key in enumerate(keys) if key]
    if not rows or matrix.shape[1] == 0:
        return top

    names, inverse = np.unique(np.array([keys[index] for index in rows]), return_inverse=True)
    per_key = np.zeros((len(names), matrix.shape[1]))
    np.add.at(per_key, inverse.ravel(), matrix[rows])
    best = per_key.argmax(axis=0)
    for column, row in enumerate(best):
        if per_key[row, column] > 0:
            top[column] = str(names[row])
    return top


def _clamp(piece: Interval, period: Interval) -> Optional[Interval]:
    start, end = max(piece.start, period.start), min(piece.end, period.end)
    return Interval(start, end) if end > start else None


def _hourly_slices(period: TimeRange, tz: tzinfo) -> list[tuple[dict, Interval]]:
    bounds = period.interval
    slices = []
    for index in range(math.ceil((bounds.end - bounds.start) / _HOUR_MS)):
        start = bounds.start + index * _HOUR_MS
        piece = Interval(start, min(start + _HOUR_MS, bounds.end))
        local = from_epoch_ms(start).astimezone(tz)
        slices.append(({"hour": local.hour, "start": local.isoformat()}, piece))
    return slices


def _daily_slices(period: TimeRange, tz: tzinfo) -> list[tuple[dict, Interval]]:
    slices = []
    for day in days_between(period.start, period.end, tz):
        day_start = local_midnight(day, tz)
        next_start = local_midnight(day + timedelta(days=1), tz)
        piece = _clamp(Interval(to_epoch_ms(day_start), to_epoch_ms(next_start)), period.interval)
        if piece is not None:
            slices.append(({"date": day.isoformat()}, piece))
    return slices


def _weekly_slices(period: TimeRange, tz: tzinfo) -> list[tuple[dict, Interval]]:
    slices = []
    for week in weeks_between(period.start, period.end, tz):
        piece = _clamp(week.interval, period.interval)
        if piece is not None:
            label = {
                "week_start": week.start.astimezone(tz).date().isoformat(),
                "week_end": week.end.astimezone(tz).date().isoformat(),
            }
            slices.append((label, piece))
    return slices


def build_breakdown(
    detail_level: str,
    period: TimeRange,
    events: Sequence[CanonicalEvent],
    afk: Sequence[Interval],
    tz: tzinfo,
) -> list[dict]:
    """One row per slice with active/AFK seconds and the top app and website."""

    if detail_level == "hourly":
        slices = _hourly_slices(period, tz)
    elif detail_level == "daily":
        slices = _daily_slices(period, tz)
    elif detail_level == "weekly":
        slices = _weekly_slices(period, tz)
    else:
        return []
    if not slices:
        return []

    pieces = [piece for _, piece in slices]
    activity = overlap_matrix([event.interval for event in events], pieces)
    active = activity.sum(axis=0)
    away = overlap_matrix(list(afk), pieces).sum(axis=0)
    top_apps = top_key_per_slice(activity, [event.app for event in events])
    top_sites = top_key_per_slice(activity, [event.browser.domain if event.browser else None for event in events])

    rows = []
    for index, (label, _) in enumerate(slices):
        row = dict(label)
        row["active_seconds"] = int(round(float(active[index])))
        row["afk_seconds"] = int(round(float(away[index])))
        row["top_app"] = top_apps[index]
        if detail_level != "hourly":
            row["top_website"] = top_sites[index]
        rows.append(row)
    return rows


def _top_applications(events: Sequence[CanonicalEvent]) -> list[dict]:
    return [
        {
            "name": row["group_key"],
            "duration_seconds": row["duration_seconds"],
            "duration_hours": row["duration_hours"],
            "percentage": row["percentage"],
        }
        for row in group_events(events, "application", top_n=TOP_LIMIT)
    ]


def _top_websites(events: Sequence[CanonicalEvent], total_seconds: float) -> list[dict]:
    by_domain: dict[str, float] = defaultdict(float)
    for event in events:
        if event.browser is not None and event.browser.domain:
            by_domain[event.browser.domain] += event.browser.duration_seconds
    ranked = sorted(by_domain.items(), key=lambda item: (-item[1], item[0]))[:TOP_LIMIT]
    return [
        {
            "domain": domain,
            "duration_seconds": seconds,
            "duration_hours": seconds_to_hours(seconds),
            "percentage": percentage_of(seconds, total_seconds),
        }
        for domain, seconds in ranked
    ]


def _top_categories(events: Sequence[CanonicalEvent]) -> list[dict]:
    return [
        {
            "category": row["group_key"],
            "duration_seconds": row["duration_seconds"],
            "duration_hours": row["duration_hours"],
            "percentage": row["percentage"],
            "event_count": row["event_count"],
        }
        for row in group_events(events, "category", top_n=TOP_LIMIT)
    ]


def most_active_hour(events: Sequence[CanonicalEvent], tz: tzinfo) -> Optional[tuple[int, float]]:
    """Local hour of day with the most focused seconds.

    Events are split across the local clock hours they span, so a long event
    counts towards every hour it touches.
    """

    intervals = [event.interval for event in events]
    if not intervals:
        return None
    first = from_epoch_ms(min(interval.start for interval in intervals)).astimezone(tz)
    origin = to_epoch_ms(first.replace(minute=0, second=0, microsecond=0))
    last = max(interval.end for interval in intervals)
    slices = [Interval(start, start + _HOUR_MS) for start in range(origin, last, _HOUR_MS)]

    per_slice = overlap_matrix(intervals, slices).sum(axis=0)
    hours = np.array([from_epoch_ms(piece.start).astimezone(tz).hour for piece in slices], dtype=np.int64)
    totals = np.bincount(hours, weights=per_slice, minlength=24)
    best = int(totals.argmax())
    if totals[best] <= 0:
        return None
    return best, float(totals[best])


def generate_insights(
    period_type: str,
    period: TimeRange,
    total_active_seconds: float,
    meeting_seconds: float,
    applications: Sequence[dict],
    websites: Sequence[dict],
    daily_breakdown: Optional[Sequence[dict]],
    peak_hour: Optional[tuple[int, float]],
) -> list[str]:
    insights = []
    active_hours = seconds_to_hours(total_active_seconds)
    period_days = math.ceil((period.end - period.start).total_seconds() / _DAY_SECONDS)

    insights.append(f"{PERIOD_LABELS.get(period_type, 'Period summary')}: {active_hours} hours of active time")
    if period_days > 1:
        insights.append(f"Average: {active_hours / period_days:.2f} hours per day")

    if applications:
        top = applications[0]
        insights.append(f"Most used application: {top['name']} ({top['duration_hours']}h, {top['percentage']}%)")
    if websites:
        top = websites[0]
        insights.append(f"Most visited website: {top['domain']} ({top['duration_hours']}h, {top['percentage']}%)")

    if daily_breakdown and len(daily_breakdown) > 1:
        busiest = max(daily_breakdown, key=lambda row: row["active_seconds"])
        if busiest["active_seconds"] > 0:
            insights.append(f"Busiest day: {busiest['date']} ({seconds_to_hours(busiest['active_seconds'])}h active)")

    if peak_hour is not None:
        hour, seconds = peak_hour
        insights.append(f"Most active hour: {hour:02d}:00-{hour + 1:02d}:00 ({seconds_to_hours(seconds)}h)")

    if meeting_seconds > 0 and total_active_seconds > 0:
        share = round(meeting_seconds / total_active_seconds * 100.0, 1)
        insights.append(f"Meetings: {seconds_to_hours(meeting_seconds)}h ({share}% of active time)")

    if period_days > 1:
        average = active_hours / period_days
        if average > 8:
            insights.append("High activity period with sustained engagement")
        elif average < 2:
            insights.append("Low activity period")
    return insights


def build_period_summary(
    period_type: str,
    start: datetime,
    end: datetime,
    streams: EventStreams,
    matcher: Optional[CategoryMatcher] = None,
    *,
    timezone_name: str = "UTC",
    tz: Optional[tzinfo] = None,
    detail_level: Optional[str] = None,
    config: Optional[EngineConfig] = None,
) -> dict:
    """Aggregate already-fetched streams for ``[start, end]`` into a period summary."""

    detail = resolve_detail_level(period_type, detail_level)

    config = config or DEFAULT_CONFIG
    tz = tz or resolve_tzinfo(timezone_name)
    period = TimeRange(start, end)
    bounds = [period.interval]

    canonical = build_canonical_events(
        filter_period_intersect(streams.window, bounds),
        filter_period_intersect(streams.browser, bounds),
        filter_period_intersect(streams.editor, bounds),
        matcher,
        config=config,
    )
    events = canonical.events

    meetings = [
        meeting
        for meeting in filter_meetings(streams.meetings, include_cancelled=False, limit=None)
        if meeting.start < end and meeting.end > start
    ]
    fusion = fuse_calendar(events, timed_meetings(meetings))["summary"]

    afk_events = filter_period_intersect(streams.afk, bounds)
    afk = summarize_afk(afk_events)

    applications = _top_applications(events)
    websites = _top_websites(events, canonical.total_time_seconds)

    summary = {
        "period_type": period_type,
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "timezone": timezone_name,
        "total_active_time_hours": seconds_to_hours(fusion["union_seconds"]),
        "total_afk_time_hours": seconds_to_hours(afk["total_afk_seconds"]),
        "focus_time_hours": seconds_to_hours(fusion["focus_seconds"]),
        "meeting_time_hours": seconds_to_hours(fusion["meeting_seconds"]),
        "top_applications": applications,
        "top_websites": websites,
        "notable_calendar_events": summarize_meetings(meetings, limit=TOP_LIMIT),
    }
    if matcher is not None and len(matcher) > 0:
        summary["top_categories"] = _top_categories(events)

    breakdown = None
    if detail != "none":
        breakdown = build_breakdown(detail, period, events, afk_intervals(afk_events), tz)
        summary[f"{detail}_breakdown"] = breakdown

    summary["insights"] = generate_insights(
        period_type,
        period,
        fusion["union_seconds"],
        fusion["meeting_seconds"],
        applications,
        websites,
        breakdown if detail == "daily" else None,
        most_active_hour(events, tz),
    )

    logger.debug(
        "Period summary %s %s..%s: %d events, %d meetings, detail %s",
        period_type,
        period.start.isoformat(),
        period.end.isoformat(),
        len(events),
        len(meetings),
        detail,
    )
    return summary
