"""Request orchestration: resolve the range, gather streams once, run the core."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional, Sequence, Union

from activity_timeline.canonical import build_canonical_events
from activity_timeline.categories import CategoryMatcher
from activity_timeline.config import EngineConfig, load_config
from activity_timeline.errors import INVALID_DATE_FORMAT, TimelineError
from activity_timeline.grouping import group_activity
from activity_timeline.meetings import (
    apply_meeting_overlay,
    filter_meetings,
    fuse_calendar,
    meeting_only_events,
    summarize_meetings,
    timed_meetings,
)
from activity_timeline.period_summary import build_period_summary, get_period_boundaries, resolve_detail_level
from activity_timeline.sources import EventSource, gather_streams
from activity_timeline.timeutils import get_time_range, local_date, resolve_tzinfo

logger = logging.getLogger(__name__)


async def get_unified_activity(
    source: EventSource,
    time_period: str = "today",
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    *,
    group_by: Union[str, Sequence[str]] = "application",
    top_n: Optional[int] = None,
    matcher: Optional[CategoryMatcher] = None,
    config: Optional[EngineConfig] = None,
    include_calendar: bool = True,
    include_browser_details: bool = True,
    include_editor_details: bool = True,
    min_duration_seconds: Optional[float] = None,
    exclude_system_apps: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Canonical activity for a time period, grouped and ranked.

    With calendar data, events are annotated with overlapping meetings and
    scheduled time without focus is added as ``calendar_only`` rows.
    """

    config = config or load_config()
    time_range = get_time_range(time_period, custom_start, custom_end, tz=config.timezone, now=now)
    streams = await gather_streams(source, time_range.start, time_range.end)

    canonical = build_canonical_events(
        streams.window,
        streams.browser,
        streams.editor,
        matcher,
        min_duration_seconds=min_duration_seconds,
        exclude_system_apps=exclude_system_apps,
        include_browser_details=include_browser_details,
        include_editor_details=include_editor_details,
        config=config,
    )
    events = canonical.events

    result = {
        "time_range": time_range.to_dict(),
        "timezone": config.timezone,
        "total_time_seconds": canonical.total_time_seconds,
        "window_event_count": canonical.window_event_count,
        "browser_event_count": canonical.browser_event_count,
        "editor_event_count": canonical.editor_event_count,
    }

    meetings = filter_meetings(streams.meetings, limit=None) if include_calendar else []
    if meetings:
        timed = timed_meetings(meetings)
        fusion = fuse_calendar(events, timed)
        events = apply_meeting_overlay(events, timed) + meeting_only_events(fusion)
        result["calendar_summary"] = fusion["summary"]
        result["calendar_events"] = summarize_meetings(meetings)

    result["activities"] = group_activity(events, group_by, top_n or config.top_n)
    return result


async def get_meeting_context(
    source: EventSource,
    time_period: str = "today",
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    *,
    summary_query: Optional[str] = None,
    include_all_day: bool = False,
    matcher: Optional[CategoryMatcher] = None,
    config: Optional[EngineConfig] = None,
    now: Optional[datetime] = None,
) -> dict:
    """What was focused during each meeting in the period."""

    config = config or load_config()
    time_range = get_time_range(time_period, custom_start, custom_end, tz=config.timezone, now=now)
    streams = await gather_streams(source, time_range.start, time_range.end)

    meetings = filter_meetings(streams.meetings, include_all_day=include_all_day, summary_query=summary_query)
    canonical = build_canonical_events(streams.window, streams.browser, streams.editor, matcher, config=config)
    fusion = fuse_calendar(canonical.events, meetings)

    logger.debug("Meeting context for %d meetings over %s", len(meetings), time_range.to_dict())
    return {
        "time_range": time_range.to_dict(),
        "timezone": config.timezone,
        "meetings": fusion["meetings"],
        "summary": fusion["summary"],
    }


def _parse_day(value: Optional[str], tz, now: Optional[datetime]) -> date:
    if value is None:
        return local_date(now or datetime.now(timezone.utc), tz)
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise TimelineError(
            f"Invalid date: {value}. Use YYYY-MM-DD format.", INVALID_DATE_FORMAT, {"date": value}
        ) from exc


async def summarize_period(
    source: EventSource,
    period_type: str = "daily",
    day: Optional[str] = None,
    *,
    timezone_name: Optional[str] = None,
    detail_level: Optional[str] = None,
    matcher: Optional[CategoryMatcher] = None,
    config: Optional[EngineConfig] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Period summary for the period containing ``day`` (default: today)."""

    config = config or load_config()
    timezone_name = timezone_name or config.timezone
    tz = resolve_tzinfo(timezone_name)
    resolve_detail_level(period_type, detail_level)

    bounds = get_period_boundaries(period_type, _parse_day(day, tz, now), tz, now)
    streams = await gather_streams(source, bounds.start, bounds.end)
    return build_period_summary(
        period_type,
        bounds.start,
        bounds.end,
        streams,
        matcher,
        timezone_name=timezone_name,
        tz=tz,
        detail_level=detail_level,
        config=config,
    )
