import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from activity_timeline.config import EngineConfig
from activity_timeline.errors import INVALID_DATE_FORMAT, INVALID_PERIOD_TYPE, TimelineError
from activity_timeline.schema import AfkEvent, BrowserEvent, EditorEvent, EventStreams, MeetingInterval, WindowEvent
from activity_timeline.service import get_meeting_context, get_unified_activity, summarize_period
from activity_timeline.sources import StaticEventSource, gather_streams

DAY = datetime(2025, 1, 6, tzinfo=timezone.utc)
CONFIG = EngineConfig()


def hm(hour: int, minute: int = 0) -> datetime:
    return DAY + timedelta(hours=hour, minutes=minute)


class FlakySource:
    def __init__(self, streams: EventStreams, failing: str):
        self.inner = StaticEventSource(streams)
        self.failing = failing

    async def fetch_events(self, stream, start, end):
        if stream == self.failing:
            raise RuntimeError("bucket unavailable")
        return await self.inner.fetch_events(stream, start, end)


def test_static_source_clips_to_range_and_not_afk_time():
    streams = EventStreams(
        window=[WindowEvent(timestamp=hm(8, 30), duration=7200, app="Code", title="")],
        afk=[AfkEvent(timestamp=hm(9), duration=1800, status="not-afk")],
        meetings=[MeetingInterval(summary="Lunch", start=hm(12), end=hm(13))],
    )
    source = StaticEventSource(streams)

    window = asyncio.run(source.fetch_events("window", hm(8), hm(11)))
    assert [(event.timestamp, event.duration) for event in window] == [(hm(9), 1800)]

    unfiltered = asyncio.run(StaticEventSource(streams, afk_filter=False).fetch_events("window", hm(9), hm(10)))
    assert unfiltered[0].duration == 3600

    assert asyncio.run(source.fetch_events("calendar", hm(8), hm(11))) == []
    assert len(asyncio.run(source.fetch_events("calendar", hm(12, 30), hm(14)))) == 1


def test_failed_stream_is_treated_as_empty(caplog):
    streams = EventStreams(
        window=[WindowEvent(timestamp=hm(9), duration=600, app="Firefox", title="")],
        browser=[BrowserEvent(timestamp=hm(9), duration=600, url="https://github.com")],
    )
    with caplog.at_level(logging.WARNING):
        gathered = asyncio.run(gather_streams(FlakySource(streams, "browser"), hm(0), hm(23)))
    assert len(gathered.window) == 1
    assert gathered.browser == []
    assert "browser" in caplog.text


def test_unified_activity_with_calendar_overlay():
    streams = EventStreams(
        window=[WindowEvent(timestamp=hm(9), duration=3600, app="Code", title="main.py")],
        meetings=[
            MeetingInterval(summary="Standup", start=hm(9), end=hm(10), calendar="Primary"),
            MeetingInterval(summary="Review", start=hm(10, 30), end=hm(11), calendar="Primary"),
        ],
    )
    result = asyncio.run(
        get_unified_activity(
            StaticEventSource(streams),
            "custom",
            "2025-01-06T00:00:00Z",
            "2025-01-07T00:00:00Z",
            config=CONFIG,
        )
    )

    assert result["total_time_seconds"] == 3600
    assert result["calendar_summary"]["union_seconds"] == 5400
    assert result["calendar_summary"]["meeting_only_seconds"] == 1800

    code, calendar_only = result["activities"]
    assert code["app"] == "Code"
    assert code["calendar"] == ["Standup"]
    assert code["meeting_overlap_seconds"] == 3600
    assert calendar_only["app"] == "Primary"
    assert calendar_only["calendar_only"] is True
    assert calendar_only["duration_seconds"] == 1800


def test_all_day_calendar_entry_does_not_fill_the_day():
    streams = EventStreams(
        window=[WindowEvent(timestamp=hm(9), duration=3600, app="Code", title="main.py")],
        meetings=[MeetingInterval(summary="Holiday", start=DAY, end=DAY + timedelta(days=1), all_day=True)],
    )
    result = asyncio.run(
        get_unified_activity(
            StaticEventSource(streams),
            "custom",
            "2025-01-06T00:00:00Z",
            "2025-01-07T00:00:00Z",
            config=CONFIG,
        )
    )

    assert result["calendar_summary"]["union_seconds"] == 3600
    assert result["calendar_summary"]["meeting_seconds"] == 0
    assert [item["summary"] for item in result["calendar_events"]] == ["Holiday"]
    assert [row["app"] for row in result["activities"]] == ["Code"]
    assert "calendar" not in result["activities"][0]


def test_unified_activity_rejects_reversed_range():
    with pytest.raises(TimelineError):
        asyncio.run(get_unified_activity(StaticEventSource(EventStreams()), "custom", "2025-01-31", "2025-01-01", config=CONFIG))


def test_meeting_context():
    streams = EventStreams(
        window=[WindowEvent(timestamp=hm(9, 30), duration=3600, app="Code", title="service.py")],
        editor=[EditorEvent(timestamp=hm(9, 30), duration=3600, file="/src/service.py", project="timeline")],
        meetings=[MeetingInterval(summary="Design review", start=hm(9), end=hm(10))],
    )
    context = asyncio.run(
        get_meeting_context(StaticEventSource(streams), "today", config=CONFIG, now=hm(18))
    )

    entry = context["meetings"][0]
    assert entry["scheduled_seconds"] == 3600
    assert entry["overlap_seconds"] == 1800
    assert entry["meeting_only_seconds"] == 1800
    assert entry["focus"][0]["app"] == "Code"
    assert entry["focus"][0]["editor"]["file"] == "/src/service.py"


def test_summarize_period():
    streams = EventStreams(window=[WindowEvent(timestamp=hm(9), duration=3600, app="Code", title="")])
    summary = asyncio.run(summarize_period(StaticEventSource(streams), "daily", "2025-01-06", config=CONFIG))

    assert summary["period_start"] == DAY.isoformat()
    assert summary["focus_time_hours"] == 1.0
    assert summary["hourly_breakdown"][9]["top_app"] == "Code"


def test_summarize_period_validates_before_fetching():
    source = StaticEventSource(EventStreams())
    with pytest.raises(TimelineError) as info:
        asyncio.run(summarize_period(source, "yearly", config=CONFIG))
    assert info.value.code == INVALID_PERIOD_TYPE

    with pytest.raises(TimelineError) as info:
        asyncio.run(summarize_period(source, "daily", "06/01/2025", config=CONFIG))
    assert info.value.code == INVALID_DATE_FORMAT
