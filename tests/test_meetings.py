from datetime import datetime, timedelta, timezone

from activity_timeline.canonical import build_canonical_events
from activity_timeline.meetings import (
    apply_meeting_overlay,
    filter_meetings,
    fuse_calendar,
    meeting_only_events,
    normalize_calendar_event,
    summarize_meetings,
    timed_meetings,
)
from activity_timeline.schema import EditorEvent, MeetingInterval, RawEvent, WindowEvent

DAY = datetime(2025, 1, 6, tzinfo=timezone.utc)


def hm(hour: int, minute: int = 0) -> datetime:
    return DAY + timedelta(hours=hour, minutes=minute)


def meeting(summary: str, start: datetime, end: datetime, **extra) -> MeetingInterval:
    return MeetingInterval(summary=summary, start=start, end=end, **extra)


def focus_events():
    windows = [WindowEvent(timestamp=hm(9, 30), duration=3600, app="Code", title="service.py")]
    editor = [EditorEvent(timestamp=hm(9, 30), duration=3600, file="/src/service.py", project="timeline")]
    return build_canonical_events(windows, editor_events=editor).events


def test_meeting_context_splits_overlap_and_meeting_only():
    fusion = fuse_calendar(focus_events(), [meeting("Design review", hm(9), hm(10))])
    entry = fusion["meetings"][0]

    assert entry["scheduled_seconds"] == 3600
    assert entry["overlap_seconds"] == 1800
    assert entry["meeting_only_seconds"] == 1800
    assert entry["meeting"]["summary"] == "Design review"
    assert entry["meeting_only_segments"] == [{"start": hm(9).isoformat(), "end": hm(9, 30).isoformat()}]

    focus = entry["focus"][0]
    assert focus["app"] == "Code"
    assert focus["duration_seconds"] == 1800
    assert focus["percentage"] == 50.0
    assert focus["editor"]["file"] == "/src/service.py"


def test_calendar_totals_use_union():
    windows = [WindowEvent(timestamp=hm(9), duration=3600, app="Code", title="")]
    events = build_canonical_events(windows).events
    meetings = [
        meeting("Standup", hm(9), hm(10), calendar="Primary"),
        meeting("Review", hm(10, 30), hm(11), calendar="Primary"),
    ]
    fusion = fuse_calendar(events, meetings)

    assert fusion["summary"] == {
        "focus_seconds": 3600,
        "meeting_seconds": 5400,
        "overlap_seconds": 3600,
        "meeting_only_seconds": 1800,
        "union_seconds": 5400,
        "meeting_count": 2,
    }
    for entry in fusion["meetings"]:
        assert entry["overlap_seconds"] + entry["meeting_only_seconds"] == entry["scheduled_seconds"]

    synthetic = meeting_only_events(fusion)
    assert len(synthetic) == 1
    assert synthetic[0].app == "Primary"
    assert synthetic[0].title == "Review"
    assert synthetic[0].calendar_only
    assert synthetic[0].duration_seconds == 1800

    overlaid = apply_meeting_overlay(events, meetings)
    assert overlaid[0].calendar == ("Standup",)
    assert overlaid[0].meeting_overlap_seconds == 3600


def test_overlapping_window_buckets_not_double_counted():
    windows = [
        WindowEvent(timestamp=hm(9), duration=1800, app="Code", title=""),
        WindowEvent(timestamp=hm(9), duration=1800, app="Code", title=""),
    ]
    fusion = fuse_calendar(build_canonical_events(windows).events, [meeting("Sync", hm(9), hm(10))])
    entry = fusion["meetings"][0]
    assert entry["overlap_seconds"] == 1800
    assert entry["meeting_only_seconds"] == 1800


def test_normalize_calendar_event():
    raw = RawEvent(
        timestamp=hm(9),
        duration=0,
        data={
            "summary": "Planning",
            "start": {"dateTime": "2025-01-06T09:00:00Z"},
            "end": "2025-01-06T10:00:00+00:00",
            "calendar": "Work",
            "uid": "abc",
            "attendees": [{"displayName": "Ana", "email": "ana@example.com"}],
        },
    )
    result = normalize_calendar_event(raw, "aw-import-ical_work")

    assert result.summary == "Planning"
    assert result.start == hm(9)
    assert result.end == hm(10)
    assert result.id == "aw-import-ical_work:abc"
    assert result.attendees[0]["name"] == "Ana"


def test_all_day_and_invalid_calendar_events():
    holiday = normalize_calendar_event(RawEvent(DAY, 0, {"summary": "Holiday", "start": "2025-01-06", "all_day": True}))
    assert holiday.end - holiday.start == timedelta(days=1)

    broken = RawEvent(DAY, 0, {"summary": "Broken", "start": "2025-01-06T10:00:00Z", "end": "2025-01-06T09:00:00Z"})
    assert normalize_calendar_event(broken) is None

    standup = meeting("Standup", hm(9), hm(9, 15))
    assert timed_meetings([holiday, standup]) == [standup]


def test_filter_meetings():
    meetings = [
        meeting("Retro", hm(15), hm(16)),
        meeting("Cancelled sync", hm(9), hm(10), status="cancelled"),
        meeting("Holiday", DAY, DAY + timedelta(days=1), all_day=True),
        meeting("Planning", hm(11), hm(12), location="Room RETRO"),
    ]

    kept = filter_meetings(meetings)
    assert [item.summary for item in kept] == ["Holiday", "Planning", "Retro"]

    assert [item.summary for item in filter_meetings(meetings, include_all_day=False)] == ["Planning", "Retro"]
    assert [item.summary for item in filter_meetings(meetings, summary_query="retro")] == ["Planning", "Retro"]
    assert len(filter_meetings(meetings, limit=1)) == 1


def test_summarize_meetings_limits_output():
    meetings = [meeting(f"M{i}", hm(9 + i), hm(10 + i)) for i in range(7)]
    summary = summarize_meetings(meetings)
    assert len(summary) == 5
    assert summary[0]["summary"] == "M0"
    assert summary[0]["start"] == hm(9).isoformat()
