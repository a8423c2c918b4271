"""Calendar fusion: meetings ORed into focus activity.

Scheduled meeting time that has no focused window activity is reported as
meeting-only time instead of AFK. Totals are computed on the union of focus
and meeting intervals so a meeting spent presenting from an editor is not
counted twice.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence

from activity_timeline.intervals import (
    calculate_overlap,
    from_epoch_ms,
    intersect_intervals,
    merge_intervals,
    subtract_intervals,
    sum_intervals,
)
from activity_timeline.schema import CanonicalEvent, MeetingInterval, RawEvent
from activity_timeline.timeutils import percentage_of

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, dict):
        return _to_datetime(value.get("dateTime") or value.get("date"))
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if _DATE_ONLY_RE.match(text):
            try:
                return datetime.combine(date.fromisoformat(text), datetime.min.time(), tzinfo=timezone.utc)
            except ValueError:
                return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _attendees(raw: Any) -> tuple[dict, ...]:
    if not isinstance(raw, list):
        return ()
    attendees = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        attendees.append(
            {
                "name": item.get("name") or item.get("displayName"),
                "email": item.get("email") or item.get("address"),
                "response_status": item.get("responseStatus") or item.get("status"),
                "organizer": bool(item.get("organizer")),
            }
        )
    return tuple(attendees)


def normalize_calendar_event(event: RawEvent, bucket_id: str = "calendar") -> Optional[MeetingInterval]:
    """Build a meeting from a calendar import event, or ``None`` if it has no usable times."""

    data = event.data or {}
    all_day = bool(data.get("all_day", data.get("allDay", False)))
    start = _to_datetime(data.get("start", data.get("begin")))
    end = _to_datetime(data.get("end", data.get("finish")))

    if start is None:
        start = event.timestamp
    if end is None and event.duration > 0:
        end = start + timedelta(seconds=event.duration)
    elif end is None and all_day:
        end = start + timedelta(days=1)

    if start is None or end is None or end <= start:
        logger.warning("Skipping calendar event without valid start/end in %s", bucket_id)
        return None

    uid = data.get("uid") or data.get("id")
    return MeetingInterval(
        summary=str(data.get("summary") or data.get("title") or "Untitled event"),
        start=start,
        end=end,
        calendar=str(data["calendar"]) if data.get("calendar") else None,
        status=str(data["status"]) if data.get("status") else None,
        location=str(data["location"]) if data.get("location") else None,
        attendees=_attendees(data.get("attendees")),
        all_day=all_day,
        id=f"{bucket_id}:{uid}" if uid else None,
        description=str(data["description"]) if data.get("description") else None,
    )


def filter_meetings(
    meetings: Iterable[MeetingInterval],
    *,
    include_all_day: bool = True,
    include_cancelled: bool = False,
    summary_query: Optional[str] = None,
    limit: Optional[int] = 100,
) -> list[MeetingInterval]:
    query = summary_query.lower() if summary_query else None
    kept = []
    for meeting in meetings:
        if not include_all_day and meeting.all_day:
            continue
        if not include_cancelled and (meeting.status or "").lower() == "cancelled":
            continue
        if query:
            haystacks = (meeting.summary, meeting.description, meeting.location, meeting.calendar)
            if not any(query in text.lower() for text in haystacks if text):
                continue
        kept.append(meeting)
    return sorted(kept, key=lambda meeting: meeting.start)[:limit]


def timed_meetings(meetings: Iterable[MeetingInterval]) -> list[MeetingInterval]:
    """Meetings that occupy clock time; all-day entries only mark a date."""

    return [meeting for meeting in meetings if not meeting.all_day]


def meeting_to_dict(meeting: MeetingInterval) -> dict:
    return {
        "id": meeting.id,
        "summary": meeting.summary,
        "start": meeting.start.isoformat(),
        "end": meeting.end.isoformat(),
        "status": meeting.status,
        "all_day": meeting.all_day,
        "location": meeting.location,
        "calendar": meeting.calendar,
        "attendees": list(meeting.attendees),
    }


def summarize_meetings(meetings: Sequence[MeetingInterval], limit: int = 5) -> list[dict]:
    """Lightweight meeting listing for dashboards."""

    keys = ("summary", "start", "end", "status", "all_day", "location", "calendar")
    return [{key: meeting_to_dict(meeting)[key] for key in keys} for meeting in meetings[:limit]]


def _focus_breakdown(meeting: MeetingInterval, events: Sequence[CanonicalEvent]) -> list[dict]:
    """Apps focused during ``meeting``, ranked by overlapping time."""

    target = meeting.interval
    by_app: dict[str, dict] = defaultdict(lambda: {"overlap_ms": 0, "titles": [], "browser": None, "editor": None})
    for event in events:
        hit = intersect_intervals(target, event.interval)
        if hit is None:
            continue
        entry = by_app[event.app]
        entry["overlap_ms"] += hit.length
        if event.title and event.title not in entry["titles"]:
            entry["titles"].append(event.title)
        entry["browser"] = entry["browser"] or event.browser
        entry["editor"] = entry["editor"] or event.editor

    scheduled = meeting.scheduled_seconds
    focus = []
    for app, entry in by_app.items():
        seconds = entry["overlap_ms"] / 1000.0
        item = {
            "app": app,
            "duration_seconds": seconds,
            "percentage": percentage_of(seconds, scheduled),
            "titles": entry["titles"],
        }
        if entry["browser"] is not None:
            item["browser"] = {"url": entry["browser"].url, "domain": entry["browser"].domain}
        if entry["editor"] is not None:
            item["editor"] = {"file": entry["editor"].file, "project": entry["editor"].project}
        focus.append(item)
    return sorted(focus, key=lambda item: item["duration_seconds"], reverse=True)


def fuse_calendar(events: Sequence[CanonicalEvent], meetings: Sequence[MeetingInterval]) -> dict:
    """Per-meeting overlap statistics and union-based totals."""

    focus_intervals = merge_intervals(event.interval for event in events if not event.calendar_only)
    meeting_intervals = merge_intervals(meeting.interval for meeting in meetings)

    entries = []
    for meeting in meetings:
        target = meeting.interval
        scheduled = meeting.scheduled_seconds
        overlap = calculate_overlap(target, focus_intervals) / 1000.0
        segments = subtract_intervals(target, focus_intervals)
        entries.append(
            {
                "meeting": meeting_to_dict(meeting),
                "scheduled_seconds": scheduled,
                "overlap_seconds": overlap,
                "meeting_only_seconds": max(0.0, scheduled - overlap),
                "meeting_only_segments": [
                    {"start": from_epoch_ms(seg.start).isoformat(), "end": from_epoch_ms(seg.end).isoformat()}
                    for seg in segments
                ],
                "focus": _focus_breakdown(meeting, events),
            }
        )

    focus_seconds = sum_intervals(focus_intervals) / 1000.0
    meeting_seconds = sum_intervals(meeting_intervals) / 1000.0
    union_seconds = sum_intervals(merge_intervals(focus_intervals + meeting_intervals)) / 1000.0
    overlap_seconds = focus_seconds + meeting_seconds - union_seconds

    logger.debug("Calendar fusion: %d meetings, %.0fs focus, %.0fs union", len(meetings), focus_seconds, union_seconds)

    return {
        "meetings": entries,
        "summary": {
            "focus_seconds": focus_seconds,
            "meeting_seconds": meeting_seconds,
            "overlap_seconds": overlap_seconds,
            "meeting_only_seconds": max(0.0, meeting_seconds - overlap_seconds),
            "union_seconds": union_seconds,
            "meeting_count": len(meetings),
        },
    }


def apply_meeting_overlay(
    events: Sequence[CanonicalEvent], meetings: Sequence[MeetingInterval]
) -> list[CanonicalEvent]:
    """Annotate events with the meetings they overlap."""

    annotated = []
    for event in events:
        focus = event.interval
        names = []
        overlap_ms = 0
        for meeting in meetings:
            hit = intersect_intervals(focus, meeting.interval)
            if hit is None:
                continue
            names.append(meeting.summary)
            overlap_ms += hit.length
        if names:
            event = replace(event, calendar=tuple(names), meeting_overlap_seconds=overlap_ms / 1000.0)
        annotated.append(event)
    return annotated


def meeting_only_events(fusion: dict) -> list[CanonicalEvent]:
    """Synthetic events for scheduled time with no focused activity."""

    synthesized = []
    for entry in fusion["meetings"]:
        meeting = entry["meeting"]
        for segment in entry["meeting_only_segments"]:
            start = datetime.fromisoformat(segment["start"])
            end = datetime.fromisoformat(segment["end"])
            synthesized.append(
                CanonicalEvent(
                    app=meeting["calendar"] or "Calendar",
                    title=meeting["summary"],
                    timestamp=start,
                    duration_seconds=(end - start).total_seconds(),
                    calendar=(meeting["summary"],),
                    calendar_only=True,
                )
            )
    return synthesized
