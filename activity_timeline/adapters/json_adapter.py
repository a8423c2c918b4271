"""JSON adapter for tracker exports and raw event lists."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from activity_timeline.app_names import detect_editor_type
from activity_timeline.meetings import normalize_calendar_event
from activity_timeline.schema import (
    AFK,
    BROWSER,
    CALENDAR,
    EDITOR,
    STREAM_TYPES,
    WINDOW,
    AfkEvent,
    BrowserEvent,
    EditorEvent,
    EventStreams,
    MeetingInterval,
    RawEvent,
    WindowEvent,
)

logger = logging.getLogger(__name__)

_VALID_AFK_STATUS = {"afk", "not-afk"}

TypedEvent = Union[WindowEvent, BrowserEvent, EditorEvent, AfkEvent, MeetingInterval]


def _parse_timestamp(value: Any, context: str) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{context}: missing timestamp")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"{context}: malformed timestamp") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def raw_event_from_dict(item: Any, context: str) -> RawEvent:
    """Validate the common ``timestamp``/``duration``/``data`` envelope."""

    if not isinstance(item, dict):
        raise ValueError(f"{context}: expected an object")
    timestamp = _parse_timestamp(item.get("timestamp"), context)

    try:
        duration = float(item.get("duration", 0) or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{context}: invalid duration") from exc
    if duration < 0:
        raise ValueError(f"{context}: negative duration")

    data = item.get("data") or {}
    if not isinstance(data, dict):
        raise ValueError(f"{context}: data must be an object")
    return RawEvent(timestamp=timestamp, duration=duration, data=data)


def _text(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    return str(value).strip() if value not in (None, "") else None


def to_typed_event(stream: str, raw: RawEvent, context: str = "event", bucket_id: str = "") -> Optional[TypedEvent]:
    """Turn a validated raw event into the variant for ``stream``.

    Calendar entries without usable start/end come back as ``None``.
    """

    data = raw.data
    if stream == WINDOW:
        return WindowEvent(
            timestamp=raw.timestamp,
            duration=raw.duration,
            app=_text(data, "app") or "Unknown",
            title=_text(data, "title") or "",
        )
    if stream == BROWSER:
        url = _text(data, "url")
        if url is None:
            raise ValueError(f"{context}: missing url")
        tab_count = data.get("tabCount", data.get("tab_count"))
        return BrowserEvent(
            timestamp=raw.timestamp,
            duration=raw.duration,
            url=url,
            title=_text(data, "title") or "",
            audible=bool(data.get("audible", False)),
            incognito=bool(data.get("incognito", False)),
            tab_count=int(tab_count) if isinstance(tab_count, (int, float)) else None,
        )
    if stream == EDITOR:
        path = _text(data, "file")
        if path is None:
            raise ValueError(f"{context}: missing file")
        return EditorEvent(
            timestamp=raw.timestamp,
            duration=raw.duration,
            file=path,
            project=_text(data, "project"),
            language=_text(data, "language"),
            branch=_text(data, "branch"),
            commit=_text(data, "commit"),
            repository=_text(data, "repository") or _text(data, "remote"),
        )
    if stream == AFK:
        status = _text(data, "status")
        if status not in _VALID_AFK_STATUS:
            raise ValueError(f"{context}: invalid afk status '{status}'")
        return AfkEvent(timestamp=raw.timestamp, duration=raw.duration, status=status)
    if stream == CALENDAR:
        return normalize_calendar_event(raw, bucket_id or "calendar")
    raise ValueError(f"{context}: unknown stream '{stream}'")


def classify_bucket(bucket_id: str, bucket_type: str = "") -> Optional[str]:
    """Stream type a tracker bucket feeds, or ``None`` for buckets we ignore."""

    lowered_id = bucket_id.lower()
    lowered_type = (bucket_type or "").lower()
    if lowered_id.startswith("aw-import-ical") or "calendar" in lowered_type:
        return CALENDAR
    if "afk" in lowered_type or lowered_id.startswith("aw-watcher-afk"):
        return AFK
    if "window" in lowered_type or lowered_id.startswith("aw-watcher-window"):
        return WINDOW
    if "web" in lowered_type or lowered_id.startswith("aw-watcher-web"):
        return BROWSER
    if "editor" in lowered_type or (lowered_id.startswith("aw-watcher-") and detect_editor_type(lowered_id)):
        return EDITOR
    return None


def _append(streams: EventStreams, stream: str, event: TypedEvent) -> None:
    if stream == CALENDAR:
        streams.meetings.append(event)
    else:
        getattr(streams, stream).append(event)


def _load_events(streams: EventStreams, stream: str, items: Any, label: str, bucket_id: str) -> None:
    if not isinstance(items, list):
        raise ValueError(f"{label}: events must be a list")
    for index, item in enumerate(items, start=1):
        context = f"{label} event {index}"
        typed = to_typed_event(stream, raw_event_from_dict(item, context), context, bucket_id=bucket_id)
        if typed is not None:
            _append(streams, stream, typed)


def parse_payload(payload: Any) -> EventStreams:
    """Accept a tracker export (``{"buckets": {...}}``) or ``{stream: [events]}``."""

    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object")

    streams = EventStreams()
    if "buckets" in payload:
        buckets = payload["buckets"]
        if not isinstance(buckets, dict):
            raise ValueError("buckets must be an object keyed by bucket id")
        for bucket_id, bucket in buckets.items():
            if not isinstance(bucket, dict):
                raise ValueError(f"Bucket {bucket_id}: expected an object")
            stream = classify_bucket(bucket_id, str(bucket.get("type", "")))
            if stream is None:
                logger.debug("Ignoring bucket %s of type %s", bucket_id, bucket.get("type"))
                continue
            _load_events(streams, stream, bucket.get("events", []), f"Bucket {bucket_id}", bucket_id)
    else:
        unknown = [key for key in payload if key not in STREAM_TYPES]
        if unknown:
            raise ValueError(f"Unknown stream keys {sorted(unknown)}")
        for stream in STREAM_TYPES:
            if stream in payload:
                _load_events(streams, stream, payload[stream], stream, stream)

    logger.debug(
        "Parsed %d window, %d browser, %d editor, %d afk events and %d meetings",
        len(streams.window),
        len(streams.browser),
        len(streams.editor),
        len(streams.afk),
        len(streams.meetings),
    )
    return streams


def parse(file_path: str) -> EventStreams:
    """Parse a JSON file into typed event streams."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return parse_payload(payload)
