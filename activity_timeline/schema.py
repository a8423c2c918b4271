"""Core data schema for activity events."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from activity_timeline.intervals import Interval, interval_from, to_epoch_ms

WINDOW = "window"
BROWSER = "browser"
EDITOR = "editor"
AFK = "afk"
CALENDAR = "calendar"

STREAM_TYPES = (WINDOW, BROWSER, EDITOR, AFK, CALENDAR)


@dataclass(frozen=True)
class RawEvent:
    """Untyped event as returned by a tracker fetch."""

    timestamp: datetime
    duration: float
    data: dict[str, Any]


@dataclass(frozen=True)
class _TimedEvent:
    timestamp: datetime
    duration: float

    @property
    def end(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.duration)

    @property
    def interval(self) -> Interval:
        return interval_from(self.timestamp, self.duration)


@dataclass(frozen=True)
class WindowEvent(_TimedEvent):
    """Focused application window; the ground truth of activity."""

    app: str
    title: str


@dataclass(frozen=True)
class BrowserEvent(_TimedEvent):
    url: str
    title: str = ""
    audible: bool = False
    incognito: bool = False
    tab_count: Optional[int] = None


@dataclass(frozen=True)
class EditorEvent(_TimedEvent):
    file: str
    project: Optional[str] = None
    language: Optional[str] = None
    branch: Optional[str] = None
    commit: Optional[str] = None
    repository: Optional[str] = None


@dataclass(frozen=True)
class AfkEvent(_TimedEvent):
    status: str


@dataclass(frozen=True)
class MeetingInterval:
    """Calendar meeting normalised from a calendar import bucket."""

    summary: str
    start: datetime
    end: datetime
    calendar: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    attendees: tuple[dict, ...] = ()
    all_day: bool = False
    id: Optional[str] = None
    description: Optional[str] = None

    @property
    def interval(self) -> Interval:
        return Interval(to_epoch_ms(self.start), to_epoch_ms(self.end))

    @property
    def scheduled_seconds(self) -> float:
        return max(0.0, (self.end - self.start).total_seconds())


@dataclass
class BrowserEnrichment:
    url: str
    domain: str
    title: Optional[str] = None
    audible: bool = False
    incognito: bool = False
    tab_count: Optional[int] = None
    duration_seconds: float = 0.0
    event_count: int = 0


@dataclass
class EditorEnrichment:
    file: str
    project: Optional[str] = None
    language: Optional[str] = None
    git: Optional[dict] = None
    duration_seconds: float = 0.0
    event_count: int = 0


@dataclass
class TerminalInfo:
    """Session details parsed from a ``user@host: directory`` terminal title."""

    username: str
    hostname: str
    directory: str
    is_remote: bool = False
    is_ssh: bool = False


@dataclass
class IdeInfo:
    """Title-derived IDE details, used only when no editor watcher data exists."""

    is_dialog: bool = False
    dialog_type: Optional[str] = None
    project: Optional[str] = None
    file: Optional[str] = None


@dataclass
class CanonicalEvent:
    """One window-focus event after enrichment and categorisation."""

    app: str
    title: str
    timestamp: datetime
    duration_seconds: float
    percentage: float = 0.0
    browser: Optional[BrowserEnrichment] = None
    editor: Optional[EditorEnrichment] = None
    terminal: Optional[TerminalInfo] = None
    ide: Optional[IdeInfo] = None
    category: Optional[str] = None
    categories: tuple[str, ...] = ()
    event_count: int = 1
    meeting_overlap_seconds: float = 0.0
    calendar: tuple[str, ...] = ()
    calendar_only: bool = False

    @property
    def end(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.duration_seconds)

    @property
    def interval(self) -> Interval:
        return interval_from(self.timestamp, self.duration_seconds)

    @property
    def duration_hours(self) -> float:
        return round(self.duration_seconds / 3600.0, 2)

    @property
    def first_seen(self) -> str:
        return self.timestamp.isoformat()

    @property
    def last_seen(self) -> str:
        return self.end.isoformat()

    def to_dict(self) -> dict:
        payload = {
            "app": self.app,
            "title": self.title,
            "duration_seconds": self.duration_seconds,
            "duration_hours": self.duration_hours,
            "percentage": self.percentage,
            "event_count": self.event_count,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
        }
        if self.browser is not None:
            payload["browser"] = asdict(self.browser)
        if self.editor is not None:
            payload["editor"] = asdict(self.editor)
        if self.terminal is not None:
            payload["terminal"] = asdict(self.terminal)
        if self.ide is not None:
            payload["ide"] = asdict(self.ide)
        if self.category is not None:
            payload["category"] = self.category
            payload["categories"] = list(self.categories)
        if self.calendar:
            payload["calendar"] = list(self.calendar)
            payload["meeting_overlap_seconds"] = self.meeting_overlap_seconds
        if self.calendar_only:
            payload["calendar_only"] = True
        return payload


@dataclass
class EventStreams:
    """All streams fetched for one request."""

    window: list[WindowEvent] = field(default_factory=list)
    browser: list[BrowserEvent] = field(default_factory=list)
    editor: list[EditorEvent] = field(default_factory=list)
    afk: list[AfkEvent] = field(default_factory=list)
    meetings: list[MeetingInterval] = field(default_factory=list)
