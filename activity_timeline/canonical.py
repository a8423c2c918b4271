"""Canonical event construction.

Window-focus events are the ground truth of what the user was doing. Browser
and editor streams are recorded independently and overlap each other, so they
are only used to enrich a window event for the slice of time where they
intersect its focus interval, and only when the focused app is the browser or
editor that produced them. Durations therefore never get counted twice.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence
from urllib.parse import urlsplit

from activity_timeline.categories import CategoryMatcher
from activity_timeline.config import DEFAULT_CONFIG, EngineConfig
from activity_timeline.intervals import Interval, intersect_intervals, merge_intervals, sum_intervals
from activity_timeline.schema import (
    BrowserEnrichment,
    BrowserEvent,
    CanonicalEvent,
    EditorEnrichment,
    EditorEvent,
    WindowEvent,
)
from activity_timeline.timeutils import percentage_of
from activity_timeline.title_parser import is_ide_app, is_terminal_app, parse_ide_title, parse_terminal_title

logger = logging.getLogger(__name__)


@dataclass
class CanonicalResult:
    events: list[CanonicalEvent] = field(default_factory=list)
    total_time_seconds: float = 0.0
    window_event_count: int = 0
    browser_event_count: int = 0
    editor_event_count: int = 0

    def to_dict(self) -> dict:
        return {
            "total_time_seconds": self.total_time_seconds,
            "events": [event.to_dict() for event in self.events],
            "window_event_count": self.window_event_count,
            "browser_event_count": self.browser_event_count,
            "editor_event_count": self.editor_event_count,
        }


def extract_domain(url: str) -> str:
    """Hostname of ``url`` without a leading ``www.``; tolerates missing schemes."""

    text = url.strip()
    if not text:
        return ""
    parts = urlsplit(text if "//" in text else f"//{text}")
    host = (parts.hostname or text).lower()
    return host[4:] if host.startswith("www.") else host


def _overlapping(window: Interval, events: Sequence, intervals: Sequence[Interval]) -> list[tuple]:
    hits = []
    for event, interval in zip(events, intervals):
        if interval.start >= window.end:
            break
        overlap = intersect_intervals(window, interval)
        if overlap is not None:
            hits.append((event, overlap))
    return hits


def _dominant(weights: dict) -> Optional[str]:
    if not weights:
        return None
    return max(weights.items(), key=lambda item: (item[1], str(item[0])))[0]


def _enrichment_seconds(hits: list[tuple]) -> float:
    return sum_intervals(merge_intervals(overlap for _, overlap in hits)) / 1000.0


def merge_browser_hits(hits: list[tuple]) -> Optional[BrowserEnrichment]:
    """Combine browser events intersecting one window event."""

    hits = [(event, overlap) for event, overlap in hits if event.url]
    if not hits:
        return None

    latest = max(hits, key=lambda hit: hit[0].timestamp)[0]
    urls = {event.url for event, _ in hits}
    domains: dict[str, int] = defaultdict(int)
    for event, overlap in hits:
        domains[extract_domain(event.url)] += overlap.length

    return BrowserEnrichment(
        url=latest.url if len(urls) == 1 else f"{len(urls)} URLs",
        domain=_dominant(domains) or "",
        title=latest.title or None,
        audible=any(event.audible for event, _ in hits),
        incognito=any(event.incognito for event, _ in hits),
        tab_count=latest.tab_count,
        duration_seconds=_enrichment_seconds(hits),
        event_count=len(hits),
    )


def merge_editor_hits(hits: list[tuple]) -> Optional[EditorEnrichment]:
    """Combine editor events intersecting one window event."""

    hits = [(event, overlap) for event, overlap in hits if event.file]
    if not hits:
        return None

    latest = max(hits, key=lambda hit: hit[0].timestamp)[0]
    files = {event.file for event, _ in hits}
    projects: dict[str, int] = defaultdict(int)
    languages: dict[str, int] = defaultdict(int)
    for event, overlap in hits:
        if event.project:
            projects[event.project] += overlap.length
        if event.language:
            languages[event.language] += overlap.length

    git = None
    if latest.branch:
        git = {"branch": latest.branch, "commit": latest.commit, "repository": latest.repository}

    return EditorEnrichment(
        file=latest.file if len(files) == 1 else f"{len(files)} files",
        project=_dominant(projects),
        language=_dominant(languages),
        git=git,
        duration_seconds=_enrichment_seconds(hits),
        event_count=len(hits),
    )


def _sorted_with_intervals(events: Iterable) -> tuple[list, list[Interval]]:
    ordered = sorted((event for event in events if event.duration > 0), key=lambda event: event.timestamp)
    return ordered, [event.interval for event in ordered]


def enrich_window_events(
    window_events: Iterable[WindowEvent],
    browser_events: Iterable[BrowserEvent] = (),
    editor_events: Iterable[EditorEvent] = (),
    matcher: Optional[CategoryMatcher] = None,
    *,
    include_browser_details: bool = True,
    include_editor_details: bool = True,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[CanonicalEvent]:
    """Turn every window event into an enriched, categorised canonical event."""

    browsers, browser_intervals = _sorted_with_intervals(browser_events if include_browser_details else ())
    editors, editor_intervals = _sorted_with_intervals(editor_events if include_editor_details else ())

    enriched: list[CanonicalEvent] = []
    for window in sorted(window_events, key=lambda event: event.timestamp):
        app = window.app or "Unknown"
        title = window.title or ""
        focus = window.interval

        browser = None
        if browsers and config.is_browser(app):
            browser = merge_browser_hits(_overlapping(focus, browsers, browser_intervals))

        editor = None
        if editors and config.is_editor(app):
            editor = merge_editor_hits(_overlapping(focus, editors, editor_intervals))

        terminal = None
        if is_terminal_app(app, config.terminal_apps):
            terminal = parse_terminal_title(title, config.hostname)

        # title-derived IDE details only stand in for missing editor data
        ide = None
        if editor is None and is_ide_app(app, config.ide_apps):
            ide = parse_ide_title(title)

        categories = tuple(matcher.match(app, title)) if matcher is not None else ()
        enriched.append(
            CanonicalEvent(
                app=app,
                title=title,
                timestamp=window.timestamp,
                duration_seconds=float(window.duration),
                browser=browser,
                editor=editor,
                terminal=terminal,
                ide=ide,
                category=categories[0] if categories else None,
                categories=categories,
            )
        )
    return enriched


def with_percentages(events: list[CanonicalEvent], total_seconds: float) -> list[CanonicalEvent]:
    if total_seconds <= 0:
        return [replace(event, percentage=0.0) for event in events]
    return [replace(event, percentage=percentage_of(event.duration_seconds, total_seconds)) for event in events]


def build_canonical_events(
    window_events: Sequence[WindowEvent],
    browser_events: Sequence[BrowserEvent] = (),
    editor_events: Sequence[EditorEvent] = (),
    matcher: Optional[CategoryMatcher] = None,
    *,
    min_duration_seconds: Optional[float] = None,
    exclude_system_apps: Optional[bool] = None,
    include_browser_details: bool = True,
    include_editor_details: bool = True,
    config: EngineConfig = DEFAULT_CONFIG,
) -> CanonicalResult:
    """Reconcile window, browser and editor streams for one time range."""

    if min_duration_seconds is None:
        min_duration_seconds = config.min_duration_seconds
    if exclude_system_apps is None:
        exclude_system_apps = config.exclude_system_apps

    if not window_events:
        logger.warning("No window events available; canonical stream is empty")
        return CanonicalResult(browser_event_count=len(browser_events), editor_event_count=len(editor_events))

    enriched = enrich_window_events(
        window_events,
        browser_events,
        editor_events,
        matcher,
        include_browser_details=include_browser_details,
        include_editor_details=include_editor_details,
        config=config,
    )

    surviving = [
        event
        for event in enriched
        if event.duration_seconds >= min_duration_seconds
        and not (exclude_system_apps and config.is_system_app(event.app))
    ]
    total = sum(event.duration_seconds for event in surviving)

    logger.debug(
        "Canonical events: %d window, %d browser, %d editor -> %d kept (min %.1fs)",
        len(window_events),
        len(browser_events),
        len(editor_events),
        len(surviving),
        min_duration_seconds,
    )

    return CanonicalResult(
        events=with_percentages(surviving, total),
        total_time_seconds=total,
        window_event_count=len(window_events),
        browser_event_count=len(browser_events),
        editor_event_count=len(editor_events),
    )
