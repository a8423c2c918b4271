"""Group canonical events into ranked activity rows.

Every level partitions events with the same key functions. The ``category``
dimension can place one event under several keys, so summed percentages
across its rows may exceed 100%; that reflects overlapping categories and is
left as is.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import timezone
from typing import Iterable, Optional, Sequence, Union

from activity_timeline.categories import PATH_SEPARATOR
from activity_timeline.errors import INVALID_GROUP_BY, TimelineError
from activity_timeline.schema import CanonicalEvent
from activity_timeline.timeutils import percentage_of

logger = logging.getLogger(__name__)

GROUP_DIMENSIONS = (
    "application",
    "title",
    "category",
    "category_top_level",
    "domain",
    "project",
    "language",
    "hour",
)
MAX_LEVELS = 3

UNCATEGORIZED = "Uncategorized"
NON_BROWSER = "Non-browser"
NO_PROJECT = "No project"
NON_EDITOR = "Non-editor"


def hour_label(event: CanonicalEvent) -> str:
    hour = event.timestamp.astimezone(timezone.utc).hour
    return f"{hour:02d}:00-{hour + 1:02d}:00"


def group_key(event: CanonicalEvent, dimension: str) -> list[str]:
    """Keys ``event`` falls under for one grouping dimension."""

    if dimension == "application":
        return [event.app]
    if dimension == "title":
        return [event.title]
    if dimension == "category":
        return list(event.categories) or [UNCATEGORIZED]
    if dimension == "category_top_level":
        tops: list[str] = []
        for path in event.categories:
            top = path.split(PATH_SEPARATOR)[0]
            if top not in tops:
                tops.append(top)
        return tops or [UNCATEGORIZED]
    if dimension == "domain":
        return [event.browser.domain] if event.browser and event.browser.domain else [NON_BROWSER]
    if dimension == "project":
        return [event.editor.project] if event.editor and event.editor.project else [NO_PROJECT]
    if dimension == "language":
        return [event.editor.language] if event.editor and event.editor.language else [NON_EDITOR]
    if dimension == "hour":
        return [hour_label(event)]
    raise TimelineError(f"Invalid group_by: {dimension}", INVALID_GROUP_BY, {"group_by": dimension})


def _summarise(values: Iterable[str], plural: str) -> str:
    distinct = list(dict.fromkeys(value for value in values if value))
    if len(distinct) == 1:
        return distinct[0]
    return f"{len(distinct)} {plural}"


def _browser_rollup(events: Sequence[CanonicalEvent]) -> Optional[dict]:
    hits = [event.browser for event in events if event.browser is not None]
    if not hits:
        return None
    return {
        "url": _summarise((hit.url for hit in hits), "URLs"),
        "domain": _summarise((hit.domain for hit in hits), "domains"),
        "title": hits[0].title,
        "duration_seconds": sum(hit.duration_seconds for hit in hits),
    }


def _editor_rollup(events: Sequence[CanonicalEvent]) -> Optional[dict]:
    hits = [event.editor for event in events if event.editor is not None]
    if not hits:
        return None
    projects = {hit.project for hit in hits if hit.project}
    languages = {hit.language for hit in hits if hit.language}
    return {
        "file": _summarise((hit.file for hit in hits), "files"),
        "project": projects.pop() if len(projects) == 1 else None,
        "language": languages.pop() if len(languages) == 1 else None,
        "duration_seconds": sum(hit.duration_seconds for hit in hits),
    }


def _terminal_rollup(events: Sequence[CanonicalEvent]) -> Optional[dict]:
    hits = [event.terminal for event in events if event.terminal is not None]
    if not hits:
        return None
    return {
        "hostname": _summarise((hit.hostname for hit in hits), "hosts"),
        "directory": _summarise((hit.directory for hit in hits), "directories"),
        "is_remote": any(hit.is_remote for hit in hits),
    }


def _ide_rollup(events: Sequence[CanonicalEvent]) -> Optional[dict]:
    with_ide = [event for event in events if event.ide is not None]
    if not with_ide:
        return None
    projects = [event.ide.project for event in with_ide if not event.ide.is_dialog and event.ide.project]
    return {
        "project": _summarise(projects, "projects") if projects else None,
        "dialog_seconds": sum(event.duration_seconds for event in with_ide if event.ide.is_dialog),
    }


def _group_row(path: tuple[str, ...], events: Sequence[CanonicalEvent], total_seconds: float) -> dict:
    duration = sum(event.duration_seconds for event in events)
    apps = {event.app for event in events}
    categories: list[str] = []
    for event in events:
        for category in event.categories:
            if category not in categories:
                categories.append(category)

    row = {
        "title": PATH_SEPARATOR.join(path),
        "app": apps.pop() if len(apps) == 1 else "Various",
        "group_key": path[-1],
        "group_hierarchy": list(path),
        "duration_seconds": duration,
        "duration_hours": round(duration / 3600.0, 2),
        "percentage": percentage_of(duration, total_seconds),
        "event_count": sum(event.event_count for event in events),
        "first_seen": min(event.timestamp for event in events).isoformat(),
        "last_seen": max(event.end for event in events).isoformat(),
    }
    browser = _browser_rollup(events)
    if browser is not None:
        row["browser"] = browser
    editor = _editor_rollup(events)
    if editor is not None:
        row["editor"] = editor
    terminal = _terminal_rollup(events)
    if terminal is not None:
        row["terminal"] = terminal
    ide = _ide_rollup(events)
    if ide is not None:
        row["ide"] = ide
    if categories:
        row["category"] = events[0].category or categories[0]
        row["categories"] = categories
    meetings = list(dict.fromkeys(name for event in events for name in event.calendar))
    if meetings:
        row["calendar"] = meetings
        row["meeting_overlap_seconds"] = sum(event.meeting_overlap_seconds for event in events)
    if all(event.calendar_only for event in events):
        row["calendar_only"] = True
    return row


def _partition(events: Iterable[CanonicalEvent], dimension: str) -> dict[str, list[CanonicalEvent]]:
    groups: dict[str, list[CanonicalEvent]] = defaultdict(list)
    for event in events:
        for key in group_key(event, dimension):
            groups[key].append(event)
    return groups


def _validate_dimensions(dimensions: Sequence[str]) -> list[str]:
    if not dimensions:
        raise TimelineError("group_by requires at least one dimension", INVALID_GROUP_BY, {"group_by": []})
    for dimension in dimensions:
        if dimension not in GROUP_DIMENSIONS:
            raise TimelineError(f"Invalid group_by: {dimension}", INVALID_GROUP_BY, {"group_by": list(dimensions)})
    if len(dimensions) > MAX_LEVELS:
        logger.warning("Grouping supports at most %d levels; ignoring %s", MAX_LEVELS, list(dimensions[MAX_LEVELS:]))
    return list(dimensions[:MAX_LEVELS])


def group_events_multi(events: Sequence[CanonicalEvent], dimensions: Sequence[str], top_n: int = 10) -> list[dict]:
    """Hierarchical grouping flattened depth-first; rollups precede their children."""

    levels = _validate_dimensions(dimensions)
    total = sum(event.duration_seconds for event in events)
    rows: list[dict] = []

    def walk(subset: Sequence[CanonicalEvent], depth: int, path: tuple[str, ...]) -> None:
        groups = _partition(subset, levels[depth])
        ranked = sorted(
            groups.items(),
            key=lambda item: (-sum(event.duration_seconds for event in item[1]), item[0]),
        )
        for key, members in ranked[:top_n]:
            node = path + (key,)
            rows.append(_group_row(node, members, total))
            if depth + 1 < len(levels):
                walk(members, depth + 1, node)

    if events:
        walk(events, 0, ())
    logger.debug("Grouped %d events by %s into %d rows", len(events), levels, len(rows))
    return rows


def group_events(events: Sequence[CanonicalEvent], group_by: str = "application", top_n: int = 10) -> list[dict]:
    return group_events_multi(events, [group_by], top_n=top_n)


def group_activity(
    events: Sequence[CanonicalEvent], group_by: Union[str, Sequence[str]] = "application", top_n: int = 10
) -> list[dict]:
    if isinstance(group_by, str):
        return group_events(events, group_by, top_n=top_n)
    return group_events_multi(events, group_by, top_n=top_n)
