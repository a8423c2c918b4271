"""Event fetch boundary.

The core never talks to a tracker directly. An ``EventSource`` hands back
typed events per stream; ``gather_streams`` awaits every stream concurrently
and only returns once all of them have finished, since the canonical builder
needs window, browser and editor data together.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Protocol, Sequence

from activity_timeline.afk import filter_period_intersect, not_afk_intervals
from activity_timeline.intervals import Interval, intersect_intervals, to_epoch_ms
from activity_timeline.schema import BROWSER, CALENDAR, EDITOR, STREAM_TYPES, WINDOW, EventStreams

logger = logging.getLogger(__name__)

AFK_FILTERED_STREAMS = (WINDOW, BROWSER, EDITOR)


class EventSource(Protocol):
    async def fetch_events(self, stream: str, start: datetime, end: datetime) -> list:
        ...


class StaticEventSource:
    """In-memory source over already parsed streams.

    Events are clipped to the requested range. Window, browser and editor
    events are further clipped to not-afk time when AFK data exists; calendar
    meetings are returned whole and never AFK-filtered.
    """

    def __init__(self, streams: EventStreams, afk_filter: bool = True):
        self.streams = streams
        self.afk_filter = afk_filter

    async def fetch_events(self, stream: str, start: datetime, end: datetime) -> list:
        if stream not in STREAM_TYPES:
            raise ValueError(f"Unknown stream '{stream}'")

        bounds = Interval(to_epoch_ms(start), to_epoch_ms(end))
        if stream == CALENDAR:
            return [meeting for meeting in self.streams.meetings if intersect_intervals(meeting.interval, bounds)]

        events = filter_period_intersect(getattr(self.streams, stream), [bounds])
        if self.afk_filter and stream in AFK_FILTERED_STREAMS:
            if self.streams.afk:
                events = filter_period_intersect(events, not_afk_intervals(self.streams.afk))
            else:
                logger.debug("No AFK data; %s events left unfiltered", stream)
        return events


async def gather_streams(
    source: EventSource, start: datetime, end: datetime, streams: Sequence[str] = STREAM_TYPES
) -> EventStreams:
    """Fetch every stream concurrently; a failed stream is logged and left empty."""

    results = await asyncio.gather(
        *(source.fetch_events(stream, start, end) for stream in streams),
        return_exceptions=True,
    )

    collected = EventStreams()
    for stream, result in zip(streams, results):
        if isinstance(result, Exception):
            logger.warning("Fetching %s events failed, treating as empty: %s", stream, result)
            continue
        if isinstance(result, BaseException):
            raise result
        if stream == CALENDAR:
            collected.meetings = list(result)
        else:
            setattr(collected, stream, list(result))

    logger.debug(
        "Fetched %d window, %d browser, %d editor, %d afk events and %d meetings",
        len(collected.window),
        len(collected.browser),
        len(collected.editor),
        len(collected.afk),
        len(collected.meetings),
    )
    return collected
