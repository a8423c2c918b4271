"""AFK statistics and not-AFK filtering."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Sequence, TypeVar

from activity_timeline.intervals import (
    Interval,
    from_epoch_ms,
    intersect_intervals,
    merge_intervals,
    sum_intervals,
)
from activity_timeline.schema import AfkEvent
from activity_timeline.timeutils import percentage_of

logger = logging.getLogger(__name__)

AFK_STATUS = "afk"
NOT_AFK_STATUS = "not-afk"

_E = TypeVar("_E")


def _status_intervals(afk_events: Iterable[AfkEvent], status: str) -> list[Interval]:
    return merge_intervals(event.interval for event in afk_events if event.status == status)


def afk_intervals(afk_events: Iterable[AfkEvent]) -> list[Interval]:
    return _status_intervals(afk_events, AFK_STATUS)


def not_afk_intervals(afk_events: Iterable[AfkEvent]) -> list[Interval]:
    return _status_intervals(afk_events, NOT_AFK_STATUS)


def summarize_afk(afk_events: Sequence[AfkEvent]) -> dict:
    """Away/active totals plus the sorted list of AFK status periods."""

    periods = sorted(
        (event for event in afk_events if event.status in (AFK_STATUS, NOT_AFK_STATUS)),
        key=lambda event: event.timestamp,
    )
    afk_seconds = sum_intervals(afk_intervals(periods)) / 1000.0
    active_seconds = sum_intervals(not_afk_intervals(periods)) / 1000.0
    total = afk_seconds + active_seconds

    return {
        "total_afk_seconds": afk_seconds,
        "total_active_seconds": active_seconds,
        "afk_percentage": percentage_of(afk_seconds, total),
        "active_percentage": percentage_of(active_seconds, total),
        "afk_periods": [
            {
                "start": event.timestamp.isoformat(),
                "end": event.end.isoformat(),
                "duration_seconds": event.duration,
                "status": event.status,
            }
            for event in periods
        ],
    }


def filter_period_intersect(events: Iterable[_E], intervals: Sequence[Interval]) -> list[_E]:
    """Clip timed events to ``intervals``; pieces outside them are dropped.

    An event spanning several intervals yields one clipped copy per piece.
    """

    clipped = []
    for event in events:
        for interval in intervals:
            hit = intersect_intervals(event.interval, interval)
            if hit is None:
                continue
            clipped.append(
                replace(
                    event,
                    timestamp=from_epoch_ms(hit.start),
                    duration=hit.length / 1000.0,
                )
            )
    logger.debug("Clipped events to %d intervals: %d pieces kept", len(intervals), len(clipped))
    return clipped
