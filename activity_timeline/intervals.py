"""Interval algebra over epoch-millisecond ranges."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional


@dataclass(frozen=True)
class Interval:
    """Half-open ``[start, end)`` range in epoch milliseconds."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return max(0, self.end - self.start)


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def interval_from(timestamp: datetime, duration_seconds: float) -> Interval:
    start = to_epoch_ms(timestamp)
    return Interval(start, start + int(round(duration_seconds * 1000)))


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping or touching intervals into a sorted disjoint list."""

    ordered = sorted((i for i in intervals if i.end > i.start), key=lambda i: i.start)
    if not ordered:
        return []

    merged: list[Interval] = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if nxt.start <= current.end:
            current = Interval(current.start, max(current.end, nxt.end))
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def sum_intervals(intervals: Iterable[Interval]) -> int:
    """Total covered milliseconds; negative-length entries count as zero."""

    return sum(i.end - i.start for i in intervals if i.end > i.start)


def intersect_intervals(a: Interval, b: Interval) -> Optional[Interval]:
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if end <= start:
        return None
    return Interval(start, end)


def calculate_overlap(target: Interval, others: Iterable[Interval]) -> int:
    """Sum of intersections of ``target`` with each of ``others``.

    ``others`` is not merged first: overlapping entries are each counted.
    """

    overlap = 0
    for other in others:
        hit = intersect_intervals(target, other)
        if hit is not None:
            overlap += hit.end - hit.start
    return overlap


def subtract_intervals(target: Interval, others: Iterable[Interval]) -> list[Interval]:
    """Pieces of ``target`` not covered by any of ``others``."""

    pieces: list[Interval] = []
    cursor = target.start
    for other in merge_intervals(others):
        if other.end <= cursor:
            continue
        if other.start >= target.end:
            break
        if other.start > cursor:
            pieces.append(Interval(cursor, other.start))
        cursor = max(cursor, other.end)
        if cursor >= target.end:
            break
    if cursor < target.end:
        pieces.append(Interval(cursor, target.end))
    return pieces
