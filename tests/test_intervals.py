from datetime import datetime, timezone

from activity_timeline.intervals import (
    Interval,
    calculate_overlap,
    from_epoch_ms,
    interval_from,
    intersect_intervals,
    merge_intervals,
    subtract_intervals,
    sum_intervals,
    to_epoch_ms,
)


def test_merge_sorts_and_joins_touching_intervals():
    merged = merge_intervals([Interval(50, 60), Interval(0, 10), Interval(5, 20), Interval(20, 30)])
    assert merged == [Interval(0, 30), Interval(50, 60)]


def test_merge_drops_empty_and_inverted():
    assert merge_intervals([Interval(5, 5), Interval(9, 3)]) == []


def test_merged_sum_never_exceeds_naive_sum():
    overlapping = [Interval(0, 10), Interval(5, 15)]
    assert sum_intervals(overlapping) == 20
    assert sum_intervals(merge_intervals(overlapping)) == 15

    disjoint = [Interval(0, 10), Interval(20, 30)]
    assert sum_intervals(merge_intervals(disjoint)) == sum_intervals(disjoint)


def test_intersection_is_symmetric_and_excludes_touching():
    a, b = Interval(0, 10), Interval(5, 20)
    assert intersect_intervals(a, b) == intersect_intervals(b, a) == Interval(5, 10)
    assert intersect_intervals(Interval(0, 10), Interval(10, 20)) is None


def test_calculate_overlap_counts_each_other_interval():
    target = Interval(0, 100)
    others = [Interval(0, 50), Interval(25, 75)]
    assert calculate_overlap(target, others) == 100
    assert calculate_overlap(target, merge_intervals(others)) == 75


def test_subtract_returns_uncovered_pieces():
    pieces = subtract_intervals(Interval(0, 100), [Interval(10, 20), Interval(50, 60), Interval(90, 120)])
    assert pieces == [Interval(0, 10), Interval(20, 50), Interval(60, 90)]
    assert subtract_intervals(Interval(0, 10), [Interval(-5, 15)]) == []


def test_epoch_conversions():
    moment = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)
    assert from_epoch_ms(to_epoch_ms(moment)) == moment
    assert to_epoch_ms(datetime(2025, 1, 6, 9, 0)) == to_epoch_ms(moment)
    assert interval_from(moment, 1.5).length == 1500
