from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from thinning.models.measurement import StoredPoint
from thinning.services.window import (
    DEFAULT_TOLERANCE,
    TimeWindowResolver,
    nearest_window,
    pick_nearest,
)
from tests.fakes import FakeMeasurementStore

T = datetime(2020, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _point(offset_seconds: float, value: float) -> StoredPoint:
    return StoredPoint(series="r1", time=T + timedelta(seconds=offset_seconds), value=value)


def test_default_window_is_twenty_minutes() -> None:
    window = nearest_window(T)
    assert DEFAULT_TOLERANCE == timedelta(minutes=10)
    assert window.start == T - timedelta(minutes=10)
    assert window.end == T + timedelta(minutes=10)


def test_window_rejects_non_positive_tolerance() -> None:
    with pytest.raises(ValueError):
        nearest_window(T, timedelta(0))


def test_pick_nearest_on_empty_input() -> None:
    assert pick_nearest([], T) is None


def test_pick_nearest_prefers_smallest_distance() -> None:
    points = [_point(-300, 1.0), _point(120, 2.0), _point(400, 3.0)]
    assert pick_nearest(points, T).value == 2.0


def test_equal_distance_prefers_earlier_point() -> None:
    points = [_point(60, 1.0), _point(-60, 2.0)]
    assert pick_nearest(points, T).value == 2.0


def test_same_timestamp_keeps_store_order() -> None:
    points = [_point(30, 1.0), _point(30, 2.0)]
    assert pick_nearest(points, T).value == 1.0


def test_distance_ignores_sub_second_offsets() -> None:
    points = [_point(-59.5, 1.0), _point(59.9, 2.0)]
    # Truncated to whole seconds these sit 60s before and 59s after.
    assert pick_nearest(points, T).value == 2.0


def test_resolver_queries_window_and_wraps_result() -> None:
    store = FakeMeasurementStore()
    store.write_point(series="r1", time=T + timedelta(minutes=2), value=4.5)
    resolver = TimeWindowResolver(store)

    found = resolver.find_nearest(1, T)
    assert found is not None
    assert found.resource_id == 1
    assert found.value == 4.5
    assert found.time == T + timedelta(minutes=2)
    assert store.calls == ["write", "points"]


def test_resolver_returns_none_outside_window() -> None:
    store = FakeMeasurementStore()
    store.write_point(series="r1", time=T + timedelta(minutes=15), value=4.5)
    assert TimeWindowResolver(store).find_nearest(1, T) is None
    assert TimeWindowResolver(store, tolerance=timedelta(minutes=20)).find_nearest(1, T) is not None


def test_resolver_rejects_zero_tolerance_override() -> None:
    store = FakeMeasurementStore()
    store.write_point(series="r1", time=T, value=4.5)
    with pytest.raises(ValueError):
        TimeWindowResolver(store).find_nearest(1, T, timedelta(0))
