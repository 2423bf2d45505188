from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from thinning.models.measurement import (
    Measurement,
    ResourceId,
    StoredPoint,
    measurement_from_point,
    to_utc,
    truncate_to_seconds,
)
from thinning.models.ranges import TimeRange
from thinning.repositories.base import MeasurementStore
from thinning.repositories.flux import series_name

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = timedelta(minutes=10)


def nearest_window(target: datetime, tolerance: timedelta = DEFAULT_TOLERANCE) -> TimeRange:
    if tolerance <= timedelta(0):
        raise ValueError("tolerance must be positive")
    target = to_utc(target)
    return TimeRange(start=target - tolerance, end=target + tolerance)


def pick_nearest(points: Iterable[StoredPoint], target: datetime) -> StoredPoint | None:
    """Return the point closest to ``target``.

    Equally close points resolve to the earlier timestamp. Points with the
    very same timestamp keep store order: the first one wins.
    """
    target = to_utc(target)
    best: StoredPoint | None = None
    best_key: tuple[float, datetime] | None = None
    for point in points:
        if point.time is None:
            continue
        # Distances are measured at the whole-second precision reads return.
        time = truncate_to_seconds(point.time)
        key = (abs((time - target).total_seconds()), time)
        if best_key is None or key < best_key:
            best, best_key = point, key
    return best


class TimeWindowResolver:
    def __init__(
        self, store: MeasurementStore, *, tolerance: timedelta = DEFAULT_TOLERANCE
    ) -> None:
        self._store = store
        self._tolerance = tolerance

    def find_nearest(
        self,
        resource_id: ResourceId,
        target: datetime,
        tolerance: timedelta | None = None,
    ) -> Measurement | None:
        if tolerance is None:
            tolerance = self._tolerance
        window = nearest_window(target, tolerance)
        points = self._store.query_points(
            series=series_name(resource_id, self._store.series_prefix),
            start=window.start,
            stop=window.end,
        )
        winner = pick_nearest(points, target)
        if winner is None:
            logger.debug("No measurement for %s near %s", resource_id, target)
            return None
        return measurement_from_point(resource_id, winner)
