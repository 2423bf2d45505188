from __future__ import annotations

from datetime import datetime

from thinning.models.measurement import (
    Measurement,
    ResourceId,
    measurement_from_point,
)
from thinning.models.ranges import DEFAULT_GRANULARITY_SECONDS, RangeOptions
from thinning.repositories.base import MeasurementStore, Selector
from thinning.repositories.flux import series_name


class RangeAggregator:
    """Bucketed means over a time range.

    Bucket edges come from the store: windows are aligned to the epoch and
    the first one is clipped to the range start, so the first bucket's time
    can be the range start itself.
    """

    def __init__(
        self,
        store: MeasurementStore,
        *,
        default_granularity_seconds: int = DEFAULT_GRANULARITY_SECONDS,
    ) -> None:
        self._store = store
        self._default_granularity_seconds = default_granularity_seconds

    def aggregate(
        self,
        resource_id: ResourceId,
        options: RangeOptions | None = None,
        *,
        now: datetime | None = None,
    ) -> list[Measurement] | None:
        options = options or RangeOptions()
        time_range = options.resolve(now=now)
        every = options.granularity_seconds(self._default_granularity_seconds)

        rows = self._store.query_windowed_mean(
            series=series_name(resource_id, self._store.series_prefix),
            start=time_range.start,
            stop=time_range.end,
            every_seconds=every,
        )
        # No rows covers both "never written" and "nothing in range".
        if not rows:
            return None
        return [measurement_from_point(resource_id, row) for row in rows]


class ExtremumEvaluator:
    def __init__(self, store: MeasurementStore) -> None:
        self._store = store

    def max_in_range(
        self,
        resource_id: ResourceId,
        options: RangeOptions | None = None,
        *,
        now: datetime | None = None,
    ) -> Measurement | None:
        return self._evaluate(resource_id, "max", options, now=now)

    def min_in_range(
        self,
        resource_id: ResourceId,
        options: RangeOptions | None = None,
        *,
        now: datetime | None = None,
    ) -> Measurement | None:
        return self._evaluate(resource_id, "min", options, now=now)

    def avg_in_range(
        self,
        resource_id: ResourceId,
        options: RangeOptions | None = None,
        *,
        now: datetime | None = None,
    ) -> Measurement | None:
        return self._evaluate(resource_id, "mean", options, now=now)

    def _evaluate(
        self,
        resource_id: ResourceId,
        fn: Selector,
        options: RangeOptions | None,
        *,
        now: datetime | None,
    ) -> Measurement | None:
        time_range = (options or RangeOptions()).resolve(now=now)
        row = self._store.query_selector(
            series=series_name(resource_id, self._store.series_prefix),
            fn=fn,
            start=time_range.start,
            stop=time_range.end,
        )
        if row is None:
            return None
        # An average has no single timestamp.
        return measurement_from_point(resource_id, row, with_time=fn != "mean")
