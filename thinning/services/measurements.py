from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from thinning.models.measurement import (
    Measurement,
    MeasurementDTO,
    ResourceId,
    measurement_from_point,
    to_utc,
)
from thinning.models.ranges import DEFAULT_GRANULARITY_SECONDS, RangeOptions
from thinning.repositories.base import MeasurementStore
from thinning.repositories.flux import series_name
from thinning.services.aggregation import ExtremumEvaluator, RangeAggregator
from thinning.services.notify import WriteNotifier
from thinning.services.window import DEFAULT_TOLERANCE, TimeWindowResolver

logger = logging.getLogger(__name__)


class MeasurementRepository:
    """Measurements of a single resource.

    Holds nothing but the resource id and its collaborators, so it is cheap to
    build per call. Every query returns ``None`` when the store has no
    matching rows.
    """

    def __init__(
        self,
        resource_id: ResourceId,
        *,
        store: MeasurementStore,
        notifier: WriteNotifier | None = None,
        tolerance: timedelta = DEFAULT_TOLERANCE,
        default_granularity_seconds: int = DEFAULT_GRANULARITY_SECONDS,
    ) -> None:
        self._resource_id = resource_id
        self._store = store
        self._notifier = notifier
        self._resolver = TimeWindowResolver(store, tolerance=tolerance)
        self._aggregator = RangeAggregator(
            store, default_granularity_seconds=default_granularity_seconds
        )
        self._evaluator = ExtremumEvaluator(store)

    @property
    def resource_id(self) -> ResourceId:
        return self._resource_id

    @property
    def series(self) -> str:
        return series_name(self._resource_id, self._store.series_prefix)

    def add_measurement(self, value: float, time: datetime | None = None) -> MeasurementDTO:
        """Store ``value`` at ``time`` (default now), then notify observers.

        The write is never rolled back; an observer failure raises
        ``NotificationFailure`` after the value is stored.
        """
        time = to_utc(time) if time is not None else datetime.now(tz=timezone.utc)
        self._store.write_point(series=self.series, time=time, value=float(value))

        dto = MeasurementDTO(resource_id=self._resource_id, value=float(value), time=time)
        if self._notifier is not None:
            self._notifier.notify(dto)
        return dto

    def current_measurement(self) -> Measurement | None:
        row = self._store.query_last(series=self.series)
        if row is None:
            return None
        return measurement_from_point(self._resource_id, row)

    def measurement(
        self, time: datetime, tolerance: timedelta | None = None
    ) -> Measurement | None:
        return self._resolver.find_nearest(self._resource_id, time, tolerance)

    def measurements(self, options: RangeOptions | None = None) -> list[Measurement] | None:
        return self._aggregator.aggregate(self._resource_id, options)

    def measurements_since(
        self, start: datetime, granularity: timedelta | int | None = None
    ) -> list[Measurement] | None:
        return self.measurements(RangeOptions(start=start, granularity=granularity))

    def max_measurement(self, options: RangeOptions | None = None) -> Measurement | None:
        return self._evaluator.max_in_range(self._resource_id, options)

    def min_measurement(self, options: RangeOptions | None = None) -> Measurement | None:
        return self._evaluator.min_in_range(self._resource_id, options)

    def avg_measurement(self, options: RangeOptions | None = None) -> Measurement | None:
        return self._evaluator.avg_in_range(self._resource_id, options)

    def delete_series(self) -> None:
        """Delete every point of this resource. Immediate and final."""
        self._store.delete_series(series=self.series)
        logger.info("Deleted measurements of resource %s", self._resource_id)
