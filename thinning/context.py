"""Process-wide entry point to the measurement layer.

``ThinningContext`` owns the store connection and the write notifier. The
InfluxDB client is created on first use and shared by every repository the
context hands out; ``close()`` releases it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import timedelta
from types import TracebackType

from influxdb_client import InfluxDBClient

from thinning.core.config import Settings, get_settings
from thinning.db.influx import create_influx_client
from thinning.models.measurement import Measurement, ResourceId
from thinning.repositories.base import MeasurementStore
from thinning.repositories.influx import InfluxMeasurementStore
from thinning.services.measurements import MeasurementRepository
from thinning.services.notify import WriteNotifier, WriteObserver
from thinning.services.snapshot import multi_current_measurements

logger = logging.getLogger(__name__)


class ThinningContext:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: MeasurementStore | None = None,
        notifier: WriteNotifier | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._client: InfluxDBClient | None = None
        self._lock = threading.Lock()
        self.notifier = notifier or WriteNotifier()

    @property
    def settings(self) -> Settings:
        # Loading is deferred so bad settings surface on the first operation.
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def store(self) -> MeasurementStore:
        if self._store is not None:
            return self._store
        with self._lock:
            if self._store is None:
                settings = self.settings
                self._client = create_influx_client(settings)
                self._store = InfluxMeasurementStore(
                    client=self._client,
                    org=settings.influx_org,
                    bucket=settings.influx_bucket,
                    series_prefix=settings.series_prefix,
                )
                logger.info(
                    "Connected to InfluxDB at %s (bucket %s)",
                    settings.influx_url,
                    settings.influx_bucket,
                )
        return self._store

    def resource(self, resource_id: ResourceId) -> MeasurementRepository:
        settings = self.settings
        return MeasurementRepository(
            resource_id,
            store=self.store,
            notifier=self.notifier,
            tolerance=timedelta(seconds=settings.nearest_tolerance_seconds),
            default_granularity_seconds=settings.default_granularity_seconds,
        )

    def on_write(self, observer: WriteObserver | None) -> None:
        self.notifier.on_write(observer)

    def multi_current_measurements(
        self, ids: ResourceId | Iterable[ResourceId] | None = None
    ) -> list[Measurement]:
        return multi_current_measurements(self.store, ids)

    def delete_series(self, resource_id: ResourceId) -> None:
        self.resource(resource_id).delete_series()

    def drop_all(self) -> None:
        self.store.drop_all()
        logger.warning("Dropped every measurement in the store")

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
                self._store = None

    def __enter__(self) -> ThinningContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
