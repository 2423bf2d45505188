from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS
from influxdb_client.rest import ApiException
from urllib3.exceptions import HTTPError

from thinning.core.errors import StoreUnavailable
from thinning.models.measurement import EPOCH, StoredPoint, to_epoch_seconds
from thinning.repositories.base import Selector
from thinning.repositories.flux import (
    MAX_TIME,
    SEQ_TAG,
    VALUE_FIELD,
    delete_predicate,
    last_all_query,
    last_query,
    points_query,
    selector_query,
    windowed_mean_query,
)

logger = logging.getLogger(__name__)

# Number of (series, second) write counters remembered per store.
_SEQ_SLOTS = 4096


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (ApiException, HTTPError, OSError) as e:
        logger.warning("InfluxDB %s failed: %s", action, e)
        raise StoreUnavailable(f"InfluxDB {action} failed: {e}") from e


class InfluxMeasurementStore:
    def __init__(
        self,
        *,
        client: InfluxDBClient,
        org: str,
        bucket: str,
        series_prefix: str = "r",
    ) -> None:
        self._client = client
        self._org = org
        self._bucket = bucket
        self._series_prefix = series_prefix
        self._seq: OrderedDict[tuple[str, int], int] = OrderedDict()
        self._seq_lock = threading.Lock()

    @property
    def series_prefix(self) -> str:
        return self._series_prefix

    def ping(self) -> None:
        with _store_errors("ping"):
            ok = self._client.ping()
        if not ok:
            raise StoreUnavailable("InfluxDB ping failed")

    def write_point(self, *, series: str, time: datetime, value: float) -> None:
        seconds = to_epoch_seconds(time)
        epoch_ms = seconds * 1000
        point = (
            Point(series)
            .tag(SEQ_TAG, self._next_seq(series, seconds))
            .field(VALUE_FIELD, float(value))
            .time(epoch_ms, WritePrecision.MS)
        )
        with _store_errors("write"):
            write_api = self._client.write_api(write_options=SYNCHRONOUS)
            write_api.write(
                bucket=self._bucket,
                org=self._org,
                record=point,
                write_precision=WritePrecision.MS,
            )
        logger.debug("Wrote %s=%s at %sms", series, value, epoch_ms)

    def query_points(
        self, *, series: str, start: datetime, stop: datetime
    ) -> list[StoredPoint]:
        query = points_query(bucket=self._bucket, series=series, start=start, stop=stop)
        return self._run(query, action="point query")

    def query_last(self, *, series: str) -> StoredPoint | None:
        query = last_query(bucket=self._bucket, series=series)
        rows = self._run(query, action="last query")
        return rows[-1] if rows else None

    def query_windowed_mean(
        self, *, series: str, start: datetime, stop: datetime, every_seconds: int
    ) -> list[StoredPoint]:
        query = windowed_mean_query(
            bucket=self._bucket,
            series=series,
            start=start,
            stop=stop,
            every_seconds=every_seconds,
        )
        return self._run(query, action="windowed mean query")

    def query_selector(
        self, *, series: str, fn: Selector, start: datetime, stop: datetime
    ) -> StoredPoint | None:
        query = selector_query(
            bucket=self._bucket, series=series, fn=fn, start=start, stop=stop
        )
        rows = self._run(query, action=f"{fn} query")
        return rows[0] if rows else None

    def query_last_all(self) -> dict[str, StoredPoint]:
        query = last_all_query(bucket=self._bucket, prefix=self._series_prefix)
        results: dict[str, StoredPoint] = {}
        for row in self._run(query, action="snapshot query"):
            results.setdefault(row.series, row)
        return results

    def delete_series(self, *, series: str) -> None:
        with _store_errors("delete"):
            self._client.delete_api().delete(
                start=EPOCH,
                stop=MAX_TIME,
                predicate=delete_predicate(series),
                bucket=self._bucket,
                org=self._org,
            )
        logger.info("Deleted series %s", series)

    def drop_all(self) -> None:
        with _store_errors("delete"):
            self._client.delete_api().delete(
                start=EPOCH,
                stop=MAX_TIME,
                predicate="",
                bucket=self._bucket,
                org=self._org,
            )
        logger.info("Deleted every series in bucket %s", self._bucket)

    def _next_seq(self, series: str, seconds: int) -> str:
        # Points sharing series, tags and timestamp overwrite each other in
        # InfluxDB. Repeated writes within one second get increasing seq tags.
        key = (series, seconds)
        with self._seq_lock:
            n = self._seq.pop(key, -1) + 1
            self._seq[key] = n
            while len(self._seq) > _SEQ_SLOTS:
                self._seq.popitem(last=False)
        return f"{n:06d}"

    def _run(self, query: str, *, action: str) -> list[StoredPoint]:
        with _store_errors(action):
            tables = self._client.query_api().query(query=query, org=self._org)

        rows: list[StoredPoint] = []
        for table in tables:
            for record in table.records:
                row = _to_stored_point(record.values)
                if row is not None:
                    rows.append(row)
        return rows


def _to_stored_point(values: dict[str, Any]) -> StoredPoint | None:
    series = values.get("_measurement")
    value = values.get("_value")
    if not isinstance(series, str) or value is None:
        return None
    ts = values.get("_time")
    if ts is not None and not isinstance(ts, datetime):
        return None
    return StoredPoint(series=series, time=ts, value=float(value))
