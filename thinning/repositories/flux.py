"""Flux query builders and series naming.

Every read the measurement layer performs is one of the queries below. All
of them select the single ``value`` field of one series (an InfluxDB
``_measurement``) or, for snapshots, of every series carrying the prefix.

Every point also carries a ``seq`` tag so repeated writes at one timestamp
stay distinct; queries regroup by ``_measurement`` and order by time, then
seq, which is write order within a second.

Range semantics follow Flux ``range()``: start inclusive, stop exclusive.
``points_query`` additionally drops rows sitting exactly on ``start`` so the
nearest-lookup window is open on both ends.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from thinning.models.measurement import EPOCH, ResourceId

VALUE_FIELD = "value"
SEQ_TAG = "seq"

# Upper bound for unbounded reads and deletes; InfluxDB timestamps end in 2262.
MAX_TIME = datetime(2262, 1, 1, tzinfo=timezone.utc)

_INT_ID = re.compile(r"^-?\d+$")


def to_rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def flux_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def flux_time(dt: datetime) -> str:
    return f"time(v: {flux_str(to_rfc3339(dt))})"


def series_name(resource_id: ResourceId, prefix: str) -> str:
    return f"{prefix}{resource_id}"


def parse_resource_id(raw: str) -> ResourceId:
    """Numeric ids come back as ints, anything else stays a string."""
    if _INT_ID.match(raw):
        return int(raw)
    return raw


def resource_id_from_series(series: str, prefix: str) -> ResourceId | None:
    if not series.startswith(prefix) or len(series) == len(prefix):
        return None
    return parse_resource_id(series[len(prefix):])


def delete_predicate(series: str) -> str:
    return f"_measurement={flux_str(series)}"


def _source(bucket: str, series: str, start: datetime, stop: datetime) -> str:
    return f"""
from(bucket: {flux_str(bucket)})
  |> range(start: {flux_time(start)}, stop: {flux_time(stop)})
  |> filter(fn: (r) => r["_measurement"] == {flux_str(series)})
  |> filter(fn: (r) => r["_field"] == {flux_str(VALUE_FIELD)})
  |> group(columns: ["_measurement"])
  |> sort(columns: ["_time", {flux_str(SEQ_TAG)}])"""


def points_query(*, bucket: str, series: str, start: datetime, stop: datetime) -> str:
    return (
        _source(bucket, series, start, stop)
        + f"""
  |> filter(fn: (r) => r["_time"] > {flux_time(start)})
  |> keep(columns: ["_time", "_value", "_measurement"])
"""
    )


def last_query(*, bucket: str, series: str) -> str:
    return (
        _source(bucket, series, EPOCH, MAX_TIME)
        + """
  |> last()
  |> keep(columns: ["_time", "_value", "_measurement"])
"""
    )


def windowed_mean_query(
    *, bucket: str, series: str, start: datetime, stop: datetime, every_seconds: int
) -> str:
    every = int(every_seconds)
    if every <= 0:
        raise ValueError("every_seconds must be positive")
    return (
        _source(bucket, series, start, stop)
        + f"""
  |> aggregateWindow(every: {every}s, fn: mean, createEmpty: false, timeSrc: "_start")
  |> keep(columns: ["_time", "_value", "_measurement"])
  |> sort(columns: ["_time"])
"""
    )


def selector_query(
    *, bucket: str, series: str, fn: str, start: datetime, stop: datetime
) -> str:
    if fn in ("max", "min"):
        # Selectors keep the row they pick, including its _time.
        tail = f"""
  |> {fn}()
  |> keep(columns: ["_time", "_value", "_measurement"])
"""
    elif fn == "mean":
        tail = """
  |> mean()
  |> keep(columns: ["_value", "_measurement"])
"""
    else:
        raise ValueError(f"Unsupported selector: {fn!r}")
    return _source(bucket, series, start, stop) + tail


def last_all_query(*, bucket: str, prefix: str) -> str:
    # Only series this layer wrote: prefix plus an id, tagged with seq.
    return f"""
from(bucket: {flux_str(bucket)})
  |> range(start: {flux_time(EPOCH)}, stop: {flux_time(MAX_TIME)})
  |> filter(fn: (r) => r["_measurement"] =~ /^{prefix}[A-Za-z0-9_-]+$/)
  |> filter(fn: (r) => r["_field"] == {flux_str(VALUE_FIELD)})
  |> filter(fn: (r) => exists r[{flux_str(SEQ_TAG)}])
  |> group(columns: ["_measurement"])
  |> sort(columns: ["_time", {flux_str(SEQ_TAG)}])
  |> last()
  |> keep(columns: ["_time", "_value", "_measurement"])
"""
