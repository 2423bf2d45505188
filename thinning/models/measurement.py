from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

ResourceId = Union[int, str]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_seconds(dt: datetime) -> int:
    return int(to_utc(dt).timestamp())


def truncate_to_seconds(dt: datetime) -> datetime:
    return to_utc(dt).replace(microsecond=0)


@dataclass(frozen=True)
class Measurement:
    resource_id: ResourceId
    value: float
    time: datetime | None


@dataclass
class MeasurementDTO:
    """Carrier for a just-written value, handed to write observers."""

    resource_id: ResourceId
    value: float
    time: datetime


@dataclass(frozen=True)
class StoredPoint:
    """A raw row as the store returns it, before it is bound to a resource."""

    series: str
    time: datetime | None
    value: float


def measurement_from_point(
    resource_id: ResourceId, point: StoredPoint, *, with_time: bool = True
) -> Measurement:
    time = None
    if with_time and point.time is not None:
        time = truncate_to_seconds(point.time)
    return Measurement(resource_id=resource_id, value=float(point.value), time=time)
