from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from thinning.core.errors import InvalidRangeError
from thinning.models.measurement import EPOCH, to_utc

DEFAULT_GRANULARITY_SECONDS = 3600


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class RangeOptions:
    """Bounds and bucket width for range queries.

    ``start`` defaults to the Unix epoch, ``end`` to the moment the query is
    issued and ``granularity`` to one hour. Naive datetimes are read as UTC.
    """

    start: datetime | None = None
    end: datetime | None = None
    granularity: timedelta | int | None = None

    def resolve(self, *, now: datetime | None = None) -> TimeRange:
        start = to_utc(self.start) if self.start is not None else EPOCH
        if self.end is not None:
            end = to_utc(self.end)
        else:
            end = to_utc(now) if now is not None else datetime.now(tz=timezone.utc)
        if start > end:
            raise InvalidRangeError(
                f"Range start {start.isoformat()} is after end {end.isoformat()}"
            )
        return TimeRange(start=start, end=end)

    def granularity_seconds(self, default: int = DEFAULT_GRANULARITY_SECONDS) -> int:
        g = self.granularity
        if g is None:
            seconds = default
        elif isinstance(g, timedelta):
            seconds = int(g.total_seconds())
        else:
            seconds = int(g)
        if seconds <= 0:
            raise InvalidRangeError(f"Granularity must be positive, got {seconds}s")
        return seconds
