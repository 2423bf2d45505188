from __future__ import annotations

from datetime import datetime
from typing import Literal, Protocol

from thinning.models.measurement import StoredPoint

Selector = Literal["max", "min", "mean"]


class MeasurementStore(Protocol):
    """Round-trips against the time-series store, one query per call.

    Every query returns an empty result (``[]`` or ``None``) when no rows
    match; transport failures raise ``StoreUnavailable``.
    """

    @property
    def series_prefix(self) -> str: ...

    def ping(self) -> None: ...

    def write_point(self, *, series: str, time: datetime, value: float) -> None: ...

    def query_points(
        self, *, series: str, start: datetime, stop: datetime
    ) -> list[StoredPoint]: ...

    def query_last(self, *, series: str) -> StoredPoint | None: ...

    def query_windowed_mean(
        self, *, series: str, start: datetime, stop: datetime, every_seconds: int
    ) -> list[StoredPoint]: ...

    def query_selector(
        self, *, series: str, fn: Selector, start: datetime, stop: datetime
    ) -> StoredPoint | None: ...

    def query_last_all(self) -> dict[str, StoredPoint]: ...

    def delete_series(self, *, series: str) -> None: ...

    def drop_all(self) -> None: ...
