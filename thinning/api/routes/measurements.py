from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from thinning.api.deps import ReadUser, ResourceRepository, WriteUser, get_store
from thinning.core.errors import InvalidRangeError, NotificationFailure, StoreUnavailable
from thinning.models.measurement import Measurement
from thinning.models.ranges import RangeOptions
from thinning.repositories.base import MeasurementStore
from thinning.repositories.flux import parse_resource_id
from thinning.schemas.measurements import (
    MeasurementCreate,
    MeasurementRead,
    MeasurementWriteResponse,
)
from thinning.services.snapshot import multi_current_measurements

router = APIRouter()

Start = Annotated[datetime | None, Query()]
End = Annotated[datetime | None, Query()]


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except StoreUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="InfluxDB unavailable",
        ) from e


def _read(m: Measurement) -> MeasurementRead:
    return MeasurementRead(resource_id=m.resource_id, value=m.value, time=m.time)


def _found(m: Measurement | None) -> MeasurementRead:
    if m is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No measurement found")
    return _read(m)


def _found_all(rows: list[Measurement] | None) -> list[MeasurementRead]:
    if rows is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No measurements found")
    return [_read(m) for m in rows]


@router.post(
    "/resources/{resource_id}/measurements",
    response_model=MeasurementWriteResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_measurement(
    _: WriteUser,
    payload: MeasurementCreate,
    repo: ResourceRepository,
) -> MeasurementWriteResponse:
    try:
        with _store_errors():
            dto = repo.add_measurement(payload.value, payload.time)
    except NotificationFailure as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Measurement stored, but write notification failed",
        ) from e
    return MeasurementWriteResponse(
        resource_id=dto.resource_id, value=dto.value, written_at=dto.time
    )


@router.get("/resources/{resource_id}/measurements", response_model=list[MeasurementRead])
def list_measurements(
    _: ReadUser,
    repo: ResourceRepository,
    start: Start = None,
    end: End = None,
    granularity: Annotated[int | None, Query(ge=1)] = None,
) -> list[MeasurementRead]:
    with _store_errors():
        rows = repo.measurements(RangeOptions(start=start, end=end, granularity=granularity))
    return _found_all(rows)


@router.get("/resources/{resource_id}/measurements/since", response_model=list[MeasurementRead])
def measurements_since(
    _: ReadUser,
    repo: ResourceRepository,
    start: Annotated[datetime, Query()],
    granularity: Annotated[int | None, Query(ge=1)] = None,
) -> list[MeasurementRead]:
    with _store_errors():
        rows = repo.measurements_since(start, granularity)
    return _found_all(rows)


@router.get("/resources/{resource_id}/measurements/current", response_model=MeasurementRead)
def current_measurement(_: ReadUser, repo: ResourceRepository) -> MeasurementRead:
    with _store_errors():
        m = repo.current_measurement()
    return _found(m)


@router.get("/resources/{resource_id}/measurements/nearest", response_model=MeasurementRead)
def nearest_measurement(
    _: ReadUser,
    repo: ResourceRepository,
    time: Annotated[datetime, Query()],
    tolerance_seconds: Annotated[int | None, Query(ge=1, le=60 * 60 * 24)] = None,
) -> MeasurementRead:
    tolerance = timedelta(seconds=tolerance_seconds) if tolerance_seconds is not None else None
    with _store_errors():
        m = repo.measurement(time, tolerance)
    return _found(m)


@router.get("/resources/{resource_id}/measurements/max", response_model=MeasurementRead)
def max_measurement(
    _: ReadUser, repo: ResourceRepository, start: Start = None, end: End = None
) -> MeasurementRead:
    with _store_errors():
        m = repo.max_measurement(RangeOptions(start=start, end=end))
    return _found(m)


@router.get("/resources/{resource_id}/measurements/min", response_model=MeasurementRead)
def min_measurement(
    _: ReadUser, repo: ResourceRepository, start: Start = None, end: End = None
) -> MeasurementRead:
    with _store_errors():
        m = repo.min_measurement(RangeOptions(start=start, end=end))
    return _found(m)


@router.get("/resources/{resource_id}/measurements/avg", response_model=MeasurementRead)
def avg_measurement(
    _: ReadUser, repo: ResourceRepository, start: Start = None, end: End = None
) -> MeasurementRead:
    with _store_errors():
        m = repo.avg_measurement(RangeOptions(start=start, end=end))
    return _found(m)


@router.delete(
    "/resources/{resource_id}/measurements", status_code=status.HTTP_204_NO_CONTENT
)
def delete_series(_: WriteUser, repo: ResourceRepository) -> Response:
    with _store_errors():
        repo.delete_series()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/measurements/current", response_model=list[MeasurementRead])
def multi_current(
    _: ReadUser,
    store: Annotated[MeasurementStore, Depends(get_store)],
    ids: Annotated[list[str] | None, Query()] = None,
) -> list[MeasurementRead]:
    resource_ids = [parse_resource_id(i) for i in ids] if ids else None
    with _store_errors():
        rows = multi_current_measurements(store, resource_ids)
    return [_read(m) for m in rows]


@router.get("/measurements/health", tags=["meta"])
def health(store: Annotated[MeasurementStore, Depends(get_store)]) -> dict[str, str]:
    try:
        store.ping()
    except Exception as e:  # noqa: BLE001 - expose as 503 without leaking internals
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="InfluxDB unavailable",
        ) from e
    return {"status": "ok"}
