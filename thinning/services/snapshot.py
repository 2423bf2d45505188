from __future__ import annotations

from collections.abc import Iterable

from thinning.models.measurement import Measurement, ResourceId, measurement_from_point
from thinning.repositories.base import MeasurementStore
from thinning.repositories.flux import resource_id_from_series, series_name


def multi_current_measurements(
    store: MeasurementStore,
    ids: ResourceId | Iterable[ResourceId] | None = None,
) -> list[Measurement]:
    """Most recent measurement of many resources in one store round-trip.

    Without ``ids`` every series the store knows is reported. With ``ids``
    duplicates are dropped and ids without a series are skipped silently, so
    the result can be shorter than the request.
    """
    latest = store.query_last_all()
    prefix = store.series_prefix

    if not latest:
        return []

    results: list[Measurement] = []
    if ids is None:
        for series, row in latest.items():
            resource_id = resource_id_from_series(series, prefix)
            if resource_id is None:
                continue
            results.append(measurement_from_point(resource_id, row))
        return results

    if isinstance(ids, (int, str)):
        ids = [ids]

    # 1 and "1" name the same series.
    requested: dict[str, ResourceId] = {}
    for resource_id in ids:
        requested.setdefault(series_name(resource_id, prefix), resource_id)
    for series, resource_id in requested.items():
        row = latest.get(series)
        if row is None:
            continue
        results.append(measurement_from_point(resource_id, row))
    return results
