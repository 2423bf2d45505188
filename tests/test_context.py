from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from thinning.context import ThinningContext
from thinning.core.config import Settings, get_settings
from thinning.core.errors import ConfigurationError
from thinning.models.measurement import MeasurementDTO
from thinning.repositories.influx import InfluxMeasurementStore
from tests.fakes import FakeMeasurementStore


def test_client_is_created_once_and_closed(settings: Settings) -> None:
    client = MagicMock()
    with patch("thinning.context.create_influx_client", return_value=client) as factory:
        context = ThinningContext(settings)
        factory.assert_not_called()

        first = context.store
        second = context.resource(1)
        assert isinstance(first, InfluxMeasurementStore)
        assert context.store is first
        assert second.series == "r1"
        factory.assert_called_once_with(settings)

        context.close()
        client.close.assert_called_once()


def test_context_manager_closes(settings: Settings) -> None:
    client = MagicMock()
    with patch("thinning.context.create_influx_client", return_value=client):
        with ThinningContext(settings) as context:
            context.store
    client.close.assert_called_once()


def test_bad_configuration_surfaces_on_first_use(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("THINNING_SECRET_KEY", raising=False)
    monkeypatch.delenv("THINNING_INFLUX_TOKEN", raising=False)
    get_settings.cache_clear()
    context = ThinningContext()
    try:
        with pytest.raises(ConfigurationError):
            context.resource(1)
    finally:
        get_settings.cache_clear()


def test_resource_uses_configured_tolerance(settings: Settings, store: FakeMeasurementStore) -> None:
    settings = settings.model_copy(update={"nearest_tolerance_seconds": 60})
    context = ThinningContext(settings, store=store)
    repo = context.resource(5)
    repo.add_measurement(1.0, datetime(2020, 1, 1, 0, 0, 0))
    assert repo.measurement(datetime(2020, 1, 1, 0, 0, 59)) is not None
    assert repo.measurement(datetime(2020, 1, 1, 0, 2, 0)) is None


def test_on_write_and_delete(context: ThinningContext, store: FakeMeasurementStore) -> None:
    received: list[MeasurementDTO] = []
    context.on_write(received.append)
    context.resource(1).add_measurement(2.0)
    context.resource(2).add_measurement(3.0)
    assert [d.resource_id for d in received] == [1, 2]

    context.delete_series(1)
    assert [m.resource_id for m in context.multi_current_measurements()] == [2]

    context.drop_all()
    assert context.multi_current_measurements() == []
