from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from thinning.context import ThinningContext
from thinning.core.config import Settings
from thinning.core.security import get_password_hash
from thinning.factory import create_app
from thinning.services.measurements import MeasurementRepository
from thinning.services.notify import WriteNotifier
from tests.fakes import FakeMeasurementStore


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        secret_key="test_secret_key_must_be_32_chars_minimum",
        admin_username="admin",
        admin_password_hash=get_password_hash("password"),
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        influx_url="http://example.com:8086",
        influx_token="test-token-1234567890",
        influx_org="test",
        influx_bucket="test",
        influx_timeout_ms=5000,
    )


@pytest.fixture()
def store() -> FakeMeasurementStore:
    return FakeMeasurementStore()


@pytest.fixture()
def notifier() -> WriteNotifier:
    return WriteNotifier()


@pytest.fixture()
def context(
    settings: Settings, store: FakeMeasurementStore, notifier: WriteNotifier
) -> ThinningContext:
    return ThinningContext(settings, store=store, notifier=notifier)


@pytest.fixture()
def resource(store: FakeMeasurementStore, notifier: WriteNotifier) -> MeasurementRepository:
    repo = MeasurementRepository("test", store=store, notifier=notifier)
    repo.delete_series()
    return repo


@pytest.fixture()
def client(settings: Settings, context: ThinningContext) -> TestClient:
    app = create_app(settings, context=context)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def token(client: TestClient) -> str:
    resp = client.post(
        "/api/v1/auth/token",
        data={"username": "admin", "password": "password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest.fixture()
def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def t() -> datetime:
    return datetime(2002, 10, 31, 2, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def t2() -> datetime:
    return datetime(2002, 10, 31, 1, 0, 0, tzinfo=timezone.utc)
