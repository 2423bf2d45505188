from __future__ import annotations

from influxdb_client import InfluxDBClient

from thinning.core.config import Settings


def create_influx_client(settings: Settings) -> InfluxDBClient:
    # Connection settings are only validated here; the first query reaches
    # the server.
    return InfluxDBClient(
        url=str(settings.influx_url),
        token=settings.influx_token,
        org=settings.influx_org,
        timeout=settings.influx_timeout_ms,
    )
