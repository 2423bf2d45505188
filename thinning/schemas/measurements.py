from __future__ import annotations

import math
from datetime import datetime, timezone

from pydantic import BaseModel, field_validator

RESOURCE_ID_PATTERN = r"^[a-zA-Z0-9][a-zA-Z0-9_-]{0,63}$"


class MeasurementCreate(BaseModel):
    value: float
    time: datetime | None = None

    @field_validator("time")
    @classmethod
    def _time_to_utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("value")
    @classmethod
    def _validate_value(cls, v: float) -> float:
        if not math.isfinite(float(v)):
            raise ValueError("Value must be a finite number.")
        return v


class MeasurementWriteResponse(BaseModel):
    resource_id: int | str
    value: float
    written_at: datetime


class MeasurementRead(BaseModel):
    resource_id: int | str
    value: float
    time: datetime | None = None
