"""Location report model."""

from __future__ import annotations

import dataclasses
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


@dataclasses.dataclass(frozen=True)
class Coordinate:
    """A WGS84 position in decimal degrees."""

    latitude: float
    longitude: float


class LocationReport(BaseModel):
    """A single position fix sent by the tracked device.

    Only ``latitude``, ``longitude`` and ``timestamp_value`` are required.
    The metadata fields stay ``None`` when the device did not send them;
    they are never defaulted to ``0``, which would look like a real reading.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, within [-90, 90].
    longitude : float
        Longitude in degrees, within [-180, 180].
    timestamp_value : int
        Device fix time in milliseconds since the Unix epoch.
    accuracy : float or None
        Horizontal accuracy in meters.
    altitude : float or None
        Altitude in meters.
    speed : float or None
        Ground speed as reported by the device.
    provider : str or None
        Location provider name (``"gps"``, ``"network"``, ...).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        allow_inf_nan=False,
    )

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    timestamp_value: int = Field(gt=0)
    accuracy: float | None = None
    altitude: float | None = None
    speed: float | None = None
    provider: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Treat JSON ``null`` as an absent key."""
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}

    @field_validator("latitude", "longitude", "timestamp_value", "accuracy", "altitude", "speed", mode="before")
    @classmethod
    def _reject_booleans(cls, value: Any) -> Any:
        # bool is an int subclass and would otherwise coerce to 0/1.
        if isinstance(value, bool):
            raise ValueError("boolean is not a number")
        return value

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the wire shape used by UDP and HTTP."""
        return self.model_dump(mode="json")
