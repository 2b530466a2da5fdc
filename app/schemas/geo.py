"""
Location and Coordinate Type Definitions

Pydantic models for representing geographic coordinates and the raw
position fixes delivered by location providers.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0


def is_within_bounds(latitude: float, longitude: float) -> bool:
    """Return True if the pair is a finite, in-range latitude/longitude."""
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return MIN_LATITUDE <= latitude <= MAX_LATITUDE and MIN_LONGITUDE <= longitude <= MAX_LONGITUDE


class Coordinates(BaseModel):
    """
    Geographic coordinates (latitude and longitude).

    Immutable and hashable, so a coordinate can key a lookup cache.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    latitude: float = Field(..., ge=MIN_LATITUDE, le=MAX_LATITUDE, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=MIN_LONGITUDE, le=MAX_LONGITUDE, description="Longitude in decimal degrees")

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v: float) -> float:
        """Ensure latitude is within valid range."""
        if not MIN_LATITUDE <= v <= MAX_LATITUDE:
            raise ValueError("Latitude must be between -90 and 90 degrees")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v: float) -> float:
        """Ensure longitude is within valid range."""
        if not MIN_LONGITUDE <= v <= MAX_LONGITUDE:
            raise ValueError("Longitude must be between -180 and 180 degrees")
        return v

    def __str__(self) -> str:
        return f"({self.latitude}, {self.longitude})"


class Fix(BaseModel):
    """
    A single position sample reported by a location provider.

    Fixes are not range-checked: providers pass on whatever the platform
    reported and the location source decides whether to keep it.
    """

    latitude: float
    longitude: float
    accuracy: Optional[float] = Field(None, description="Horizontal accuracy in meters")
    provider: str = Field("unknown", description="Name of the provider that produced the fix")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_coordinates(self) -> Coordinates:
        """Build a validated Coordinates; raises ValueError when out of range."""
        return Coordinates(latitude=self.latitude, longitude=self.longitude)
