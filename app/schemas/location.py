"""
Location Schema

Pydantic models for location requests, device fixes and the rendered screen.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.geo import Coordinates


class LocationPriority(str, Enum):
    """Accuracy/power trade-off requested from the location provider."""

    HIGH_ACCURACY = "HIGH_ACCURACY"
    BALANCED_POWER_ACCURACY = "BALANCED_POWER_ACCURACY"
    LOW_POWER = "LOW_POWER"
    PASSIVE = "PASSIVE"


class LocationRequest(BaseModel):
    """Parameters of a standing location subscription."""

    priority: LocationPriority = LocationPriority.HIGH_ACCURACY
    interval_ms: int = Field(1000, gt=0, description="Minimum update interval in milliseconds")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


class DeviceFix(BaseModel):
    """A position fix pushed by the device."""

    coordinates: Coordinates
    accuracy: Optional[float] = Field(None, ge=0.0, description="Horizontal accuracy in meters")


class DeviceFixResponse(BaseModel):
    accepted: bool
    subscribers: int


class ScreenView(BaseModel):
    """Everything the location screen displays."""

    location_text: str
    address_text: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    button_label: str = "Get Location"
    message: Optional[str] = Field(None, description="Transient toast message, shown once")
    permission_dialog_open: bool = False
    updates_active: bool = False
