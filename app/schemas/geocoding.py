"""
Geocoding Schema

Structured addresses returned by reverse geocoding.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.geo import Coordinates


class Address(BaseModel):
    """A structured address for a coordinate."""

    address_lines: List[str] = Field(default_factory=list, description="Formatted address lines")
    road: Optional[str] = None
    house_number: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    def get_address_line(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.address_lines):
            return self.address_lines[index]
        return None
