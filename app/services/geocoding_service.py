"""
Geocoding Service

Reverse geocoding: turns a coordinate into a human-readable address using
the Nominatim API (OpenStreetMap).

API Endpoint: https://nominatim.openstreetmap.org/reverse
Documentation: https://nominatim.org/release-docs/latest/api/Reverse/
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import httpx

from app.core.config import settings
from app.schemas.geo import Coordinates
from app.schemas.geocoding import Address
from app.schemas.health import ServiceHealth

logger = logging.getLogger(__name__)


class GeocodingServiceError(Exception):
    """Base exception for geocoding service errors."""


class GeocodingAPIError(GeocodingServiceError):
    """Raised when the geocoding API returns an error status."""


class GeocodingNetworkError(GeocodingServiceError):
    """Raised when network communication fails."""


class GeocodingDataError(GeocodingServiceError):
    """Raised when response data cannot be parsed."""


class Geocoder(ABC):
    """Capability interface for a reverse geocoder."""

    def __init__(self, not_found_message: str = settings.ADDRESS_NOT_FOUND):
        self.not_found_message = not_found_message

    @abstractmethod
    async def get_from_location(
        self, latitude: float, longitude: float, max_results: int = 1
    ) -> List[Address]:
        """
        Look up addresses near a position.

        Returns:
            Zero or more addresses, best match first

        Raises:
            GeocodingServiceError: If the lookup could not be performed
        """

    async def reverse_geocode(self, coordinates: Coordinates) -> str:
        """
        Resolve a coordinate to its first address line.

        A miss is not an error: when nothing matches, or the lookup fails,
        the not-found message is returned instead.

        Args:
            coordinates: Position to look up

        Returns:
            The first address line, or the not-found message
        """
        try:
            addresses = await self.get_from_location(
                coordinates.latitude, coordinates.longitude, settings.GEOCODER_MAX_RESULTS
            )
        except GeocodingServiceError as e:
            logger.warning("Reverse geocoding failed for %s: %s", coordinates, str(e))
            return self.not_found_message

        if addresses:
            line = addresses[0].get_address_line(0)
            if line:
                return line
        return self.not_found_message


class NominatimGeocoder(Geocoder):
    """
    Reverse geocoder backed by the Nominatim API.
    """

    def __init__(self, not_found_message: str = settings.ADDRESS_NOT_FOUND):
        super().__init__(not_found_message)
        self._api_url = settings.GEOCODER_API_URL
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the HTTP client for the Nominatim API.

        Returns:
            httpx.AsyncClient instance for making requests to Nominatim.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                timeout=settings.GEOCODER_TIMEOUT,
                headers={"User-Agent": settings.GEOCODER_USER_AGENT},
            )
        return self._client

    async def get_from_location(
        self, latitude: float, longitude: float, max_results: int = 1
    ) -> List[Address]:
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "jsonv2",
            "addressdetails": 1,
            "accept-language": settings.GEOCODER_LANGUAGE,
        }

        try:
            client = self._get_client()
            response = await client.get("/reverse", params=params)

            if response.status_code != 200:
                raise GeocodingAPIError(
                    f"Nominatim returned status code: {response.status_code}"
                )

            return self._parse_addresses(response.json())[:max_results]

        except GeocodingServiceError:
            raise

        except httpx.TimeoutException as e:
            logger.error("Request to Nominatim timed out")
            raise GeocodingNetworkError("Request timed out") from e

        except httpx.HTTPError as e:
            logger.error("Network error while contacting Nominatim: %s", str(e))
            raise GeocodingNetworkError(f"Network error: {str(e)}") from e

        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.error("Failed to parse Nominatim response: %s", str(e))
            raise GeocodingDataError(f"Invalid response data: {str(e)}") from e

    def _parse_addresses(self, data: Dict) -> List[Address]:
        """
        Parse a Nominatim reverse response into addresses.

        Nominatim answers a miss with {"error": "Unable to geocode"}.
        """
        if not isinstance(data, dict) or "error" in data or not data.get("display_name"):
            return []

        details = data.get("address") or {}
        coordinates = None
        if data.get("lat") is not None and data.get("lon") is not None:
            coordinates = Coordinates(latitude=float(data["lat"]), longitude=float(data["lon"]))

        return [
            Address(
                address_lines=[data["display_name"]],
                road=details.get("road"),
                house_number=details.get("house_number"),
                city=details.get("city") or details.get("town") or details.get("village"),
                postcode=details.get("postcode"),
                state=details.get("state"),
                country=details.get("country"),
                country_code=details.get("country_code"),
                coordinates=coordinates,
            )
        ]

    async def health_check(self) -> ServiceHealth:
        """
        Perform a health check of the Nominatim API.

        Returns:
            ServiceHealth indicating the health status of the geocoder.
        """
        try:
            client = self._get_client()
            response = await client.get("/status", params={"format": "json"})

            if response.status_code == 200:
                return ServiceHealth(
                    healthy=True,
                    message="Nominatim API is responding",
                )
            return ServiceHealth(
                healthy=False,
                message=f"Nominatim API returned status code: {response.status_code}",
            )

        except httpx.TimeoutException:
            return ServiceHealth(
                healthy=False,
                message="Nominatim API request timed out",
            )
        except Exception as e:  # pylint: disable=broad-except
            return ServiceHealth(
                healthy=False,
                message=f"Nominatim API check failed: {str(e)}",
            )

    async def close(self):
        """
        Close the HTTP client and cleanup resources.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Singleton instance for dependency injection
geocoding_service = NominatimGeocoder()
