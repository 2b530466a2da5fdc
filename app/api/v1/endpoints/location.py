"""
Location API Endpoint

Provides REST API for the location screen: rendering it, pressing the
"Get Location" button, and receiving position fixes from the device.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.geo import Fix
from app.schemas.location import DeviceFix, DeviceFixResponse, ScreenView
from app.services.location_providers import DeviceLocationProvider, get_device_location_provider
from app.services.location_screen import LocationScreen, get_location_screen

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/screen", response_model=ScreenView)
async def get_screen(
    wait_for_address: bool = False,
    screen: LocationScreen = Depends(get_location_screen),
):
    """
    Render the location screen.

    Args:
        wait_for_address: Wait for the reverse geocoding result instead of
            returning a placeholder while it is being looked up
        screen: Location screen

    Returns:
        ScreenView with the current location, address and any pending message
    """
    try:
        return await screen.render(wait_for_address=wait_for_address)
    except Exception as e:
        logger.exception("Unexpected error while rendering location screen")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while rendering the location screen",
        ) from e


@router.post("/request", response_model=ScreenView)
async def request_location(screen: LocationScreen = Depends(get_location_screen)):
    """
    Press the "Get Location" button.

    Starts location updates when permission is granted, otherwise opens a
    permission dialog that the device answers through /permissions/dialog.
    """
    logger.info("Get Location pressed")
    try:
        screen.on_get_location()
        return await screen.render()
    except Exception as e:
        logger.exception("Unexpected error while requesting location")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while requesting location",
        ) from e


@router.post("/fixes", response_model=DeviceFixResponse, status_code=status.HTTP_202_ACCEPTED)
async def push_fix(
    fix: DeviceFix,
    device: DeviceLocationProvider = Depends(get_device_location_provider),
):
    """
    Receive a position fix from the device GPS.

    The fix is dropped when no subscription is listening to the device.
    """
    delivered = device.push(
        Fix(
            latitude=fix.coordinates.latitude,
            longitude=fix.coordinates.longitude,
            accuracy=fix.accuracy,
            provider=device.name,
        )
    )
    if not delivered:
        logger.debug("Device fix received with no active subscription")
    return DeviceFixResponse(accepted=delivered > 0, subscribers=delivered)
