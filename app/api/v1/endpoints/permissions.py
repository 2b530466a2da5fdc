"""
Permissions API Endpoint

Lets the device report permission dialog answers and settings changes,
and exposes the current permission state.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.permission import (
    Permission,
    PermissionDialogResponse,
    PermissionSettingUpdate,
    PermissionStateResponse,
    PermissionStatus,
)
from app.services.location_screen import LocationScreen, get_location_screen
from app.services.permission_gate import HostPermissionGate, PermissionDialogError
from app.services.permission_registry import PermissionRegistry, get_permission_registry

logger = logging.getLogger(__name__)

router = APIRouter()


def _permission_state(
    screen: LocationScreen, registry: PermissionRegistry
) -> PermissionStateResponse:
    gate = screen.permission_gate
    return PermissionStateResponse(
        has_location_permission=gate.has_location_permission(),
        should_show_rationale=gate.should_show_rationale(),
        dialog_open=gate.dialog_open,
        permissions=[
            PermissionStatus(
                permission=permission,
                granted=registry.is_granted(permission),
                should_show_rationale=registry.should_show_rationale(permission),
            )
            for permission in Permission
        ],
    )


@router.get("", response_model=PermissionStateResponse)
async def get_permissions(
    screen: LocationScreen = Depends(get_location_screen),
    registry: PermissionRegistry = Depends(get_permission_registry),
):
    """Current location permission state."""
    return _permission_state(screen, registry)


@router.post("/dialog", response_model=PermissionStateResponse)
async def answer_dialog(
    response: PermissionDialogResponse,
    screen: LocationScreen = Depends(get_location_screen),
    registry: PermissionRegistry = Depends(get_permission_registry),
):
    """
    Answer the open permission dialog.

    Raises:
        HTTPException: 409 if no permission dialog is open
    """
    gate = screen.permission_gate
    if not isinstance(gate, HostPermissionGate):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Permission dialogs are not answered through this API",
        )
    try:
        gate.answer(response.answers)
    except PermissionDialogError as e:
        logger.warning("Permission dialog answer without open dialog")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return _permission_state(screen, registry)


@router.put("/{permission}", response_model=PermissionStateResponse)
async def update_permission(
    permission: Permission,
    update: PermissionSettingUpdate,
    screen: LocationScreen = Depends(get_location_screen),
    registry: PermissionRegistry = Depends(get_permission_registry),
):
    """Apply a permission change made in the system settings."""
    registry.set_granted(permission, update.granted)
    return _permission_state(screen, registry)
