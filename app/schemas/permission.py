"""
Permission Schema

Runtime location permissions and the answers to a permission dialog.
"""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


class Permission(str, Enum):
    """Location permissions the screen needs."""

    FINE_LOCATION = "android.permission.ACCESS_FINE_LOCATION"
    COARSE_LOCATION = "android.permission.ACCESS_COARSE_LOCATION"


LOCATION_PERMISSIONS = (Permission.FINE_LOCATION, Permission.COARSE_LOCATION)


class PermissionAnswer(BaseModel):
    """The user's choice for one permission in the dialog."""

    granted: bool
    dont_ask_again: bool = Field(False, description="User asked not to be prompted again")


class PermissionDialogResponse(BaseModel):
    """Answers for an open permission dialog, keyed by permission."""

    answers: Dict[Permission, PermissionAnswer]


class PermissionSettingUpdate(BaseModel):
    """Out-of-band change made in the system settings."""

    granted: bool


class PermissionStatus(BaseModel):
    permission: Permission
    granted: bool
    should_show_rationale: bool


class PermissionStateResponse(BaseModel):
    has_location_permission: bool
    should_show_rationale: bool
    dialog_open: bool
    permissions: List[PermissionStatus]
