"""
Permission gate.

Checks and requests the two runtime location permissions. Requests are
asynchronous: the gate opens a dialog and the host answers it later, at
which point the caller's callback receives the per-permission outcome.
Denial is a normal outcome, never an exception.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, Optional, Tuple

from app.schemas.permission import LOCATION_PERMISSIONS, Permission, PermissionAnswer
from app.services.permission_registry import PermissionRegistry, permission_registry

logger = logging.getLogger(__name__)

PermissionCallback = Callable[[Dict[Permission, bool]], None]


class PermissionDialogError(Exception):
    """Raised when a dialog answer arrives but no dialog is open."""


class PermissionGate(ABC):
    """Capability interface for runtime location permissions."""

    @abstractmethod
    def has_location_permission(self) -> bool:
        """True only if both fine and coarse location are granted right now."""

    @abstractmethod
    def request_permissions(self, callback: PermissionCallback) -> None:
        """Ask the user for the location permissions; report through callback."""

    @abstractmethod
    def should_show_rationale(self) -> bool:
        """True if the host says a rationale should be shown for either permission."""

    @property
    def dialog_open(self) -> bool:
        return False

    def cancel_pending(self) -> None:
        """Drop any open dialog without invoking its callback."""


class HostPermissionGate(PermissionGate):
    """
    Permission gate backed by the host permission registry.

    Nothing is cached: every check goes back to the registry, since the user
    may change permissions in the system settings at any time.
    """

    def __init__(
        self,
        registry: PermissionRegistry = permission_registry,
        permissions: Iterable[Permission] = LOCATION_PERMISSIONS,
    ):
        self._registry = registry
        self._permissions: Tuple[Permission, ...] = tuple(permissions)
        self._pending_callback: Optional[PermissionCallback] = None

    @property
    def permissions(self) -> Tuple[Permission, ...]:
        return self._permissions

    @property
    def dialog_open(self) -> bool:
        return self._pending_callback is not None

    def has_location_permission(self) -> bool:
        return all(self._registry.is_granted(p) for p in self._permissions)

    def should_show_rationale(self) -> bool:
        return any(self._registry.should_show_rationale(p) for p in self._permissions)

    def permission_results(self) -> Dict[Permission, bool]:
        """Current grant state of each permission."""
        return {p: self._registry.is_granted(p) for p in self._permissions}

    def request_permissions(self, callback: PermissionCallback) -> None:
        """
        Open a permission dialog for the permissions not yet granted.

        If everything is already granted, or the user blocked every missing
        permission, the callback runs immediately and no dialog is shown.
        A request made while a dialog is already open takes over that dialog.

        Args:
            callback: Receives a mapping of permission to granted flag
        """
        missing = [p for p in self._permissions if not self._registry.is_granted(p)]
        if not missing:
            callback(self.permission_results())
            return

        if not any(self._registry.can_prompt(p) for p in missing):
            logger.info("Permission dialog suppressed, user blocked further prompts")
            callback(self.permission_results())
            return

        if self._pending_callback is not None:
            logger.debug("Permission dialog already open, replacing callback")
        self._pending_callback = callback
        logger.info("Permission dialog opened for %s", ", ".join(p.value for p in missing))

    def answer(self, answers: Dict[Permission, PermissionAnswer]) -> Dict[Permission, bool]:
        """
        Apply the user's answers to the open dialog and fire its callback.

        Permissions without an answer are treated as a dismissed dialog:
        they stay denied but no denial is recorded.

        Args:
            answers: User choice per permission

        Returns:
            The grant state passed to the callback

        Raises:
            PermissionDialogError: If no dialog is open
        """
        callback = self._pending_callback
        if callback is None:
            raise PermissionDialogError("No permission dialog is open")
        self._pending_callback = None

        for permission in self._permissions:
            answer = answers.get(permission)
            if answer is None or self._registry.is_granted(permission):
                continue
            self._registry.record_answer(permission, answer.granted, answer.dont_ask_again)

        results = self.permission_results()
        callback(results)
        return results

    def cancel_pending(self) -> None:
        if self._pending_callback is not None:
            logger.debug("Permission dialog dismissed")
        self._pending_callback = None
