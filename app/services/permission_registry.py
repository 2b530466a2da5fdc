"""
Permission registry service.

Host-side record of which runtime permissions the user granted. This is the
single source of truth for permission state: every query opens a fresh
session so changes made out-of-band (e.g. revoking in system settings) are
seen immediately.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.db.database import SessionLocal
from app.models.permission_grant import PermissionGrant
from app.schemas.permission import Permission

logger = logging.getLogger(__name__)

# After this many denials the host stops showing the dialog, as if the user
# had ticked "don't ask again".
MAX_PROMPT_DENIALS = 2


class PermissionRegistry:
    """Persistent grant state for runtime permissions."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    @staticmethod
    def _get_grant(db: Session, permission: Permission) -> Optional[PermissionGrant]:
        return (
            db.query(PermissionGrant)
            .filter(PermissionGrant.permission == permission.value)
            .first()
        )

    def _get_or_create_grant(self, db: Session, permission: Permission) -> PermissionGrant:
        grant = self._get_grant(db, permission)
        if grant is None:
            grant = PermissionGrant(permission=permission.value)
            db.add(grant)
        return grant

    def is_granted(self, permission: Permission) -> bool:
        """
        Check whether a permission is currently granted.

        Args:
            permission: Permission to check

        Returns:
            True if granted, False if denied or never requested
        """
        db = self._session_factory()
        try:
            grant = self._get_grant(db, permission)
            return bool(grant is not None and grant.granted)
        finally:
            db.close()

    def should_show_rationale(self, permission: Permission) -> bool:
        """
        Whether the UI should explain why the permission is needed.

        True when the user denied the permission before but can still be
        asked again.
        """
        db = self._session_factory()
        try:
            grant = self._get_grant(db, permission)
            if grant is None or grant.granted:
                return False
            return grant.denial_count > 0 and not grant.dont_ask_again
        finally:
            db.close()

    def can_prompt(self, permission: Permission) -> bool:
        """Whether a permission dialog may still be shown for this permission."""
        db = self._session_factory()
        try:
            grant = self._get_grant(db, permission)
            return grant is None or not grant.dont_ask_again
        finally:
            db.close()

    def record_answer(self, permission: Permission, granted: bool, dont_ask_again: bool = False) -> None:
        """
        Record the user's answer to a permission dialog.

        Args:
            permission: Permission that was asked for
            granted: Whether the user allowed it
            dont_ask_again: Whether the user blocked future dialogs
        """
        db = self._session_factory()
        try:
            grant = self._get_or_create_grant(db, permission)
            if granted:
                grant.granted = True
                grant.denial_count = 0
                grant.dont_ask_again = False
            else:
                grant.granted = False
                grant.denial_count = (grant.denial_count or 0) + 1
                grant.dont_ask_again = dont_ask_again or grant.denial_count >= MAX_PROMPT_DENIALS
            denial_count, blocked = grant.denial_count, grant.dont_ask_again
            db.commit()
            logger.info(
                "Permission %s %s (denials=%s, dont_ask_again=%s)",
                permission.value,
                "granted" if granted else "denied",
                denial_count,
                blocked,
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def set_granted(self, permission: Permission, granted: bool) -> None:
        """
        Apply a change made in the system settings.

        Granting from settings clears the denial history; revoking keeps it.
        """
        db = self._session_factory()
        try:
            grant = self._get_or_create_grant(db, permission)
            grant.granted = granted
            if granted:
                grant.denial_count = 0
                grant.dont_ask_again = False
            db.commit()
            logger.info(
                "Permission %s %s from settings",
                permission.value,
                "granted" if granted else "revoked",
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


# Singleton instance for dependency injection
permission_registry = PermissionRegistry()


def get_permission_registry() -> PermissionRegistry:
    return permission_registry
