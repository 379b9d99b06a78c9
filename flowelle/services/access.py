"""Ownership checks applied before any read or write of user-owned data."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flowelle.errors import AuthorizationError

if TYPE_CHECKING:
    from flowelle.dependencies import AuthContext

logger = logging.getLogger("flowelle.access")


def ensure_owner(auth: AuthContext, owner_id: int, message: str = "Access denied") -> None:
    """Raise AuthorizationError unless ``auth`` is the stored owner."""
    if auth.user_id != owner_id:
        logger.warning(
            "User %s denied access to a resource owned by user %s", auth.user_id, owner_id
        )
        raise AuthorizationError(message)


def ensure_same_email(auth: AuthContext, email: str, message: str = "Access denied") -> None:
    if auth.email.casefold() != email.strip().casefold():
        logger.warning("User %s denied access to another account's email", auth.user_id)
        raise AuthorizationError(message)
