"""Explicit user context threaded into repositories and sync."""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional

from foodlens.errors import NoUserError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSession:
    """The signed-in user that local reads and writes are scoped to."""

    user_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return bool(self.user_id)

    def require_user(self) -> str:
        """Return the user id or raise NoUserError."""
        if not self.user_id:
            raise NoUserError()
        return self.user_id


def start_session(db, user_id: Optional[str]) -> UserSession:
    """Begin a session and claim ownerless pantry rows for the user.

    Rows written before sign-in have no owner. Claiming them runs once
    per session start; a failure is logged and the session still starts.
    """
    from foodlens.database.pantry_repository import PantryRepository

    session = UserSession(user_id or None)
    if not session.is_active:
        return session

    try:
        claimed = PantryRepository(db, session).claim_orphans()
    except sqlite3.Error as e:
        logger.warning(f"Could not claim orphan pantry rows for {user_id}: {e}")
    else:
        if claimed:
            logger.info(f"Claimed {claimed} orphan pantry rows for {user_id}")
    return session
