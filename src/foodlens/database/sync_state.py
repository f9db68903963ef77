"""Per-user key/value store for sync cursors."""

from typing import Optional

from foodlens.utils.constants import (
    FAVS_LAST_PULL,
    PANTRY_LAST_PULL,
    PANTRY_LAST_SYNC_AT,
)

from .connection import DatabaseConnection


def cursor_key(prefix: str, user_id: str) -> str:
    """Namespace a cursor key by user, e.g. ``pantry:last_pull:<user>``."""
    return f"{prefix}:{user_id}"


class SyncStateStore:
    """Upsert-only key/value rows in the sync_state table."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.query_one("SELECT v FROM sync_state WHERE k = ?", (key,))
        return row["v"] if row else None

    def set(self, key: str, value: str):
        self.db.execute(
            "INSERT INTO sync_state (k, v) VALUES (?, ?) "
            "ON CONFLICT(k) DO UPDATE SET v = excluded.v",
            (key, value),
        )

    # ── Per-user cursors ────────────────────────────────────────
    # Without a user these read as None and writes are ignored.

    def _get_for(self, prefix: str, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        return self.get(cursor_key(prefix, user_id))

    def _set_for(self, prefix: str, user_id: Optional[str], value: str):
        if not user_id:
            return
        self.set(cursor_key(prefix, user_id), value)

    def get_pantry_last_pull(self, user_id: Optional[str]) -> Optional[str]:
        return self._get_for(PANTRY_LAST_PULL, user_id)

    def set_pantry_last_pull(self, user_id: Optional[str], value: str):
        self._set_for(PANTRY_LAST_PULL, user_id, value)

    def get_last_sync_at(self, user_id: Optional[str]) -> Optional[str]:
        return self._get_for(PANTRY_LAST_SYNC_AT, user_id)

    def set_last_sync_at(self, user_id: Optional[str], value: str):
        self._set_for(PANTRY_LAST_SYNC_AT, user_id, value)

    def get_favs_last_pull(self, user_id: Optional[str]) -> Optional[str]:
        return self._get_for(FAVS_LAST_PULL, user_id)

    def set_favs_last_pull(self, user_id: Optional[str], value: str):
        self._set_for(FAVS_LAST_PULL, user_id, value)
