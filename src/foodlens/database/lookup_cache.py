"""TTL-bounded cache of normalized product lookups, shared by all users."""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from foodlens.config import Config
from foodlens.errors import CacheDeserializationError
from foodlens.utils.timestamps import now_iso, parse_iso

from .connection import DatabaseConnection
from .models import CachedLookup

logger = logging.getLogger(__name__)


class LookupCache:
    """Read-through store for the upc_cache table."""

    def __init__(self, db: DatabaseConnection, ttl_days: int | None = None):
        self.db = db
        self.ttl_days = Config.UPC_CACHE_TTL_DAYS if ttl_days is None else ttl_days

    def get(self, code: str, ttl_days: int | None = None) -> Optional[dict]:
        """Return the cached record for ``code`` if present and fresh.

        A ``ttl_days`` of zero or less disables expiry. Malformed JSON
        and unreadable timestamps count as a miss.
        """
        ttl = self.ttl_days if ttl_days is None else ttl_days
        row = self.db.query_one(
            "SELECT json, fetched_at FROM upc_cache WHERE upc = ?", (code,)
        )
        if row is None:
            return None

        if ttl > 0 and self._is_expired(row["fetched_at"], ttl):
            return None

        try:
            return self._decode(row["json"])
        except CacheDeserializationError as e:
            logger.debug(f"Treating cached lookup for {code} as a miss: {e}")
            return None

    def put(self, code: str, record: dict):
        """Insert or overwrite the cached record and its fetch time."""
        self.db.execute(
            "INSERT INTO upc_cache (upc, json, fetched_at) VALUES (?, ?, ?) "
            "ON CONFLICT(upc) DO UPDATE SET "
            "json = excluded.json, fetched_at = excluded.fetched_at",
            (code, json.dumps(record or {}), now_iso()),
        )

    def get_entry(self, code: str) -> Optional[CachedLookup]:
        """Raw cache row regardless of age, or None if missing or corrupt."""
        row = self.db.query_one(
            "SELECT upc, json, fetched_at FROM upc_cache WHERE upc = ?",
            (code,),
        )
        if row is None:
            return None
        try:
            record = self._decode(row["json"])
        except CacheDeserializationError:
            return None
        return CachedLookup(
            upc=row["upc"], record=record, fetched_at=row["fetched_at"]
        )

    @staticmethod
    def _is_expired(fetched_at, ttl_days: int) -> bool:
        fetched = parse_iso(fetched_at)
        if fetched is None:
            return True
        age = datetime.now(timezone.utc) - fetched
        return age > timedelta(days=ttl_days)

    @staticmethod
    def _decode(text) -> dict:
        try:
            record = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise CacheDeserializationError(str(e)) from e
        if not isinstance(record, dict):
            raise CacheDeserializationError(
                f"expected an object, got {type(record).__name__}"
            )
        return record
