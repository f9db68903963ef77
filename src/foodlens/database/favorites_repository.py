"""Favorited meals — keyed by (user, meal, source), synced like pantry rows."""

from typing import Iterable, Optional

from foodlens.errors import MissingIdError
from foodlens.session import UserSession
from foodlens.utils.constants import DEFAULT_FAVORITE_SOURCE
from foodlens.utils.timestamps import now_iso

from .connection import DatabaseConnection
from .models import MealFavorite, RowState, encode_json_column


def extract_meal_id(detail: dict) -> Optional[str]:
    """Meal id from a TheMealDB detail or an already-normalized record."""
    meal_id = detail.get("idMeal") or detail.get("meal_id") or detail.get("id")
    return str(meal_id) if meal_id else None


def _normalize_key(key) -> tuple[str, str, Optional[str]]:
    if isinstance(key, dict):
        return (
            str(key["meal_id"]),
            key.get("source") or DEFAULT_FAVORITE_SOURCE,
            key.get("updated_at"),
        )
    meal_id, source, *version = key
    return (
        str(meal_id),
        source or DEFAULT_FAVORITE_SOURCE,
        version[0] if version else None,
    )


class FavoritesRepository:
    """Meal favorites owned by the session's user."""

    def __init__(self, db: DatabaseConnection, session: UserSession):
        self.db = db
        self.session = session

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id

    def list_active(self) -> list[MealFavorite]:
        if not self.user_id:
            return []
        rows = self.db.query_all(
            "SELECT * FROM meal_favorites "
            "WHERE user_id = ? AND deleted = 0 "
            "ORDER BY created_at DESC",
            (self.user_id,),
        )
        return [MealFavorite.from_row(r) for r in rows]

    def get_favorite(self, meal_id: str,
                     source: str = DEFAULT_FAVORITE_SOURCE) -> Optional[MealFavorite]:
        if not self.user_id:
            return None
        row = self.db.query_one(
            "SELECT * FROM meal_favorites "
            "WHERE user_id = ? AND meal_id = ? AND source = ?",
            (self.user_id, str(meal_id), source),
        )
        return MealFavorite.from_row(row) if row else None

    def get_state(self, meal_id: str,
                  source: str = DEFAULT_FAVORITE_SOURCE) -> RowState:
        fav = self.get_favorite(meal_id, source)
        return fav.state if fav else RowState.PURGED

    def is_favorite(self, meal_id: str,
                    source: str = DEFAULT_FAVORITE_SOURCE) -> bool:
        if not self.user_id:
            return False
        row = self.db.query_one(
            "SELECT meal_id FROM meal_favorites "
            "WHERE user_id = ? AND meal_id = ? AND source = ? AND deleted = 0",
            (self.user_id, str(meal_id), source),
        )
        return row is not None

    def set_favorite(self, detail: dict, flag: bool,
                     source: str = DEFAULT_FAVORITE_SOURCE) -> bool:
        """Favorite or unfavorite a meal.

        Favoriting upserts the row with fresh title, thumbnail and full
        detail, and clears any pending delete. Unfavoriting is a soft
        delete; the row is purged after the next acknowledged push.
        """
        user_id = self.session.require_user()
        meal_id = extract_meal_id(detail or {})
        if not meal_id:
            raise MissingIdError()
        ts = now_iso()

        if flag:
            self.db.execute(
                "INSERT INTO meal_favorites "
                "(user_id, meal_id, source, title, thumb, json, "
                " created_at, updated_at, dirty, deleted) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, 0) "
                "ON CONFLICT(user_id, meal_id, source) DO UPDATE SET "
                "title = excluded.title, thumb = excluded.thumb, "
                "json = excluded.json, updated_at = excluded.updated_at, "
                "dirty = 1, deleted = 0",
                (
                    user_id,
                    meal_id,
                    source,
                    detail.get("strMeal") or detail.get("title") or "",
                    detail.get("strMealThumb") or detail.get("thumb") or "",
                    encode_json_column(detail),
                    ts,
                    ts,
                ),
            )
        else:
            self.db.execute(
                "UPDATE meal_favorites "
                "SET deleted = 1, dirty = 1, updated_at = ? "
                "WHERE user_id = ? AND meal_id = ? AND source = ?",
                (ts, user_id, meal_id, source),
            )
        return True

    def get_dirty(self) -> list[MealFavorite]:
        if not self.user_id:
            return []
        rows = self.db.query_all(
            "SELECT * FROM meal_favorites WHERE user_id = ? AND dirty = 1",
            (self.user_id,),
        )
        return [MealFavorite.from_row(r) for r in rows]

    def count_dirty(self) -> int:
        if not self.user_id:
            return 0
        row = self.db.query_one(
            "SELECT COUNT(*) AS cnt FROM meal_favorites "
            "WHERE user_id = ? AND dirty = 1",
            (self.user_id,),
        )
        return row["cnt"] if row else 0

    def mark_pushed(self, keys: Iterable):
        """Clear dirty for pushed favorites, then purge pending deletes.

        ``keys`` holds ``(meal_id, source, updated_at)`` tuples or dicts
        with those fields, as they were sent. A favorite changed after it
        was read for the push no longer matches its pushed ``updated_at``
        and stays dirty. Keys without a version match any version.
        """
        keys = [_normalize_key(k) for k in keys or []]
        if not self.user_id or not keys:
            return
        with self.db.get_connection() as conn:
            for meal_id, source, updated_at in keys:
                conn.execute(
                    "UPDATE meal_favorites SET dirty = 0 "
                    "WHERE user_id = ? AND meal_id = ? AND source = ? "
                    "AND (? IS NULL OR updated_at = ?)",
                    (self.user_id, meal_id, source, updated_at, updated_at),
                )
            for meal_id, source, updated_at in keys:
                conn.execute(
                    "DELETE FROM meal_favorites "
                    "WHERE user_id = ? AND meal_id = ? AND source = ? "
                    "AND deleted = 1 AND (? IS NULL OR updated_at = ?)",
                    (self.user_id, meal_id, source, updated_at, updated_at),
                )
