"""Pantry items — CRUD and the dirty/deleted sync lifecycle."""

import time
from typing import Optional

from foodlens.session import UserSession
from foodlens.utils.constants import DEFAULT_PANTRY_UNIT
from foodlens.utils.timestamps import now_iso

from .connection import DatabaseConnection
from .models import MergeResult, PantryItem, RowState, encode_json_column


def _pushed_version(entry) -> tuple[str, Optional[str]]:
    if isinstance(entry, str):
        return entry, None
    item_id, updated_at = entry
    return item_id, updated_at


class PantryRepository:
    """Pantry rows owned by the session's user.

    Local mutations set ``dirty=1``. Deletes are soft until a push is
    acknowledged by ``mark_pushed``, which then purges the row.
    """

    def __init__(self, db: DatabaseConnection, session: UserSession):
        self.db = db
        self.session = session

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id

    # ── Reads ───────────────────────────────────────────────────

    def list_active(self) -> list[PantryItem]:
        """Non-deleted items for the user, newest first."""
        if not self.user_id:
            return []
        rows = self.db.query_all(
            "SELECT * FROM pantry_items "
            "WHERE user_id = ? AND deleted = 0 "
            "ORDER BY created_at DESC",
            (self.user_id,),
        )
        return [PantryItem.from_row(r) for r in rows]

    def get_item(self, item_id: str) -> Optional[PantryItem]:
        if not self.user_id:
            return None
        row = self.db.query_one(
            "SELECT * FROM pantry_items WHERE user_id = ? AND id = ?",
            (self.user_id, item_id),
        )
        return PantryItem.from_row(row) if row else None

    def get_state(self, item_id: str) -> RowState:
        item = self.get_item(item_id)
        return item.state if item else RowState.PURGED

    def get_dirty(self) -> list[PantryItem]:
        """Rows with unpushed local changes, including pending deletes."""
        if not self.user_id:
            return []
        rows = self.db.query_all(
            "SELECT * FROM pantry_items WHERE user_id = ? AND dirty = 1",
            (self.user_id,),
        )
        return [PantryItem.from_row(r) for r in rows]

    def count_dirty(self) -> int:
        if not self.user_id:
            return 0
        row = self.db.query_one(
            "SELECT COUNT(*) AS cnt FROM pantry_items "
            "WHERE user_id = ? AND dirty = 1",
            (self.user_id,),
        )
        return row["cnt"] if row else 0

    # ── Local mutations ─────────────────────────────────────────

    def update_quantity(self, item_id: str, new_qty: float) -> bool:
        user_id = self.session.require_user()
        self.db.execute(
            "UPDATE pantry_items SET qty = ?, updated_at = ?, dirty = 1 "
            "WHERE id = ? AND user_id = ?",
            (new_qty, now_iso(), item_id, user_id),
        )
        return True

    def soft_delete(self, item_id: str) -> bool:
        """Mark the row pending delete; it stays until a push confirms it."""
        user_id = self.session.require_user()
        self.db.execute(
            "UPDATE pantry_items SET deleted = 1, dirty = 1, updated_at = ? "
            "WHERE id = ? AND user_id = ?",
            (now_iso(), item_id, user_id),
        )
        return True

    def restore(self, item_id: str) -> bool:
        """Undo a soft delete that has not been pushed yet.

        Returns False when there is no pending-delete row to restore.
        """
        user_id = self.session.require_user()
        count = self.db.execute(
            "UPDATE pantry_items SET deleted = 0, dirty = 1, updated_at = ? "
            "WHERE id = ? AND user_id = ? AND deleted = 1",
            (now_iso(), item_id, user_id),
        )
        return count > 0

    def add_or_merge(self, product: dict, add_qty: float = 1) -> MergeResult:
        """Add one product to the pantry, merging by id or UPC.

        The id is ``"<user>|<upc>"`` when the product has a UPC and a
        time-based ``manual_`` suffix otherwise. An existing active row
        with the same id or UPC has its quantity increased instead.
        """
        user_id = self.session.require_user()
        upc = product.get("upc") or None
        base_id = upc or f"manual_{int(time.time() * 1000)}"
        item_id = f"{user_id}|{base_id}"
        add_qty = add_qty or 1
        ts = now_iso()

        with self.db.get_connection() as conn:
            existing = conn.execute(
                "SELECT id, qty FROM pantry_items "
                "WHERE user_id = ? AND deleted = 0 "
                "AND (id = ? OR (upc IS NOT NULL AND upc = ?)) "
                "LIMIT 1",
                (user_id, item_id, upc or ""),
            ).fetchone()

            if existing:
                new_qty = (existing["qty"] or 0) + add_qty
                conn.execute(
                    "UPDATE pantry_items SET qty = ?, updated_at = ?, dirty = 1 "
                    "WHERE user_id = ? AND id = ?",
                    (new_qty, ts, user_id, existing["id"]),
                )
                return MergeResult(id=existing["id"], merged=True, qty=new_qty)

            # A pending-delete row with the same id is replaced by the
            # re-added product rather than colliding on the primary key.
            conn.execute(
                "INSERT INTO pantry_items "
                "(id, upc, name, brand, qty, unit, per_serving, "
                " created_at, updated_at, user_id, dirty, deleted) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, 0) "
                "ON CONFLICT(id) DO UPDATE SET "
                "upc = excluded.upc, name = excluded.name, "
                "brand = excluded.brand, qty = excluded.qty, "
                "unit = excluded.unit, per_serving = excluded.per_serving, "
                "updated_at = excluded.updated_at, dirty = 1, deleted = 0",
                (
                    item_id,
                    upc,
                    product.get("name") or "",
                    product.get("brand") or None,
                    add_qty,
                    product.get("serving_unit") or DEFAULT_PANTRY_UNIT,
                    encode_json_column(product.get("nutrients") or {}),
                    ts,
                    ts,
                    user_id,
                ),
            )
        return MergeResult(id=item_id, merged=False, qty=add_qty)

    # ── Sync lifecycle ──────────────────────────────────────────

    def mark_pushed(self, pushed: list):
        """Clear dirty on pushed rows, then purge the ones pending delete.

        ``pushed`` holds ``(id, updated_at)`` pairs as they were sent. A
        row edited after it was read for the push has a newer
        ``updated_at`` and stays dirty for the next push. A bare id
        matches whatever the row's version. Both steps run in one
        transaction; re-running with the same entries is harmless.
        """
        if not self.user_id or not pushed:
            return
        versions = [_pushed_version(p) for p in pushed]
        with self.db.get_connection() as conn:
            for item_id, updated_at in versions:
                conn.execute(
                    "UPDATE pantry_items SET dirty = 0 "
                    "WHERE user_id = ? AND id = ? "
                    "AND (? IS NULL OR updated_at = ?)",
                    (self.user_id, item_id, updated_at, updated_at),
                )
            for item_id, updated_at in versions:
                conn.execute(
                    "DELETE FROM pantry_items "
                    "WHERE user_id = ? AND id = ? AND deleted = 1 "
                    "AND (? IS NULL OR updated_at = ?)",
                    (self.user_id, item_id, updated_at, updated_at),
                )

    def claim_orphans(self) -> int:
        """Assign rows with no owner to the session user.

        Returns the number of rows claimed.
        """
        user_id = self.session.require_user()
        return self.db.execute(
            "UPDATE pantry_items SET user_id = ? "
            "WHERE user_id IS NULL OR user_id = ''",
            (user_id,),
        )
