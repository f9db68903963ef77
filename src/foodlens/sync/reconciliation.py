"""Merging remote rows into local tables.

A remote row is applied with whole-row last-writer-wins, with one
exception: a local row that is dirty and strictly newer than the
incoming row is left alone until it has been pushed. Remote deletions
always win and are applied as hard deletes.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable

from foodlens.database.connection import DatabaseConnection
from foodlens.database.models import encode_json_column
from foodlens.utils.constants import DEFAULT_FAVORITE_SOURCE
from foodlens.utils.timestamps import is_after, now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSchema:
    """How remote rows of one synced table map onto local columns."""

    table: str
    key_columns: tuple[str, ...]
    # remote row -> key values in key_columns order
    extract_key: Callable[[dict], tuple]
    # remote row -> {column: value} for every mutable column
    map_fields: Callable[[dict], dict]
    # remote row -> (created_at, updated_at)
    timestamps: Callable[[dict], tuple]

    @property
    def key_clause(self) -> str:
        return " AND ".join(f"{c} = ?" for c in ("user_id", *self.key_columns))


def _pantry_key(row: dict) -> tuple:
    return (row["id"],)


def _pantry_fields(row: dict) -> dict:
    return {
        "upc": row.get("upc") or None,
        "name": row.get("name") or "",
        "brand": row.get("brand") or None,
        "qty": row.get("qty") or 0,
        "unit": row.get("unit") or None,
        "per_serving": encode_json_column(row.get("per_serving") or {}),
    }


def _favorite_key(row: dict) -> tuple:
    return (str(row["meal_id"]), row.get("source") or DEFAULT_FAVORITE_SOURCE)


def _favorite_fields(row: dict) -> dict:
    detail = row.get("json")
    return {
        "title": row.get("title") or "",
        "thumb": row.get("thumb") or "",
        "json": encode_json_column(detail) if detail else "{}",
    }


def _row_timestamps(row: dict) -> tuple:
    updated_at = row.get("updated_at") or now_iso()
    return row.get("created_at") or updated_at, updated_at


PANTRY_SCHEMA = TableSchema(
    table="pantry_items",
    key_columns=("id",),
    extract_key=_pantry_key,
    map_fields=_pantry_fields,
    timestamps=_row_timestamps,
)

FAVORITES_SCHEMA = TableSchema(
    table="meal_favorites",
    key_columns=("meal_id", "source"),
    extract_key=_favorite_key,
    map_fields=_favorite_fields,
    timestamps=_row_timestamps,
)


class ReconciliationEngine:
    """Applies pulled rows to a local table, one row at a time, in order."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def apply(self, user_id: str | None, rows: list[dict],
              schema: TableSchema) -> dict:
        """Apply ``rows`` for ``user_id`` and return per-outcome counts."""
        summary = {"deleted": 0, "inserted": 0, "updated": 0, "skipped": 0}
        if not user_id or not rows:
            return summary

        with self.db.get_connection() as conn:
            for row in rows:
                outcome = self._apply_row(conn, user_id, row, schema)
                summary[outcome] += 1

        logger.debug(f"Applied {len(rows)} rows to {schema.table}: {summary}")
        return summary

    def _apply_row(self, conn, user_id: str, row: dict,
                   schema: TableSchema) -> str:
        key_params = (user_id, *schema.extract_key(row))

        if row.get("deleted"):
            conn.execute(
                f"DELETE FROM {schema.table} "  # noqa: S608
                f"WHERE {schema.key_clause}",
                key_params,
            )
            return "deleted"

        created_at, updated_at = schema.timestamps(row)
        fields = schema.map_fields(row)
        local = conn.execute(
            f"SELECT updated_at, dirty FROM {schema.table} "  # noqa: S608
            f"WHERE {schema.key_clause}",
            key_params,
        ).fetchone()

        if local is None:
            columns = ["user_id", *schema.key_columns, *fields,
                       "created_at", "updated_at", "dirty", "deleted"]
            values = [*key_params, *fields.values(),
                      created_at, updated_at, 0, 0]
            placeholders = ", ".join("?" for _ in columns)
            try:
                conn.execute(
                    f"INSERT INTO {schema.table} "  # noqa: S608
                    f"({', '.join(columns)}) VALUES ({placeholders})",
                    values,
                )
            except sqlite3.IntegrityError as e:
                # The key is taken by a row this user does not own
                logger.warning(
                    f"Skipped pulled {schema.table} row {key_params[1:]}: {e}"
                )
                return "skipped"
            return "inserted"

        local_newer = (
            local["dirty"] == 1 and is_after(local["updated_at"], updated_at)
        )
        if local_newer:
            return "skipped"

        set_clause = ", ".join(f"{c} = ?" for c in fields)
        conn.execute(
            f"UPDATE {schema.table} SET {set_clause}, "  # noqa: S608
            f"updated_at = ?, dirty = 0, deleted = 0 "
            f"WHERE {schema.key_clause}",
            (*fields.values(), updated_at, *key_params),
        )
        return "updated"
