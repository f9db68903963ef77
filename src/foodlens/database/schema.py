"""Database schema definition, initialization, and migrations."""

import sqlite3

SCHEMA_VERSION = 2

# Each statement is a separate string to avoid executescript issues
_SCHEMA_STATEMENTS = [
    # Pantry items; id is user-scoped, e.g. "<user_id>|<upc or manual_...>"
    """CREATE TABLE IF NOT EXISTS pantry_items (
        id TEXT PRIMARY KEY NOT NULL,
        upc TEXT,
        name TEXT NOT NULL,
        brand TEXT,
        qty REAL NOT NULL DEFAULT 0,
        unit TEXT,
        per_serving TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        user_id TEXT,
        dirty INTEGER NOT NULL DEFAULT 0,
        deleted INTEGER NOT NULL DEFAULT 0
    )""",

    # Key/value store for sync cursors, keys carry the user id
    """CREATE TABLE IF NOT EXISTS sync_state (
        k TEXT PRIMARY KEY NOT NULL,
        v TEXT NOT NULL
    )""",

    # Normalized product lookups, shared across users
    """CREATE TABLE IF NOT EXISTS upc_cache (
        upc TEXT PRIMARY KEY NOT NULL,
        json TEXT NOT NULL,
        fetched_at TEXT NOT NULL
    )""",

    # Favorited meals; json holds the cached full detail
    """CREATE TABLE IF NOT EXISTS meal_favorites (
        user_id TEXT NOT NULL,
        meal_id TEXT NOT NULL,
        source TEXT NOT NULL DEFAULT 'themealdb',
        title TEXT,
        thumb TEXT,
        json TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        dirty INTEGER NOT NULL DEFAULT 0,
        deleted INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (user_id, meal_id, source)
    )""",

    # Schema version tracking
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # ── Indexes ──────────────────────────────────────────────────
    "CREATE INDEX IF NOT EXISTS idx_pantry_user ON pantry_items(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_pantry_upc ON pantry_items(upc)",
    "CREATE INDEX IF NOT EXISTS idx_upc_cache_time ON upc_cache(fetched_at)",
    "CREATE INDEX IF NOT EXISTS idx_favs_user ON meal_favorites(user_id)",

    # Record schema version
    f"INSERT OR IGNORE INTO schema_version (version) VALUES ({SCHEMA_VERSION})",
]

# ── Migration from v1 → v2 ──────────────────────────────────────
# v1 databases predate sync: no owner or dirty/deleted flags on pantry
# rows, and no version bookkeeping on favorites.
_PANTRY_V2_COLUMNS = [
    ("user_id", "ALTER TABLE pantry_items ADD COLUMN user_id TEXT", None),
    ("dirty", "ALTER TABLE pantry_items ADD COLUMN dirty INTEGER",
     "UPDATE pantry_items SET dirty = 0 WHERE dirty IS NULL"),
    ("deleted", "ALTER TABLE pantry_items ADD COLUMN deleted INTEGER",
     "UPDATE pantry_items SET deleted = 0 WHERE deleted IS NULL"),
]

_FAVORITES_V2_COLUMNS = [
    ("updated_at", "ALTER TABLE meal_favorites ADD COLUMN updated_at TEXT",
     "UPDATE meal_favorites SET updated_at = COALESCE(updated_at, "
     "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')) WHERE updated_at IS NULL"),
    ("dirty", "ALTER TABLE meal_favorites ADD COLUMN dirty INTEGER",
     "UPDATE meal_favorites SET dirty = 0 WHERE dirty IS NULL"),
    ("deleted", "ALTER TABLE meal_favorites ADD COLUMN deleted INTEGER",
     "UPDATE meal_favorites SET deleted = 0 WHERE deleted IS NULL"),
]


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if no schema exists."""
    try:
        row = conn.execute(
            "SELECT MAX(version) as v FROM schema_version"
        ).fetchone()
        return row["v"] if row and row["v"] else 0
    except sqlite3.OperationalError:
        return 0


def _table_exists(conn, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    ).fetchone()
    return row is not None


def _table_columns(conn, table: str) -> set[str]:
    return {
        col["name"]
        for col in conn.execute(f"PRAGMA table_info('{table}')").fetchall()
    }


def _add_missing_columns(conn, table: str, columns):
    existing = _table_columns(conn, table)
    for name, alter_stmt, backfill_stmt in columns:
        if name in existing:
            continue
        conn.execute(alter_stmt)
        if backfill_stmt:
            conn.execute(backfill_stmt)


def _migrate_v1_to_v2(conn):
    """Upgrade a pre-sync database in place."""
    if _table_exists(conn, "pantry_items"):
        _add_missing_columns(conn, "pantry_items", _PANTRY_V2_COLUMNS)
    if _table_exists(conn, "meal_favorites"):
        _add_missing_columns(conn, "meal_favorites", _FAVORITES_V2_COLUMNS)
    # Tables, indexes and the version row are all IF NOT EXISTS / OR IGNORE
    for stmt in _SCHEMA_STATEMENTS:
        conn.execute(stmt)


def initialize_database(db_connection):
    """Create all tables and indexes.

    On a fresh database, creates the full v2 schema directly.
    On an existing database, applies migrations incrementally.
    """
    with db_connection.get_connection() as conn:
        version = _get_schema_version(conn)

        if version == 0 and not _table_exists(conn, "pantry_items"):
            # Fresh database: create full schema
            for stmt in _SCHEMA_STATEMENTS:
                conn.execute(stmt)
        elif version < SCHEMA_VERSION:
            # Existing database: apply migrations
            if version < 2:
                _migrate_v1_to_v2(conn)
