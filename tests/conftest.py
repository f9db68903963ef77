"""Shared test fixtures."""

import pytest

from foodlens.database.connection import DatabaseConnection
from foodlens.database.favorites_repository import FavoritesRepository
from foodlens.database.pantry_repository import PantryRepository
from foodlens.database.schema import initialize_database
from foodlens.session import UserSession


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(db_path)
    initialize_database(conn)
    return conn


@pytest.fixture
def session():
    """A signed-in user."""
    return UserSession("u1")


@pytest.fixture
def pantry_repo(db, session):
    return PantryRepository(db, session)


@pytest.fixture
def favorites_repo(db, session):
    return FavoritesRepository(db, session)


def insert_pantry_row(db, item_id, user_id="u1", name="Item", qty=1,
                      upc=None, updated_at="2024-01-01T00:00:00Z",
                      dirty=0, deleted=0):
    """Write a pantry row directly, bypassing repository timestamps."""
    db.execute(
        "INSERT INTO pantry_items "
        "(id, upc, name, qty, created_at, updated_at, user_id, dirty, deleted) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (item_id, upc, name, qty, updated_at, updated_at, user_id,
         dirty, deleted),
    )


@pytest.fixture
def make_pantry_row(db):
    def _make(item_id, **kwargs):
        insert_pantry_row(db, item_id, **kwargs)
    return _make
