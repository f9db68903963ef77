"""Tests for the DatabaseConnection storage primitives."""

import sqlite3
import pytest

from foodlens.database.connection import DatabaseConnection


@pytest.fixture
def kv_db(tmp_path):
    """A bare database with one key/value table."""
    conn = DatabaseConnection(tmp_path / "kv.db")
    conn.execute("CREATE TABLE kv (k TEXT PRIMARY KEY, v TEXT)")
    return conn


class TestSetup:
    def test_parent_directories_are_created(self, tmp_path):
        target = tmp_path / "data" / "nested" / "pantry.db"
        conn = DatabaseConnection(str(target))
        assert conn.db_path == target
        assert target.parent.is_dir()

    def test_file_appears_after_first_statement(self, tmp_path):
        target = tmp_path / "pantry.db"
        DatabaseConnection(target).execute("CREATE TABLE x (a INTEGER)")
        assert target.exists()


class TestTransactions:
    def test_rows_are_mappings(self, kv_db):
        kv_db.execute("INSERT INTO kv VALUES ('cursor', '2024-01-01')")
        with kv_db.get_connection() as conn:
            assert conn.row_factory is sqlite3.Row
            row = conn.execute("SELECT * FROM kv").fetchone()
        assert dict(row) == {"k": "cursor", "v": "2024-01-01"}

    def test_block_commits_on_exit(self, kv_db):
        with kv_db.get_connection() as conn:
            conn.execute("INSERT INTO kv VALUES ('a', '1')")
            conn.execute("INSERT INTO kv VALUES ('b', '2')")
        assert len(kv_db.query_all("SELECT k FROM kv")) == 2

    def test_block_rolls_back_on_error(self, kv_db):
        kv_db.execute("INSERT INTO kv VALUES ('kept', '1')")
        with pytest.raises(ValueError):
            with kv_db.get_connection() as conn:
                conn.execute("INSERT INTO kv VALUES ('lost', '2')")
                raise ValueError("abort")
        assert [r["k"] for r in kv_db.query_all("SELECT k FROM kv")] == ["kept"]

    def test_constraint_violation_rolls_back_block(self, kv_db):
        with pytest.raises(sqlite3.IntegrityError):
            with kv_db.get_connection() as conn:
                conn.execute("INSERT INTO kv VALUES ('dup', '1')")
                conn.execute("INSERT INTO kv VALUES ('dup', '2')")
        assert kv_db.query_one("SELECT k FROM kv WHERE k = 'dup'") is None

    def test_connection_unusable_after_block(self, kv_db):
        with kv_db.get_connection() as conn:
            pass
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")


class TestPrimitives:
    def test_execute_reports_affected_rows(self, kv_db):
        kv_db.execute("INSERT INTO kv VALUES ('a', '1')")
        kv_db.execute("INSERT INTO kv VALUES ('b', '1')")
        assert kv_db.execute("UPDATE kv SET v = '2' WHERE v = '1'") == 2
        assert kv_db.execute("DELETE FROM kv WHERE k = 'missing'") == 0

    def test_query_all_binds_params(self, kv_db):
        kv_db.execute("INSERT INTO kv VALUES (?, ?)", ("a", "x"))
        kv_db.execute("INSERT INTO kv VALUES (?, ?)", ("b", "y"))
        rows = kv_db.query_all("SELECT k FROM kv WHERE v = ?", ("y",))
        assert [r["k"] for r in rows] == ["b"]

    def test_query_one_missing(self, kv_db):
        assert kv_db.query_one("SELECT v FROM kv WHERE k = ?", ("a",)) is None

    def test_unknown_table_raises(self, kv_db):
        with pytest.raises(sqlite3.OperationalError):
            kv_db.query_all("SELECT * FROM nowhere")

    def test_execute_script(self, kv_db):
        kv_db.execute_script(
            "INSERT INTO kv VALUES ('a', '1');"
            "INSERT INTO kv VALUES ('b', '2');"
        )
        assert len(kv_db.query_all("SELECT * FROM kv")) == 2

    def test_execute_script_bad_sql(self, kv_db):
        with pytest.raises(sqlite3.OperationalError):
            kv_db.execute_script("NOT VALID SQL;")
