"""Tests for the command-line entry point."""

import json
from unittest.mock import patch

import pytest

from foodlens.app import main
from foodlens.database.connection import DatabaseConnection
from foodlens.database.lookup_cache import LookupCache
from foodlens.sync.network import NetworkState


def _run(capsys, *argv):
    code = main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_status_for_user(db_path, capsys):
    code, out = _run(capsys, "--db", str(db_path), "--user", "u1", "status")
    assert code == 0
    assert out["user_id"] == "u1"
    assert out["last_sync_human"] == "Never"


def test_sync_offline(db_path, capsys):
    offline = NetworkState(connected=False, internet_reachable=False)
    with patch("foodlens.app.probe_network_state", return_value=offline):
        code, out = _run(capsys, "--db", str(db_path), "--user", "u1", "sync")
    assert out == {"skipped": "offline"}


def test_sync_without_token(db_path, capsys, monkeypatch):
    monkeypatch.delenv("FOODLENS_SESSION_TOKEN", raising=False)
    online = NetworkState(connected=True, internet_reachable=True)
    with patch("foodlens.app.probe_network_state", return_value=online):
        code, out = _run(capsys, "--db", str(db_path), "--user", "u1", "sync")
    assert out == {"skipped": "no-token"}


def test_lookup_from_cache(db_path, capsys):
    # First run creates the schema
    _run(capsys, "--db", str(db_path), "status")
    LookupCache(DatabaseConnection(db_path), ttl_days=0).put(
        "0123", {"upc": "0123", "name": "Cached Beans"}
    )
    code, out = _run(capsys, "--db", str(db_path), "lookup", "0123",
                     "--ttl-days", "0")
    assert code == 0
    assert out["name"] == "Cached Beans"


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert "FoodLens 1.0.0" in capsys.readouterr().out
