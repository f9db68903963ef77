"""SyncManager — two-way sync of pantry items and meal favorites.

Each device keeps its own local SQLite database. A sync pass:
1. Checks connectivity and resolves the session token
2. Pushes dirty pantry rows, then pulls pantry changes since the cursor
3. Does the same for favorites

Each push and pull is fault-isolated: a failure is reported as
``{"error": message}`` for that phase and the remaining phases still run.
Local writes made by a completed phase are never rolled back.
"""

import logging
import threading
from typing import Callable, Optional

from foodlens.database.connection import DatabaseConnection
from foodlens.database.favorites_repository import FavoritesRepository
from foodlens.database.pantry_repository import PantryRepository
from foodlens.database.sync_state import SyncStateStore
from foodlens.errors import RemoteProcedureError
from foodlens.session import UserSession
from foodlens.sync.network import NetworkState
from foodlens.sync.reconciliation import (
    FAVORITES_SCHEMA,
    PANTRY_SCHEMA,
    ReconciliationEngine,
)
from foodlens.utils.constants import (
    RPC_FALLBACK_MESSAGES,
    RPC_FAVS_PULL,
    RPC_FAVS_PUSH,
    RPC_PANTRY_PULL,
    RPC_PANTRY_PUSH,
    SKIP_IN_PROGRESS,
    SKIP_NO_TOKEN,
    SKIP_OFFLINE,
)
from foodlens.utils.timestamps import format_since, latest_timestamp, now_iso

logger = logging.getLogger(__name__)


class SyncManager:
    """Drives push/pull between the local store and the remote authority."""

    def __init__(
        self,
        db: DatabaseConnection,
        session: UserSession,
        remote,
        token_provider: Callable[[], Optional[str]],
        network_state_provider: Callable[[], NetworkState],
    ):
        self.db = db
        self.session = session
        self.remote = remote
        self.token_provider = token_provider
        self.network_state_provider = network_state_provider

        self.pantry = PantryRepository(db, session)
        self.favorites = FavoritesRepository(db, session)
        self.state = SyncStateStore(db)
        self.engine = ReconciliationEngine(db)
        self._in_flight = threading.Lock()

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id

    @property
    def in_progress(self) -> bool:
        return self._in_flight.locked()

    # ── Full pass ──────────────────────────────────────────────

    def sync_now(self) -> dict:
        """Run one full sync pass.

        Overlapping calls do not start a second pass; they return
        ``{"skipped": "in-progress"}`` while the first one runs.
        """
        if not self._in_flight.acquire(blocking=False):
            return {"skipped": SKIP_IN_PROGRESS}
        try:
            return self._sync_pass()
        finally:
            self._in_flight.release()

    def _sync_pass(self) -> dict:
        net = self.network_state_provider()
        if not net.is_online:
            return {"skipped": SKIP_OFFLINE}

        token = self.token_provider()
        if not token:
            return {"skipped": SKIP_NO_TOKEN}

        push_res = self._run_phase("sync push", self.push_pantry, token)
        pull_res = self._run_phase("sync pull", self.pull_pantry, token)
        fav_push = self._run_phase("favs push", self.push_favorites, token)
        fav_pull = self._run_phase("favs pull", self.pull_favorites, token)

        return {
            "pantry": {"push": push_res, "pull": pull_res},
            "favs": {"push": fav_push, "pull": fav_pull},
        }

    def _run_phase(self, label: str, phase, token: str) -> dict:
        try:
            return phase(token)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"[{label} error] {message}")
            return {"error": message}

    # ── Pantry ─────────────────────────────────────────────────

    def push_pantry(self, token: str) -> dict:
        """Send dirty pantry rows; on success clear dirty and purge deletes."""
        dirty = self.pantry.get_dirty()
        if not dirty:
            return {"pushed": 0}

        items = [item.to_wire() for item in dirty]
        data = self._call(RPC_PANTRY_PUSH, {"p_token": token, "p_items": items})

        self.pantry.mark_pushed([(item.id, item.updated_at) for item in dirty])
        return {"pushed": len(dirty), "server": data}

    def pull_pantry(self, token: str) -> dict:
        """Apply pantry changes since the cursor and stamp last-sync time."""
        since = self.state.get_pantry_last_pull(self.user_id)
        data = self._call(RPC_PANTRY_PULL, {"p_token": token, "p_since": since})

        rows = data if isinstance(data, list) else []
        if rows:
            self.engine.apply(self.user_id, rows, PANTRY_SCHEMA)
            latest = latest_timestamp((r.get("updated_at") for r in rows), since)
            if latest and latest != since:
                self.state.set_pantry_last_pull(self.user_id, latest)
        # An empty pull still proves the local copy is current
        self.state.set_last_sync_at(self.user_id, now_iso())
        return {"pulled": len(rows)}

    # ── Favorites ──────────────────────────────────────────────

    def push_favorites(self, token: str) -> dict:
        dirty = self.favorites.get_dirty()
        if not dirty:
            return {"pushed": 0}

        items = [fav.to_wire() for fav in dirty]
        data = self._call(RPC_FAVS_PUSH, {"p_token": token, "p_items": items})

        self.favorites.mark_pushed(
            [(item["meal_id"], item["source"], item["updated_at"])
             for item in items]
        )
        return {"pushed": len(items), "server": data}

    def pull_favorites(self, token: str) -> dict:
        # Unlike pantry, a favorites pull does not stamp last-sync time.
        since = self.state.get_favs_last_pull(self.user_id)
        data = self._call(RPC_FAVS_PULL, {"p_token": token, "p_since": since})

        rows = data if isinstance(data, list) else []
        if rows:
            self.engine.apply(self.user_id, rows, FAVORITES_SCHEMA)
            latest = latest_timestamp((r.get("updated_at") for r in rows), since)
            if latest and latest != since:
                self.state.set_favs_last_pull(self.user_id, latest)
        return {"pulled": len(rows)}

    # ── Helpers ────────────────────────────────────────────────

    def _call(self, procedure: str, params: dict):
        """Invoke a remote procedure, filling in the fallback message."""
        try:
            return self.remote.rpc(procedure, params)
        except RemoteProcedureError as e:
            raise RemoteProcedureError(
                e.message or RPC_FALLBACK_MESSAGES[procedure],
                procedure=procedure,
            ) from e

    def get_sync_status(self) -> dict:
        """Current sync status for display."""
        last_sync = self.state.get_last_sync_at(self.user_id)
        return {
            "user_id": self.user_id,
            "in_progress": self.in_progress,
            "last_sync": last_sync,
            "last_sync_human": format_since(last_sync),
            "pantry_cursor": self.state.get_pantry_last_pull(self.user_id),
            "favs_cursor": self.state.get_favs_last_pull(self.user_id),
            "pending_pantry": self.pantry.count_dirty(),
            "pending_favorites": self.favorites.count_dirty(),
        }
