"""Command-line entry point — sync, barcode lookup and sync status."""

import argparse
import json
import logging
import os
import sys

from foodlens.config import Config
from foodlens.database.connection import DatabaseConnection
from foodlens.database.lookup_cache import LookupCache
from foodlens.database.schema import initialize_database
from foodlens.lookup.product_lookup import ProductLookup
from foodlens.session import start_session
from foodlens.sync.network import probe_network_state
from foodlens.sync.remote import SupabaseRpcClient
from foodlens.sync.sync_manager import SyncManager
from foodlens.utils.constants import APP_NAME, APP_VERSION

TOKEN_ENV_VAR = "FOODLENS_SESSION_TOKEN"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME.lower())
    parser.add_argument("--version", action="version",
                        version=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--db", default=str(Config.DATABASE_PATH),
                        help="Path to the local SQLite database")
    parser.add_argument("--user", default=os.getenv("FOODLENS_USER_ID"),
                        help="Signed-in user id")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Push and pull pantry items and favorites")
    sub.add_parser("status", help="Show sync cursors and pending changes")
    lookup = sub.add_parser("lookup", help="Resolve a barcode")
    lookup.add_argument("upc")
    lookup.add_argument("--ttl-days", type=int, default=None)
    lookup.add_argument("--refresh", action="store_true",
                        help="Bypass the local lookup cache")
    return parser


def build_sync_manager(db, session) -> SyncManager:
    """Wire a SyncManager to the configured remote and network check."""
    return SyncManager(
        db,
        session,
        SupabaseRpcClient.from_config(),
        token_provider=lambda: os.getenv(TOKEN_ENV_VAR),
        network_state_provider=lambda: probe_network_state(
            Config.SUPABASE_URL, timeout=Config.HTTP_TIMEOUT
        ),
    )


def main(argv=None) -> int:
    """Run one command and print its result as JSON."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db = DatabaseConnection(args.db)
    initialize_database(db)

    if args.command == "lookup":
        lookup = ProductLookup(LookupCache(db))
        result = lookup.lookup_upc(
            args.upc, ttl_days=args.ttl_days, bypass_cache=args.refresh
        )
    else:
        session = start_session(db, args.user)
        manager = build_sync_manager(db, session)
        if args.command == "sync":
            result = manager.sync_now()
        else:
            result = manager.get_sync_status()

    print(json.dumps(result, indent=2, default=str))
    return 0 if result is not None else 1


if __name__ == "__main__":
    sys.exit(main())
