"""Application configuration — loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file for in-app configuration
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "foodlens.db"))
    )

    # Remote authority (settings.json overrides .env)
    SUPABASE_URL: str = _runtime.get(
        "supabase_url",
        os.getenv("SUPABASE_URL", ""),
    )
    SUPABASE_ANON_KEY: str = _runtime.get(
        "supabase_anon_key",
        os.getenv("SUPABASE_ANON_KEY", ""),
    )
    HTTP_TIMEOUT: int = int(_runtime.get(
        "http_timeout",
        os.getenv("HTTP_TIMEOUT", "15"),
    ))

    # Product lookup providers
    FDC_API_KEY: str = _runtime.get(
        "fdc_api_key",
        os.getenv("FDC_API_KEY", ""),
    )
    UPCITEMDB_API_KEY: str = _runtime.get(
        "upcitemdb_api_key",
        os.getenv("UPCITEMDB_API_KEY", ""),
    )
    APP_NAME: str = os.getenv("APP_NAME", "MyPantry")
    APP_EMAIL: str = os.getenv("APP_EMAIL", "support@example.com")
    UPC_CACHE_TTL_DAYS: int = int(_runtime.get(
        "upc_cache_ttl_days",
        os.getenv("UPC_CACHE_TTL_DAYS", "30"),
    ))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def update_remote_settings(cls, url: str, api_key: str, timeout: int):
        """Update the remote endpoint at runtime and persist to disk."""
        cls.SUPABASE_URL = url
        cls.SUPABASE_ANON_KEY = api_key
        cls.HTTP_TIMEOUT = timeout

        settings = _load_settings()
        settings["supabase_url"] = url
        settings["supabase_anon_key"] = api_key
        settings["http_timeout"] = timeout
        _save_settings(settings)

    @classmethod
    def update_lookup_settings(cls, ttl_days: int, fdc_key: str,
                               upcitemdb_key: str):
        """Update product lookup settings and persist."""
        cls.UPC_CACHE_TTL_DAYS = ttl_days
        cls.FDC_API_KEY = fdc_key
        cls.UPCITEMDB_API_KEY = upcitemdb_key

        settings = _load_settings()
        settings["upc_cache_ttl_days"] = ttl_days
        settings["fdc_api_key"] = fdc_key
        settings["upcitemdb_api_key"] = upcitemdb_key
        _save_settings(settings)
