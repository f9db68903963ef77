"""Application-wide constants."""

APP_NAME = "FoodLens"
APP_VERSION = "1.0.0"

# Favorites namespace used when a caller does not name one
DEFAULT_FAVORITE_SOURCE = "themealdb"

# Default unit for pantry rows created from a lookup without serving info
DEFAULT_PANTRY_UNIT = "serving"

# ── Sync state keys (suffixed with ":<user_id>") ─────────────────
PANTRY_LAST_PULL = "pantry:last_pull"
PANTRY_LAST_SYNC_AT = "pantry:last_sync_at"
FAVS_LAST_PULL = "favs:last_pull"

# ── Remote procedures ────────────────────────────────────────────
RPC_PANTRY_PUSH = "pantry_push"
RPC_PANTRY_PULL = "pantry_pull"
RPC_FAVS_PUSH = "favs_push"
RPC_FAVS_PULL = "favs_pull"

# Error text used when the server gives no message
RPC_FALLBACK_MESSAGES = {
    RPC_PANTRY_PUSH: "push failed",
    RPC_PANTRY_PULL: "pull failed",
    RPC_FAVS_PUSH: "favs push failed",
    RPC_FAVS_PULL: "favs pull failed",
}

# sync_now() skip reasons
SKIP_OFFLINE = "offline"
SKIP_NO_TOKEN = "no-token"
SKIP_IN_PROGRESS = "in-progress"
