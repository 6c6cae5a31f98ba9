"""Static configuration for automod.

Non-secret settings (database, polling, logging) live in a single JSON file
for quick edits without touching Python. Credentials are read from the
environment by client.py.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# AUTOMOD_CONFIG points at an alternative config file, e.g. per deployment.
CONFIG_PATH = os.getenv("AUTOMOD_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database.
_database = _CONFIG.get("database", {})
DB_PATH = _resolve_path(_database.get("path", "automod.sqlite3"))

# Polling settings.
# - POLL_INTERVAL_SECONDS: pause between two polling rounds
# - POLL_PAGE_LIMIT: items fetched per feed per round
# - POLL_COMMUNITIES: restrict post/comment feeds; empty means every
#   community the bot moderates
_polling = _CONFIG.get("polling", {})
POLL_INTERVAL_SECONDS = float(_polling.get("interval_seconds", 10))
POLL_PAGE_LIMIT = int(_polling.get("page_limit", 20))
POLL_COMMUNITIES = list(_polling.get("communities", []))

# Timeout applied to every Lemmy API request.
_http = _CONFIG.get("http", {})
HTTP_TIMEOUT_SECONDS = float(_http.get("timeout_seconds", 10))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
