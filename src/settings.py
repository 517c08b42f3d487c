"""Static configuration for build-herald.

All user-editable settings (Slack defaults, per-job notifications, user
handles, logging) live in a single JSON file for quick edits without
touching Python. Secrets may come from a .env file instead.
"""

import json
import os

from dotenv import load_dotenv

from core.config import GlobalConfig, normalize_server_url, parse_direct_message_mode
from core.models import DirectMessageMode

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

# HERALD_CONFIG lets CI agents point at a shared file.
CONFIG_PATH = os.getenv("HERALD_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Global Slack defaults. Job-level values override these per field.
# - token falls back to SLACK_TOKEN so it can stay out of config.json
# - build_server_url always ends with "/" so links can be concatenated
_slack = _CONFIG.get("slack", {})
GLOBAL_CONFIG = GlobalConfig(
    team_domain=_slack.get("team_domain"),
    auth_token=_slack.get("token") or os.getenv("SLACK_TOKEN"),
    room=_slack.get("room"),
    build_server_url=normalize_server_url(_slack.get("build_server_url")),
    send_as=_slack.get("send_as"),
    direct_message_mode=parse_direct_message_mode(_slack.get("direct_message")) or DirectMessageMode.NONE,
)
SEND_TIMEOUT = float(_slack.get("timeout", 10))

# Per-job notification settings keyed by project name. A job missing here has
# no Slack configuration and is skipped with a warning.
JOBS = _CONFIG.get("jobs", {})

# Platform user id -> Slack handle, used for direct messages.
USERS = _CONFIG.get("users", {})

# Where to store the SQLite build history.
_history = _CONFIG.get("history", {})
DB_PATH = _history.get("db_path") or os.path.join(PROJECT_ROOT, "herald.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
