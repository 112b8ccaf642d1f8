"""Static configuration for botwarden.

Everything that is not a secret (store location, moderation defaults,
logging) lives in a single JSON file for quick edits without touching
Python. Secrets come from the environment.
"""

import json
import os

from dotenv import load_dotenv

from core.config import GroupDefaults

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("BOTWARDEN_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


load_dotenv()

_CONFIG = _load_json_config()

# REDIS_URL in the environment wins so deployments can point elsewhere
# without editing the file.
_redis = _CONFIG.get("redis", {})
REDIS_URL = os.getenv("REDIS_URL") or _redis.get("url", "redis://localhost:6379/0")

# Defaults written for a chat when the bot is first added to it.
# - is_active: moderation stays off until the creator turns it on
# - show_warn: post a warning after each removed bot
# - warn_limit: warnings before the adder is removed too
_moderation = _CONFIG.get("moderation", {})
GROUP_DEFAULTS = GroupDefaults(
    is_active=bool(_moderation.get("is_active", False)),
    show_warn=bool(_moderation.get("show_warn", True)),
    warn_limit=int(_moderation.get("warn_limit", 3)),
)

# Telethon parse mode for notices: "md" or "html".
NOTICE_PARSE_MODE = str(_CONFIG.get("notices", {}).get("parse_mode", "md"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
