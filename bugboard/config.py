"""Configuration for Bugboard.

Values come from the environment (a local ``.env`` file is loaded first):

    BUGBOARD_API_URL     - fallback API base URL when none has been saved
    BUGBOARD_STORAGE     - path of the persisted client storage file
    BUGBOARD_SECRET_KEY  - Flask secret key used to sign flash messages
    BUGBOARD_LOG_LEVEL   - logging level name (default: INFO)
    BUGBOARD_HOST        - web client bind host (default: 127.0.0.1)
    BUGBOARD_PORT        - web client bind port (default: 7761)
"""

import os
import secrets
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_API_BASE_URL = "http://localhost:8000"

# Storage keys shared by the web client and the CLI
TOKEN_KEY = "token"
USER_KEY = "user"
BASE_URL_KEY = "api_base_url"

DASHBOARD_LIMIT = 50


def fallback_api_url() -> str:
    """Base URL used when the user has not configured one."""
    return os.getenv("BUGBOARD_API_URL", DEFAULT_API_BASE_URL)


def default_storage_path() -> Path:
    """Location of the persisted storage file."""
    env_path = os.getenv("BUGBOARD_STORAGE")
    if env_path:
        return Path(env_path)
    return Path.home() / ".bugboard" / "storage.json"


def secret_key() -> str:
    return os.getenv("BUGBOARD_SECRET_KEY") or secrets.token_hex(32)


def log_level() -> str:
    return os.getenv("BUGBOARD_LOG_LEVEL", "INFO").upper()


WEB_HOST = os.getenv("BUGBOARD_HOST", "127.0.0.1")
WEB_PORT = int(os.getenv("BUGBOARD_PORT", "7761"))
