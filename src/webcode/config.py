"""Platform-aware path resolution and environment overrides."""

import os
import sys
from pathlib import Path

DEFAULT_USERNAME = "default"


def get_data_dir() -> Path:
    """Return the directory that holds the database and cloned projects."""
    env = os.environ.get("WEBCODE_DATA_PATH")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "WebCode"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "WebCode"
    else:  # Linux
        return Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share") / "webcode"


def get_db_path() -> Path:
    """Return the path to the SQLite database file."""
    env = os.environ.get("WEBCODE_DB_PATH")
    if env:
        return Path(env)

    return get_data_dir() / "webcode.db"


def get_projects_path() -> Path:
    """Return the root directory under which project repositories are cloned."""
    env = os.environ.get("WEBCODE_PROJECTS_PATH")
    if env:
        return Path(env)

    return get_data_dir() / "projects"


def get_default_username() -> str:
    """Return the owner used when a request does not name one."""
    return os.environ.get("WEBCODE_DEFAULT_USERNAME", "").strip() or DEFAULT_USERNAME


def get_log_level() -> str:
    return os.environ.get("WEBCODE_LOG_LEVEL", "INFO").upper()
