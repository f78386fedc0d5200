"""Environment-aware paths and settings."""

import os
from pathlib import Path

DEFAULT_PORT = 3001


def get_data_dir() -> Path:
    """Return the directory holding codechat's local state."""
    env = os.environ.get("CODECHAT_HOME")
    if env:
        return Path(env)
    return Path.home() / ".codechat"


def get_store_path() -> Path:
    """Return the path of the server's session store file."""
    env = os.environ.get("CODECHAT_SESSIONS_FILE")
    if env:
        return Path(env)
    return get_data_dir() / "sessions.json"


def get_cache_dir() -> Path:
    """Return the directory for the client's per-session transcripts."""
    env = os.environ.get("CODECHAT_CACHE_DIR")
    if env:
        return Path(env)
    return get_data_dir() / "transcripts"


def get_port() -> int:
    """Return the relay listen port."""
    env = os.environ.get("PORT")
    if env:
        try:
            return int(env)
        except ValueError:
            pass
    return DEFAULT_PORT


def get_relay_url() -> str:
    """Return the base URL the client uses to reach the relay."""
    env = os.environ.get("CODECHAT_URL")
    if env:
        return env.rstrip("/")
    return f"http://127.0.0.1:{get_port()}"
