import os
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import expand_abs, find_project_root, var_dir

log = get_logger("config")

DEFAULT_API_URL = "https://dealsafe-backend.vercel.app"
DEFAULT_TIMEOUT = 60

_TRUTHY = {"1", "true", "yes", "on"}


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running the CLI from subdirectories (e.g., `src/`) still find
    a repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Return the key/value pairs of the nearest .env without touching os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: (v or "").strip() for k, v in dotenv_values(path).items()}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(dotenv_dir: str, key: str) -> Optional[str]:
    v = os.environ.get(key)
    if v:
        return v.strip()
    v = _read_dotenv(dotenv_dir).get(key)
    return v or None


def load_base_url(dotenv_dir: str, fallback: str = DEFAULT_API_URL) -> str:
    return (_lookup(dotenv_dir, "DEALSAFE_API_URL") or fallback).rstrip("/")


def load_timeout(dotenv_dir: str, fallback: int = DEFAULT_TIMEOUT) -> int:
    raw = _lookup(dotenv_dir, "DEALSAFE_TIMEOUT")
    if not raw:
        return fallback
    try:
        return int(raw)
    except ValueError:
        log.warning(f"Ignoring invalid DEALSAFE_TIMEOUT={raw!r}; using {fallback}s")
        return fallback


def load_insecure(dotenv_dir: str) -> bool:
    raw = _lookup(dotenv_dir, "DEALSAFE_INSECURE")
    return bool(raw) and raw.lower() in _TRUTHY


def load_state_dir(dotenv_dir: str) -> str:
    """Directory for the session file, reminder flags and converted images."""
    raw = _lookup(dotenv_dir, "DEALSAFE_STATE_DIR")
    if raw:
        return expand_abs(raw)
    return var_dir(find_project_root(dotenv_dir))
