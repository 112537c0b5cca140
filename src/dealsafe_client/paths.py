import os
import re
from typing import Optional
from urllib.parse import unquote, urlparse

from .logging import get_logger

log = get_logger("paths")


def fix_windows_path_input(p: str) -> str:
    """Repair common Windows path paste issues like "C:Users...".

    - Inserts a backslash after drive letter if missing.
    - Trims surrounding quotes/spaces.
    - Leaves non-Windows platforms untouched.
    """
    s = (p or "").strip().strip('"').strip("'")
    if os.name == "nt" and re.match(r"^[A-Za-z]:(?![\\/])", s):
        fixed = s[:2] + "\\" + s[2:]
        log.debug(f"Repaired Windows path input: '{s}' -> '{fixed}'")
        s = fixed
    return s


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def find_project_root(start_dir: Optional[str] = None) -> str:
    """Find the repository root by walking upward from start_dir.

    Looks for common markers: .git/, pyproject.toml, .env.
    Falls back to absolute(start_dir) if nothing found.
    """
    start = os.path.abspath(start_dir or os.getcwd() or ".")
    d = start
    while True:
        if os.path.isdir(os.path.join(d, ".git")):
            return d
        for marker in ("pyproject.toml", ".env"):
            if os.path.isfile(os.path.join(d, marker)):
                return d
        parent = os.path.dirname(d)
        if parent == d:
            return start
        d = parent


def var_dir(root_dir: str) -> str:
    """Return the absolute var directory under the project root."""
    return os.path.join(os.path.abspath(root_dir), "var")


def is_remote_uri(uri: str) -> bool:
    return (uri or "").lower().startswith(("http://", "https://"))


def uri_to_path(uri: str) -> str:
    """Return a local filesystem path for a plain path or ``file://`` URI."""
    s = fix_windows_path_input(uri)
    if s.lower().startswith("file://"):
        parsed = urlparse(s)
        s = unquote(parsed.path)
        if os.name == "nt" and re.match(r"^/[A-Za-z]:", s):
            s = s[1:]
    return s


def uri_basename(uri: str) -> str:
    """Final path segment of a URI or path, '' when there is none."""
    s = (uri or "").strip()
    if not s:
        return ""
    if "://" in s:
        s = unquote(urlparse(s).path)
    s = s.replace("\\", "/").rstrip("/")
    return s.rsplit("/", 1)[-1]
