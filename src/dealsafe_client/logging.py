import logging
import os
import re
from typing import Optional


_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_BEARER_RE = re.compile(r"(Bearer\s+)([A-Za-z0-9._\-~+/=]+)")


def _coerce_level(value: Optional[str]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    if isinstance(value, int):
        return value
    return logging.INFO


def redact_token(value: Optional[str]) -> str:
    """Mask bearer tokens (or a bare token) so they never reach log output.

    Keeps the first four characters for correlation, e.g. ``abcd…``.
    """
    if not value:
        return ""
    text = str(value)
    if "Bearer" in text:
        return _BEARER_RE.sub(lambda m: m.group(1) + m.group(2)[:4] + "…", text)
    return text[:4] + "…" if len(text) > 4 else "…"


def get_logger(name: str) -> logging.Logger:
    """Return a configured stdout logger with consistent formatting.

    - Honors LOG_LEVEL (default INFO) and LOG_FILE (optional path).
    - Loggers live under the ``dealsafe`` namespace so callers can tune
      them as a group.
    """
    logger = logging.getLogger(f"dealsafe.{name}")
    if getattr(logger, "_dealsafe_configured", False):
        return logger

    level = _coerce_level(os.environ.get("LOG_LEVEL", "INFO"))
    logger.setLevel(level)

    fmt = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)
        except OSError:
            logger.warning("LOG_FILE could not be opened; continuing without file logging")

    # Avoid duplicate logs if imported multiple times
    logger.propagate = False
    setattr(logger, "_dealsafe_configured", True)
    return logger
