"""Error taxonomy shared by the API client, pipeline and flows.

Every error carries a short ``message`` and an optional remediation ``hint``
so callers can surface both without collapsing them into one string.
"""

from __future__ import annotations


class DealSafeError(Exception):
    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint or ""

    def __str__(self) -> str:
        return self.message


class NotAuthenticated(DealSafeError):
    """No session token present; raised before any network call."""

    def __init__(self, message: str = "Not authenticated", hint: str = "") -> None:
        super().__init__(message, hint)


class SessionExpired(DealSafeError):
    """The backend answered 401; the local session must be discarded."""

    def __init__(self, message: str = "Session Expired", hint: str = "Please login again") -> None:
        super().__init__(message, hint)


class TransportFailure(DealSafeError):
    """Network or parse error before a structured body was obtained."""


class RemoteRejection(DealSafeError):
    """Non-2xx response carrying a structured ``{message, hint}`` body."""

    def __init__(self, message: str, hint: str = "", status_code: int | None = None) -> None:
        super().__init__(message, hint)
        self.status_code = status_code


class ValidationFailure(DealSafeError):
    """Local precondition failed; no network call was made."""

    def __init__(self, title: str, message: str) -> None:
        super().__init__(title, message)
        self.title = title
