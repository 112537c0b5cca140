"""Session ownership and the guard wrapped around every authenticated call."""

from __future__ import annotations

import json
from typing import Any, Callable, List, Optional, TypeVar

from ..domain.models import Session, User
from ..errors import NotAuthenticated, SessionExpired
from ..logging import get_logger, redact_token
from ..notify import Notifier
from ..storage import KeyValueStore

LOG = get_logger("session")

TOKEN_KEY = "dealsafe_auth_token"
USER_KEY = "dealsafe_user"

T = TypeVar("T")


class SessionStore:
    """Persistent token/user slots."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def get_token(self) -> Optional[str]:
        return self.kv.get(TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self.kv.set(TOKEN_KEY, token)

    def get_user(self) -> Optional[User]:
        raw = self.kv.get(USER_KEY)
        if not raw:
            return None
        try:
            return User.from_json(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            LOG.warning(f"Stored user record unreadable; ignoring it: {exc}")
            return None

    def set_user(self, user: User) -> None:
        self.kv.set(USER_KEY, json.dumps(user.to_json()))

    def clear(self) -> None:
        self.kv.remove([TOKEN_KEY, USER_KEY])


class SessionManager:
    def __init__(self, store: SessionStore) -> None:
        self.store = store
        self.session: Optional[Session] = None
        self._on_end: List[Callable[[], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    def token(self) -> Optional[str]:
        return self.session.token if self.session else None

    def on_end(self, callback: Callable[[], None]) -> None:
        """Register a callback run whenever the session ends (logout or expiry)."""
        self._on_end.append(callback)

    def restore(self) -> bool:
        token = self.store.get_token()
        user = self.store.get_user()
        if token and user:
            self.session = Session(token=token, user=user)
            LOG.info(f"Restored session for {user.phone_number} (token {redact_token(token)})")
            return True
        LOG.debug("No stored session")
        return False

    def login(self, token: str, user: User) -> Session:
        self.store.set_token(token)
        self.store.set_user(user)
        self.session = Session(token=token, user=user)
        LOG.info(f"Logged in as {user.phone_number}")
        return self.session

    def _end(self, reason: str) -> None:
        self.store.clear()
        self.session = None
        LOG.info(f"Session ended ({reason})")
        for callback in self._on_end:
            callback()

    def logout(self) -> None:
        self._end("logout")

    def invalidate(self) -> None:
        self._end("expired")


class SessionGuard:
    """Fails fast without a session and tears the session down on a 401."""

    def __init__(self, sessions: SessionManager, notifier: Notifier) -> None:
        self.sessions = sessions
        self.notifier = notifier

    def ensure_authenticated(self) -> None:
        if not self.sessions.is_authenticated:
            raise NotAuthenticated()

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        self.ensure_authenticated()
        try:
            return fn(*args, **kwargs)
        except SessionExpired as exc:
            LOG.warning("Backend rejected the session token; clearing local session")
            self.sessions.invalidate()
            self.notifier.show_notice(exc.message, exc.hint)
            raise
