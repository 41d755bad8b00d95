"""
Session store for the signed-in actor.

Holds the bearer token and user profile, persists them through a pluggable
storage backend, derives authentication/admin status, and notifies subscribers
of every state transition (login, logout, profile update, preference change).
"""
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol

import jwt
from pydantic import ValidationError

from schemas.user import User

logger = logging.getLogger(__name__)


class SessionEvent(StrEnum):
    """Session state transitions published to subscribers."""

    LOGIN = "login"
    LOGOUT = "logout"
    PROFILE_UPDATED = "profile_updated"
    PREFERENCES_CHANGED = "preferences_changed"


@dataclass(frozen=True)
class SessionChange:
    """A published transition. `user` is the user after the transition."""

    event: SessionEvent
    user: User | None
    reason: str | None = None


SessionListener = Callable[[SessionChange], None]


@dataclass(frozen=True)
class StoredSession:
    """What a storage backend persists."""

    token: str
    user: User


class SessionStorage(Protocol):
    """Persistence backend for the session."""

    def load(self) -> StoredSession | None: ...

    def save(self, session: StoredSession) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStorage:
    """Keeps the session for the life of the process only."""

    def __init__(self) -> None:
        self._session: StoredSession | None = None

    def load(self) -> StoredSession | None:
        return self._session

    def save(self, session: StoredSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStorage:
    """
    Persists the session as JSON on disk so it survives restarts.

    A missing, unreadable or corrupt file loads as "no session". Write failures
    are logged and leave the session in memory only.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> StoredSession | None:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("session_file_unreadable path=%s error=%s", self._path, e)
            return None

        if not isinstance(raw, dict) or not isinstance(raw.get("token"), str):
            logger.warning("session_file_invalid path=%s", self._path)
            return None
        try:
            user = User.model_validate(raw.get("user"))
        except ValidationError as e:
            logger.warning("session_file_invalid_user path=%s error=%s", self._path, e)
            return None
        return StoredSession(token=raw["token"], user=user)

    def save(self, session: StoredSession) -> None:
        data = {"token": session.token, "user": session.user.model_dump(by_alias=True)}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.warning("session_file_write_failed path=%s error=%s", self._path, e)

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("session_file_delete_failed path=%s error=%s", self._path, e)


def get_token_expiry(token: str) -> float | None:
    """
    Read the `exp` claim of a JWT without verifying its signature.

    The client cannot verify the signature (the key lives on the API); the
    claim is only used to decide whether to treat the session as live.

    Returns:
        The expiry as a Unix timestamp, or None if the token cannot be decoded
        or carries no numeric `exp` claim.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except (jwt.PyJWTError, TypeError, ValueError):
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        return None
    return float(exp)


class SessionStore:
    """
    Single source of truth for who the current actor is.

    Constructed once per client and shared by the HTTP client (bearer header,
    teardown on 401) and the auth service (login, register, enrichment).
    """

    def __init__(
        self,
        storage: SessionStorage | None = None,
        admin_role: str = "Admin",
    ) -> None:
        """Initialize an empty session over the given storage backend."""
        self._storage = storage if storage is not None else MemorySessionStorage()
        self._admin_role = admin_role
        self._token: str | None = None
        self._user: User | None = None
        self._kids_mode = False
        self._listeners: list[SessionListener] = []

    @property
    def token(self) -> str | None:
        """The bearer token, or None when signed out."""
        return self._token

    @property
    def user(self) -> User | None:
        """The current user, or None when signed out."""
        return self._user

    @property
    def kids_mode(self) -> bool:
        """Effective kids mode: the user's preference, forced on when enforced for the account."""
        if self._user is not None and self._user.kids_mode_enforced:
            return True
        return self._kids_mode

    def restore(self) -> bool:
        """
        Load a persisted session into memory.

        Does not publish an event: nothing has changed from the user's point of view.

        Returns:
            True if a session was loaded.
        """
        stored = self._storage.load()
        if stored is None:
            return False
        self._token = stored.token
        self._user = stored.user
        logger.debug("session_restored user_id=%s", stored.user.id)
        return True

    def start(self, token: str, user: User) -> None:
        """Adopt a new session after login or auto-login registration."""
        self._token = token
        self._user = user
        self._persist(StoredSession(token=token, user=user))
        logger.info("session_started user_id=%s", user.id)
        self._publish(SessionChange(SessionEvent.LOGIN, user))

    def update_user(self, user: User) -> None:
        """Replace the profile of the current session (e.g. after enrichment)."""
        if self._token is None:
            logger.debug("session_update_ignored reason=no_session")
            return
        self._user = user
        self._persist(StoredSession(token=self._token, user=user))
        self._publish(SessionChange(SessionEvent.PROFILE_UPDATED, user))

    def clear(self, reason: str = "logout") -> None:
        """
        Destroy the session. Safe to call when already signed out.

        Subscribers are only notified when a session actually existed.
        """
        had_session = self._token is not None or self._user is not None
        self._token = None
        self._user = None
        try:
            self._storage.clear()
        except OSError as e:
            logger.warning("session_storage_clear_failed error=%s", e)
        if had_session:
            logger.info("session_cleared reason=%s", reason)
            self._publish(SessionChange(SessionEvent.LOGOUT, None, reason=reason))

    def set_kids_mode(self, enabled: bool) -> None:
        """Set the kids mode preference and notify subscribers if the effective value changed."""
        before = self.kids_mode
        self._kids_mode = enabled
        if self.kids_mode != before:
            self._publish(SessionChange(SessionEvent.PREFERENCES_CHANGED, self._user))

    def is_authenticated(self, now: float | None = None) -> bool:
        """
        True iff a token is present and its embedded expiry is in the future.

        Never raises: a malformed token counts as not authenticated.
        """
        if not self._token:
            return False
        expiry = get_token_expiry(self._token)
        if expiry is None:
            return False
        current = time.time() if now is None else now
        return expiry > current

    def is_admin(self) -> bool:
        """True iff the current user carries the admin role."""
        return self._user is not None and self._user.has_role(self._admin_role)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for session transitions.

        Returns:
            A function that removes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _persist(self, session: StoredSession) -> None:
        # The in-memory session stays authoritative when the backend cannot write
        try:
            self._storage.save(session)
        except OSError as e:
            logger.warning("session_storage_save_failed user_id=%s error=%s", session.user.id, e)

    def _publish(self, change: SessionChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # A broken subscriber must not undo or block the transition
                logger.exception("session_listener_failed event=%s", change.event)
