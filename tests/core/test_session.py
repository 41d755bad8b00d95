"""Tests for the session store, token expiry checks and session persistence."""
import json
import time
from pathlib import Path
from unittest.mock import MagicMock

import jwt
import pytest

from conftest import ReadOnlyStorage, make_token
from core.session import (
    FileSessionStorage,
    MemorySessionStorage,
    SessionChange,
    SessionEvent,
    SessionStore,
    StoredSession,
    get_token_expiry,
)
from schemas.user import User


class TestIsAuthenticated:
    """Token expiry decides authentication."""

    def test__is_authenticated__no_token(self, session: SessionStore) -> None:
        """An empty session is not authenticated."""
        assert session.is_authenticated() is False

    def test__is_authenticated__future_expiry(self, session: SessionStore, regular_user: User) -> None:
        """A token expiring in an hour is live."""
        session.start(make_token(exp_offset=3600), regular_user)

        assert session.is_authenticated() is True

    def test__is_authenticated__expired_one_second_ago(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """A token that expired a second ago is not live."""
        session.start(make_token(exp_offset=-1), regular_user)

        assert session.is_authenticated() is False

    def test__is_authenticated__uses_given_clock(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """The comparison is against the supplied current time."""
        now = time.time()
        session.start(make_token(exp_offset=100), regular_user)

        assert session.is_authenticated(now=now) is True
        assert session.is_authenticated(now=now + 3600) is False

    @pytest.mark.parametrize(
        "token",
        ["not-a-jwt", "a.b.c", "", "eyJhbGciOiJIUzI1NiJ9.bm90LWpzb24.sig"],
    )
    def test__is_authenticated__malformed_token_never_raises(
        self, session: SessionStore, regular_user: User, token: str,
    ) -> None:
        """Undecodable tokens fail open to not authenticated."""
        session.start(token, regular_user)

        assert session.is_authenticated() is False

    def test__is_authenticated__token_without_exp(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """A token with no exp claim is not authenticated."""
        token = jwt.encode({"sub": "1"}, "test-secret-key-with-enough-length!", algorithm="HS256")
        session.start(token, regular_user)

        assert session.is_authenticated() is False

    def test__get_token_expiry__reads_exp_claim(self) -> None:
        """The exp claim is returned as a timestamp."""
        token = make_token(exp_offset=60)

        expiry = get_token_expiry(token)

        assert expiry is not None
        assert expiry == pytest.approx(time.time() + 60, abs=5)


class TestIsAdmin:
    """Admin detection from the role set."""

    def test__is_admin__no_user(self, session: SessionStore) -> None:
        """No user means not admin, not an error."""
        assert session.is_admin() is False

    def test__is_admin__regular_user(self, user_session: SessionStore) -> None:
        """Users without the admin role are not admins."""
        assert user_session.is_admin() is False

    def test__is_admin__admin_user(self, admin_session: SessionStore) -> None:
        """Users with the admin role are admins."""
        assert admin_session.is_admin() is True

    def test__is_admin__custom_role(self) -> None:
        """The admin marker is configurable."""
        session = SessionStore(admin_role="Administrator")
        session.start(make_token(), User(id="1", roles=["Administrator"]))

        assert session.is_admin() is True


class TestSessionLifecycle:
    """Start, update and clear transitions."""

    def test__start__stores_token_and_user(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """Starting a session exposes token and user."""
        token = make_token()
        session.start(token, regular_user)

        assert session.token == token
        assert session.user == regular_user

    def test__clear__is_idempotent(self, user_session: SessionStore) -> None:
        """Clearing twice leaves the session empty without error."""
        user_session.clear()
        user_session.clear()

        assert user_session.token is None
        assert user_session.user is None
        assert user_session.is_authenticated() is False

    def test__update_user__ignored_without_session(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """A profile update after logout does not resurrect the session."""
        session.update_user(regular_user)

        assert session.user is None

    def test__restore__loads_persisted_session(self, regular_user: User) -> None:
        """A new store over the same storage sees the saved session."""
        storage = MemorySessionStorage()
        token = make_token()
        SessionStore(storage).start(token, regular_user)

        restored = SessionStore(storage)
        assert restored.restore() is True
        assert restored.token == token
        assert restored.user == regular_user

    def test__restore__nothing_persisted(self, session: SessionStore) -> None:
        """Restoring from empty storage returns False."""
        assert session.restore() is False


class TestKidsMode:
    """Kids mode preference and enforcement."""

    def test__kids_mode__defaults_off(self, session: SessionStore) -> None:
        """Kids mode is off by default."""
        assert session.kids_mode is False

    def test__kids_mode__preference(self, session: SessionStore) -> None:
        """The preference can be switched on."""
        session.set_kids_mode(True)

        assert session.kids_mode is True

    def test__kids_mode__enforced_overrides_preference(self, session: SessionStore) -> None:
        """An enforced account stays in kids mode whatever the preference."""
        session.start(make_token(), User(id="3", kids_mode_enforced=True))
        session.set_kids_mode(False)

        assert session.kids_mode is True


class TestSubscribe:
    """Subscribers are notified of transitions."""

    def test__subscribe__login_and_logout(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """Login and logout are published in order."""
        events: list[SessionChange] = []
        session.subscribe(events.append)

        session.start(make_token(), regular_user)
        session.clear()

        assert [e.event for e in events] == [SessionEvent.LOGIN, SessionEvent.LOGOUT]
        assert events[0].user == regular_user
        assert events[1].user is None
        assert events[1].reason == "logout"

    def test__subscribe__logout_without_session_not_published(
        self, session: SessionStore,
    ) -> None:
        """Clearing an empty session publishes nothing."""
        listener = MagicMock()
        session.subscribe(listener)

        session.clear()

        listener.assert_not_called()

    def test__subscribe__profile_update(
        self, user_session: SessionStore, regular_user: User,
    ) -> None:
        """Profile updates are published with the new user."""
        listener = MagicMock()
        user_session.subscribe(listener)
        updated = regular_user.model_copy(update={"name": "Viewer"})

        user_session.update_user(updated)

        listener.assert_called_once_with(SessionChange(SessionEvent.PROFILE_UPDATED, updated))

    def test__subscribe__preference_change_only_when_effective_value_changes(
        self, session: SessionStore,
    ) -> None:
        """Setting the same kids mode twice publishes once."""
        listener = MagicMock()
        session.subscribe(listener)

        session.set_kids_mode(True)
        session.set_kids_mode(True)

        assert listener.call_count == 1
        assert listener.call_args.args[0].event == SessionEvent.PREFERENCES_CHANGED

    def test__subscribe__unsubscribe_stops_notifications(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """An unsubscribed listener is no longer called."""
        listener = MagicMock()
        unsubscribe = session.subscribe(listener)

        unsubscribe()
        unsubscribe()
        session.start(make_token(), regular_user)

        listener.assert_not_called()

    def test__subscribe__failing_listener_does_not_block_transition(
        self, session: SessionStore, regular_user: User,
    ) -> None:
        """A raising listener is logged; later listeners and the state change still happen."""
        failing = MagicMock(side_effect=RuntimeError("boom"))
        after = MagicMock()
        session.subscribe(failing)
        session.subscribe(after)

        session.start(make_token(), regular_user)

        assert session.user == regular_user
        after.assert_called_once()


class TestFileSessionStorage:
    """JSON file persistence."""

    def test__save_and_load(self, tmp_path: Path, regular_user: User) -> None:
        """A saved session loads back unchanged."""
        storage = FileSessionStorage(tmp_path / "nested" / "session.json")
        token = make_token()

        storage.save(StoredSession(token=token, user=regular_user))
        loaded = storage.load()

        assert loaded == StoredSession(token=token, user=regular_user)

    def test__load__missing_file(self, tmp_path: Path) -> None:
        """No file means no session."""
        assert FileSessionStorage(tmp_path / "missing.json").load() is None

    @pytest.mark.parametrize(
        "content",
        ["{not json", json.dumps(["token"]), json.dumps({"token": 1}), json.dumps({"token": "t"})],
    )
    def test__load__corrupt_file(self, tmp_path: Path, content: str) -> None:
        """Corrupt or incomplete files load as no session."""
        path = tmp_path / "session.json"
        path.write_text(content, encoding="utf-8")

        assert FileSessionStorage(path).load() is None

    def test__clear__removes_file(self, tmp_path: Path, regular_user: User) -> None:
        """Clearing deletes the file and is safe to repeat."""
        path = tmp_path / "session.json"
        storage = FileSessionStorage(path)
        storage.save(StoredSession(token="t", user=regular_user))

        storage.clear()
        storage.clear()

        assert not path.exists()

    def test__session_store_persists_to_file(self, tmp_path: Path, regular_user: User) -> None:
        """Login writes the file, logout removes it."""
        path = tmp_path / "session.json"
        session = SessionStore(FileSessionStorage(path))

        session.start(make_token(), regular_user)
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert saved["user"]["email"] == regular_user.email

        session.clear()
        assert not path.exists()

    def test__save__unwritable_path_logged(self, tmp_path: Path, regular_user: User) -> None:
        """A path that cannot be written leaves nothing on disk and does not raise."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        storage = FileSessionStorage(blocker / "session.json")

        storage.save(StoredSession(token="t", user=regular_user))
        storage.clear()

        assert storage.load() is None


class TestStorageFailures:
    """Backend write failures never block a session transition."""

    def test__start__storage_failure_keeps_memory_session(self, regular_user: User) -> None:
        """The session is adopted and announced even when it cannot be persisted."""
        session = SessionStore(ReadOnlyStorage())
        events: list[SessionChange] = []
        session.subscribe(events.append)
        token = make_token()

        session.start(token, regular_user)

        assert session.token == token
        assert session.is_authenticated()
        assert [e.event for e in events] == [SessionEvent.LOGIN]

    def test__update_user__storage_failure_still_publishes(self, regular_user: User) -> None:
        """A profile update that cannot be persisted still reaches subscribers."""
        session = SessionStore(ReadOnlyStorage(allowed_saves=1))
        session.start(make_token(), regular_user)
        listener = MagicMock()
        session.subscribe(listener)

        session.update_user(regular_user.model_copy(update={"name": "Ann"}))

        assert session.user is not None
        assert session.user.name == "Ann"
        listener.assert_called_once()

    def test__clear__storage_failure_still_signs_out(self, regular_user: User) -> None:
        """Logout clears memory and notifies even when the backend cannot delete."""
        session = SessionStore(ReadOnlyStorage(allowed_saves=1))
        session.start(make_token(), regular_user)
        events: list[SessionChange] = []
        session.subscribe(events.append)

        session.clear()

        assert session.token is None
        assert [e.event for e in events] == [SessionEvent.LOGOUT]
