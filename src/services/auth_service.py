"""
Service layer for authentication and the user profile.

Login and registration adopt the returned token and user into the SessionStore;
the extended profile (name, age, kids-mode enforcement) is fetched afterwards on
a best-effort basis and never blocks authentication.
"""
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from core.http_client import ApiClient
from core.session import SessionStore
from schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    User,
    UserInfo,
    UserUpdate,
)
from services.exceptions import ApiError, NotAuthenticatedError

logger = logging.getLogger(__name__)


def apply_user_info(user: User, info: UserInfo) -> User:
    """Copy of a session user with the profile fields of a user-info response merged in."""
    updates: dict[str, Any] = {}
    if info.display_name:
        updates["name"] = info.display_name
    if info.age:
        updates["age"] = info.age
    if info.enforce_kids_mode is not None:
        updates["kids_mode_enforced"] = info.enforce_kids_mode
    return user.model_copy(update=updates)


class AuthService:
    """Authentication flows on top of the shared SessionStore."""

    def __init__(self, api: ApiClient, session: SessionStore) -> None:
        self._api = api
        self._session = session

    @property
    def session(self) -> SessionStore:
        """The session store this service writes to."""
        return self._session

    async def login(self, email: str, password: str) -> User:
        """
        Sign in and persist the session.

        Returns:
            The signed-in user, enriched with profile fields when available.

        Raises:
            ApiError: The API's rejection, with its message unchanged
                (UnauthorizedError for bad credentials).
        """
        payload = LoginRequest(email=email, password=password)
        data = await self._api.post("/auth/login", json=payload.model_dump())
        auth = AuthResponse.model_validate(data or {})
        if not auth.token or auth.user is None:
            raise ApiError("internal", "Login response did not include a session", 200)
        self._session.start(auth.token, auth.user)
        enriched = await self.enrich()
        return enriched or auth.user

    async def register(self, request: RegisterRequest) -> AuthResponse:
        """
        Register an account.

        If the API auto-logs the new user in (returns token and user), the
        session is adopted exactly as login does. Otherwise the session stays
        signed out and the caller should send the user to the login step.

        Raises:
            ApiError: The API's rejection (duplicate email, weak password, ...).
        """
        data = await self._api.post(
            "/auth/register",
            json=request.model_dump(by_alias=True, exclude_none=True),
        )
        auth = AuthResponse.model_validate(data) if isinstance(data, dict) else AuthResponse()
        if auth.token and auth.user is not None:
            self._session.start(auth.token, auth.user)
            enriched = await self.enrich()
            return auth.model_copy(update={"user": enriched or auth.user})
        logger.info("registration_without_auto_login email=%s", request.email)
        return auth

    def logout(self) -> None:
        """Clear the session. Safe to call when signed out."""
        self._session.clear(reason="logout")

    def get_current_user(self) -> User | None:
        """The signed-in user, or None."""
        return self._session.user

    def is_authenticated(self) -> bool:
        """True iff a token is present and not expired."""
        return self._session.is_authenticated()

    def is_admin(self) -> bool:
        """True iff the signed-in user has the admin role."""
        return self._session.is_admin()

    async def restore(self) -> bool:
        """
        Reload a persisted session at application start.

        An expired or undecodable token is discarded. A live session is enriched.

        Returns:
            True if a live session was restored.
        """
        if not self._session.restore():
            return False
        if not self._session.is_authenticated():
            self._session.clear(reason="expired")
            return False
        await self.enrich()
        return True

    async def get_user_info(self) -> UserInfo:
        """
        Fetch the extended profile of the signed-in user.

        Raises:
            ApiError: If the API rejects the request.
        """
        data = await self._api.get("/auth/user-info")
        return UserInfo.model_validate(data or {})

    async def enrich(self) -> User | None:
        """
        Merge the extended profile into the session user.

        Failures are logged and ignored; the session stays valid with its base fields.

        Returns:
            The (possibly unchanged) session user, or None when signed out.
        """
        if self._session.user is None:
            return None
        try:
            info = await self.get_user_info()
        except (ApiError, httpx.HTTPError, ValidationError) as e:
            logger.warning("user_info_enrichment_failed error=%s", e)
            return self._session.user

        user = self._session.user
        if user is None:
            return None
        enriched = apply_user_info(user, info)
        self._session.update_user(enriched)
        return enriched

    async def update_user(self, update: UserUpdate) -> UserInfo:
        """
        Update the signed-in user's profile and refresh the session copy.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
            ApiError: If the API rejects the update.
        """
        user = self._session.user
        if user is None:
            raise NotAuthenticatedError
        data = await self._api.put(
            "/auth/update",
            json=update.model_dump(by_alias=True, exclude_none=True),
        )
        info = UserInfo.model_validate(data or {})
        current = self._session.user
        if current is not None:
            self._session.update_user(apply_user_info(current, info))
        return info

    async def change_password(
        self,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        """
        Change the signed-in user's password.

        Raises:
            ValidationError: If the new password and confirmation differ (nothing is sent).
            ApiError: If the API rejects the change (e.g. wrong current password).
        """
        payload = ChangePasswordRequest(
            current_password=current_password,
            new_password=new_password,
            confirm_password=confirm_password,
        )
        await self._api.post("/auth/change-password", json=payload.model_dump(by_alias=True))
        logger.info("password_changed")
