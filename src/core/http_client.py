"""HTTP client for the catalog API: one configured request pipeline shared by all services."""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from core.session import SessionStore
from services.exceptions import ApiError
from shared.api_errors import parse_http_error

logger = logging.getLogger(__name__)

# Called with the login path after a 401
UnauthorizedHandler = Callable[[str], None]

# A 401 from these is a credential rejection, not an expired session
CREDENTIAL_PATHS = ("/auth/login", "/auth/register")


class ApiClient:
    """
    Authenticated JSON client for the catalog API.

    Every outgoing request carries `Authorization: Bearer <token>` when the
    session holds a token. A 401 from any endpoint other than login and
    register clears the session (when one exists), invokes the unauthorized
    handler with the login path, and aborts the call with UnauthorizedError.
    A 401 from login or register is only raised, so the caller can show the
    API's message.

    Non-2xx responses raise ApiError; transport failures raise httpx.HTTPError.
    No retries are performed.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        timeout: float = 30.0,
        login_path: str = "/login",
        on_unauthorized: UnauthorizedHandler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the underlying httpx client with the auth hooks installed."""
        self._session = session
        self._login_path = login_path
        self._on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            event_hooks={
                "request": [self._attach_token],
                "response": [self._handle_unauthorized],
            },
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        """True once aclose() has run."""
        return self._client.is_closed

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        if not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self._session.token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _handle_unauthorized(self, response: httpx.Response) -> None:
        path = response.request.url.path
        if response.status_code != 401 or path.endswith(CREDENTIAL_PATHS):
            return
        logger.warning(
            "api_unauthorized method=%s path=%s",
            response.request.method,
            path,
        )
        if self._session.token is not None:
            self._session.clear(reason="unauthorized")
        if self._on_unauthorized is not None:
            self._on_unauthorized(self._login_path)

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        entity_type: str = "",
        entity_id: str = "",
    ) -> Any:
        """Make an authenticated GET request to the API."""
        return await self._send(
            "GET", path, params=params, entity_type=entity_type, entity_id=entity_id,
        )

    async def post(
        self,
        path: str,
        json: Any = None,
        *,
        entity_type: str = "",
        entity_id: str = "",
    ) -> Any:
        """Make an authenticated POST request to the API."""
        return await self._send(
            "POST", path, json=json, entity_type=entity_type, entity_id=entity_id,
        )

    async def put(
        self,
        path: str,
        json: Any = None,
        *,
        entity_type: str = "",
        entity_id: str = "",
    ) -> Any:
        """Make an authenticated PUT request to the API."""
        return await self._send(
            "PUT", path, json=json, entity_type=entity_type, entity_id=entity_id,
        )

    async def delete(
        self,
        path: str,
        *,
        entity_type: str = "",
        entity_id: str = "",
    ) -> Any:
        """Make an authenticated DELETE request to the API."""
        return await self._send("DELETE", path, entity_type=entity_type, entity_id=entity_id)

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        entity_type: str = "",
        entity_id: str = "",
    ) -> Any:
        if params is not None:
            params = {key: value for key, value in params.items() if value is not None}
        response = await self._client.request(method, path, params=params, json=json)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            info = parse_http_error(e, entity_type=entity_type, entity_id=entity_id)
            logger.debug(
                "api_error method=%s path=%s status=%s category=%s",
                method, path, info.status_code, info.category,
            )
            raise ApiError.from_parsed(info) from e
        return _parse_body(response)


def _parse_body(response: httpx.Response) -> Any:
    """JSON body, raw text for non-JSON bodies, None for empty bodies."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
