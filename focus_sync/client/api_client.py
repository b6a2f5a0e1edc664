"""HTTP calls from the client to the focus-sync server."""

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from focus_sync.core.config import ClientSettings
from focus_sync.core.errors import TransientNetworkFailure
from focus_sync.domain.auth import AuthResponse
from focus_sync.domain.records import TaskRecord, TimerRecord
from focus_sync.domain.sync import SyncResult


logger = logging.getLogger(__name__)


class ApiRequestError(Exception):
    """The server answered an auth request with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"HTTP {response.status_code}"


class ApiClient:
    """Thin async wrapper over the server's JSON endpoints.

    A new ``httpx.AsyncClient`` is opened per call; ``transport`` lets tests
    route calls to an in-process app.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_settings = ClientSettings()
        self.base_url = (base_url or client_settings.api_base_url).rstrip("/")
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else client_settings.sync_timeout_seconds
        )
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_seconds, transport=self._transport)

    async def _post_auth(self, path: str, payload: dict[str, Any]) -> AuthResponse:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.warning("auth_request_failed", extra={"path": path, "error": str(e)})
            raise TransientNetworkFailure(f"Could not reach server: {e}") from e

        if not response.is_success:
            raise ApiRequestError(response.status_code, _error_message(response))
        return AuthResponse.model_validate(response.json())

    async def register(self, *, email: str, password: str, display_name: str) -> AuthResponse:
        """Create an account.

        Raises:
            ApiRequestError: On 400 (missing fields) or 409 (email taken)
            TransientNetworkFailure: If the server is unreachable
        """
        return await self._post_auth(
            "/auth/register", {"email": email, "password": password, "displayName": display_name}
        )

    async def login(self, *, email: str, password: str) -> AuthResponse:
        """Sign in.

        Raises:
            ApiRequestError: On 400 or 401
            TransientNetworkFailure: If the server is unreachable
        """
        return await self._post_auth("/auth/login", {"email": email, "password": password})

    async def refresh(self, *, refresh_token: str) -> AuthResponse:
        """Rotate a refresh token.

        Raises:
            ApiRequestError: On 401 (invalid, expired or reused token)
            TransientNetworkFailure: If the server is unreachable
        """
        return await self._post_auth("/auth/refresh", {"refreshToken": refresh_token})

    async def ping(self) -> bool:
        """Return True if the server's liveness endpoint answers."""
        try:
            async with self._client() as client:
                response = await client.get("/healthz")
        except httpx.HTTPError:
            return False
        return response.is_success

    async def sync(
        self,
        tasks: Sequence[TaskRecord],
        timers: Sequence[TimerRecord],
        *,
        access_token: str | None = None,
    ) -> SyncResult:
        """Submit records for reconciliation.

        Raises:
            TransientNetworkFailure: If the server is unreachable, times out,
                replies with a non-2xx status or with an unreadable body
        """
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        payload = {"tasks": [task.to_wire() for task in tasks], "timers": [timer.to_wire() for timer in timers]}

        try:
            async with self._client() as client:
                response = await client.post("/sync", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransientNetworkFailure(f"Sync request failed: {e}") from e

        if not response.is_success:
            raise TransientNetworkFailure(
                f"Sync rejected with status {response.status_code}", status_code=response.status_code
            )

        try:
            return SyncResult.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise TransientNetworkFailure(f"Unreadable sync response: {e}") from e
