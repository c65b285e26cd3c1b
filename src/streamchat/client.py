"""HTTP client for the assistant backend.

Hides the endpoint layout and the httpx client lifecycle:
- POST /auth issues a Credential for the fixed client identity
- GET /health is a liveness probe for diagnostics
- POST /chat is opened by the transports, which borrow ``http`` and the
  request helpers below
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .config import HEALTH_TIMEOUT_SECONDS
from .credentials.models import Credential
from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class BackendClient:
    """Thin async wrapper over the backend's HTTP endpoints.

    Supports async context manager protocol for proper resource cleanup:
        async with BackendClient("http://localhost:8080") as client:
            credential = await client.authenticate("mobile-user", "")
    """

    def __init__(
        self,
        base_url: str,
        http: httpx.AsyncClient | None = None,
        **client_kwargs: Any
    ):
        """Initialize the backend client.

        Args:
            base_url: Backend base URL, e.g. http://localhost:8080
            http: Pre-built httpx client (tests pass one with a MockTransport)
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        self._base_url = base_url.rstrip("/")
        self._owns_http = http is None
        # Streams may stay open for a long time; only connecting is bounded
        self._http = http or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(None, connect=10.0),
            **client_kwargs
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    def url(self, path: str) -> str:
        """Absolute URL for an endpoint path."""
        return f"{self._base_url}/{path.lstrip('/')}"

    async def authenticate(self, user_id: str, password: str) -> Credential:
        """Exchange the client identity for a fresh Credential.

        Raises:
            AuthenticationError: On network failure, non-2xx status or a
                response body missing token, session_id or expires_at
        """
        try:
            response = await self._http.post(
                self.url("/auth"),
                json={"user_id": user_id, "password": password},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"cannot reach backend: {e}") from e

        if not response.is_success:
            detail = _error_detail(response)
            raise AuthenticationError(
                detail or f"status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            return Credential.model_validate(payload)
        except (ValueError, ValidationError) as e:
            raise AuthenticationError(
                f"invalid authentication response: {e}",
                status_code=response.status_code,
            ) from e

    async def check_health(self, timeout: float = HEALTH_TIMEOUT_SECONDS) -> bool:
        """Probe GET /health; any failure counts as unhealthy."""
        try:
            response = await self._http.get(self.url("/health"), timeout=timeout)
        except httpx.HTTPError as e:
            logger.warning("Health check failed: %s", e)
            return False
        return response.is_success

    def chat_request_parts(self, message: str, credential: Credential) -> dict[str, Any]:
        """Keyword arguments for an httpx request to POST /chat."""
        return {
            "method": "POST",
            "url": self.url("/chat"),
            "params": {"session_id": credential.session_id},
            "headers": {
                "Authorization": f"Bearer {credential.token}",
                "Accept": "text/event-stream",
            },
            "json": {
                "message": message,
                "session_id": credential.session_id,
                "stream": True,
            },
        }

    async def close(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _error_detail(response: httpx.Response) -> str | None:
    """Pull a human-readable message out of an error response, if any."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("detail")
        if isinstance(message, str):
            return message
    return None
