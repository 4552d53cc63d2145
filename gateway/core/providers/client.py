"""HTTP client shared by every provider.

ProviderClient sends one OutboundRequest, reads the body as text, parses it as
JSON, and converts transport or upstream failures into gateway errors. It never
retries; retries with different parameters belong to the fallback layer.

Examples:
    >>> client = ProviderClient(timeout=30.0)
    >>> response = await client.invoke(request)
    >>> response.body["candidates"][0]

Tests:
    - tests/unit/test_provider_client.py::TestProviderClient
"""

import json
import logging
from typing import Any

import httpx

from gateway.core.base import (
    MalformedProviderResponse,
    OutboundRequest,
    ProviderError,
    ProviderResponse,
    Timeout,
)

logger = logging.getLogger(__name__)


def _error_details(body: Any) -> tuple[str | None, int | None]:
    """Pull (message, code) out of an `error` field, if the body has one."""
    if not isinstance(body, dict) or not body.get("error"):
        return None, None

    error = body["error"]
    if isinstance(error, str):
        return error, None
    if isinstance(error, dict):
        message = error.get("message") or error.get("status") or json.dumps(error)[:200]
        code = error.get("code")
        return str(message), code if isinstance(code, int) else None
    return str(error), None


class ProviderClient:
    """Async HTTP client for provider endpoints.

    Attributes:
        timeout: Per-call timeout in seconds
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get httpx async client (lazy initialization)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def invoke(self, request: OutboundRequest) -> ProviderResponse:
        """Send a request and return the parsed JSON body.

        Args:
            request: The outbound request.

        Returns:
            ProviderResponse with the parsed body.

        Raises:
            Timeout: If the call timed out.
            MalformedProviderResponse: If the body is not JSON.
            ProviderError: If the status is not 2xx or the body carries an error.
        """
        provider = request.provider
        try:
            response = await self.client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                json=request.body,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{provider.value} request timed out: {request.url}")
            raise Timeout() from e
        except httpx.HTTPError as e:
            logger.error(f"{provider.value} HTTP error: {e}")
            raise ProviderError(
                message=f"Could not reach the AI service: {e}",
                provider=provider,
            ) from e

        raw_text = response.text
        try:
            body = json.loads(raw_text)
        except ValueError as e:
            logger.error(
                f"{provider.value} returned non-JSON body (status {response.status_code})"
            )
            raise MalformedProviderResponse(
                provider, raw_text, status_code=response.status_code
            ) from e

        message, code = _error_details(body)
        if not response.is_success or message:
            message = message or f"Request failed with status {response.status_code}"
            status_code = response.status_code if not response.is_success else code
            logger.warning(f"{provider.value} error ({status_code}): {message}")
            raise ProviderError(
                message=message,
                provider=provider,
                status_code=status_code,
            )

        return ProviderResponse(
            ok=True,
            status_code=response.status_code,
            body=body,
            provider=provider,
        )
