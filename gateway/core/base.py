"""Base types and error taxonomy for the provider layer.

This module defines the request/response envelopes exchanged with upstream
providers, the canonical results handed back to the API layer, and the
exceptions raised along the way. Every exception derives from GatewayError
so the API boundary can turn any of them into a JSON envelope.

Examples:
    >>> request = OutboundRequest(
    ...     url="https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent",
    ...     method="POST",
    ...     headers={"x-goog-api-key": "..."},
    ...     body={"contents": [{"parts": [{"text": "hi"}]}]},
    ... )

Tests:
    - tests/unit/test_errors.py
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from gateway.config import ProviderType

__all__ = [
    "AudioResult",
    "CanonicalResult",
    "GatewayError",
    "ImageResult",
    "InvalidInput",
    "MalformedProviderResponse",
    "MissingCredential",
    "NoMediaReturned",
    "OutboundRequest",
    "ProviderError",
    "ProviderResponse",
    "ProviderType",
    "RateLimited",
    "ResultKind",
    "TextReply",
    "Timeout",
]

# Raw-text prefix kept for diagnostics when a body is not JSON
RAW_PREVIEW_CHARS = 260


class ResultKind(str, Enum):
    """Kinds of canonical payload the normalizer can extract."""

    TEXT = "text"
    AUDIO = "audio"
    IMAGE = "image"


@dataclass(frozen=True)
class OutboundRequest:
    """One request to one provider endpoint. Built fresh per call."""

    url: str
    method: str
    headers: Mapping[str, str]
    body: Mapping[str, Any] | None = None
    provider: ProviderType = ProviderType.GEMINI

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass
class ProviderResponse:
    """Parsed provider reply, discarded after normalization."""

    ok: bool
    status_code: int
    body: Any
    provider: ProviderType = ProviderType.GEMINI


@dataclass(frozen=True)
class TextReply:
    text: str
    model: str | None = None


@dataclass(frozen=True)
class AudioResult:
    data: bytes = field(repr=False)
    mime_type: str = "audio/mpeg"
    voice: str | None = None


@dataclass(frozen=True)
class ImageResult:
    """Generated image. `prompt` is the prompt that produced it."""

    data: bytes = field(repr=False)
    mime_type: str = "image/png"
    prompt: str | None = None
    rewritten: bool = False


CanonicalResult = TextReply | AudioResult | ImageResult


class GatewayError(Exception):
    """Base exception for every failure surfaced to a client.

    Attributes:
        kind: Stable machine-readable error name used in the JSON envelope
        http_status: HTTP status the API boundary answers with
        message: Human-readable message shown by the front end
    """

    kind = "gateway_error"
    http_status = 200

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingCredential(GatewayError):
    """A provider key needed for this request is not configured."""

    kind = "missing_credential"
    http_status = 400

    def __init__(self, env_name: str) -> None:
        super().__init__(f"Server is missing {env_name}; ask the administrator to configure it.")
        self.env_name = env_name


class InvalidInput(GatewayError):
    """Empty or unusable user input. Raised before any outbound call."""

    kind = "invalid_input"
    http_status = 400


class ProviderError(GatewayError):
    """Upstream provider reported a failure.

    Attributes:
        provider: The provider that raised the error
        status_code: Upstream HTTP status code (if any)
    """

    kind = "provider_error"

    def __init__(
        self,
        message: str,
        provider: ProviderType,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        parts = [f"[{self.provider.value}]", self.message]
        if self.status_code:
            parts.insert(1, f"({self.status_code})")
        return " ".join(parts)


class MalformedProviderResponse(GatewayError):
    """Provider body could not be parsed or decoded.

    Only a bounded prefix of the raw body is kept.
    """

    kind = "malformed_provider_response"

    def __init__(
        self,
        provider: ProviderType,
        raw_text: str = "",
        status_code: int | None = None,
        reason: str = "Provider returned a non-JSON response",
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.preview = raw_text[:RAW_PREVIEW_CHARS]
        message = reason
        if self.preview:
            message += f": {self.preview}"
        super().__init__(message)


class NoMediaReturned(GatewayError):
    """Provider answered successfully but without image or audio data."""

    kind = "no_media_returned"


class RateLimited(GatewayError):
    """Client exceeded the per-window request budget."""

    kind = "rate_limited"
    http_status = 429

    def __init__(self, retry_after: int | None = None) -> None:
        message = "Too many requests. Please slow down"
        if retry_after:
            message += f" and retry in {retry_after}s"
        super().__init__(message + ".")
        self.retry_after = retry_after


class Timeout(GatewayError):
    """Request deadline or an outbound call timed out."""

    kind = "timeout"

    def __init__(self, message: str = "The AI service took too long to respond.") -> None:
        super().__init__(message)
