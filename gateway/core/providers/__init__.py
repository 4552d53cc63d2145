"""Provider abstraction and implementations.

Re-exports base types and provider implementations for convenient imports.
"""

# Base types and errors
from gateway.core.base import (
    AudioResult,
    CanonicalResult,
    GatewayError,
    ImageResult,
    InvalidInput,
    MalformedProviderResponse,
    MissingCredential,
    NoMediaReturned,
    OutboundRequest,
    ProviderError,
    ProviderResponse,
    ProviderType,
    RateLimited,
    ResultKind,
    TextReply,
    Timeout,
)
from gateway.core.providers.client import ProviderClient

# Provider implementations
from gateway.core.providers.gemini import GeminiProvider
from gateway.core.providers.speech import SpeechProvider

__all__ = [
    # Base types
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
    # Implementations
    "GeminiProvider",
    "ProviderClient",
    "SpeechProvider",
]
