"""Core components for the gateway."""

from gateway.core.base import (
    GatewayError,
    MissingCredential,
    ProviderError,
    ProviderType,
    RateLimited,
    ResultKind,
)

__all__ = [
    "GatewayError",
    "MissingCredential",
    "ProviderError",
    "ProviderType",
    "RateLimited",
    "ResultKind",
]
