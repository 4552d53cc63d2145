"""Unit tests for the error taxonomy and provider data types.

Tests for gateway/core/base.py.

Run with:
    pytest tests/unit/test_errors.py -v
"""

import dataclasses

import pytest

from gateway.config import ProviderType
from gateway.core.base import (
    RAW_PREVIEW_CHARS,
    AudioResult,
    GatewayError,
    InvalidInput,
    MalformedProviderResponse,
    MissingCredential,
    NoMediaReturned,
    OutboundRequest,
    ProviderError,
    RateLimited,
    Timeout,
)


@pytest.mark.fast
class TestErrorTaxonomy:
    """Tests for GatewayError subclasses."""

    @pytest.mark.parametrize(
        "error, kind, http_status",
        [
            (MissingCredential("GEMINI_API_KEY"), "missing_credential", 400),
            (InvalidInput("Please provide a message."), "invalid_input", 400),
            (ProviderError("boom", ProviderType.GEMINI, 500), "provider_error", 200),
            (MalformedProviderResponse(ProviderType.GEMINI, "<html>"), "malformed_provider_response", 200),
            (NoMediaReturned("nothing"), "no_media_returned", 200),
            (RateLimited(retry_after=5), "rate_limited", 429),
            (Timeout(), "timeout", 200),
        ],
    )
    def test_kinds_and_statuses(self, error, kind, http_status):
        """Test each error carries its envelope kind and boundary status."""
        assert isinstance(error, GatewayError)
        assert error.kind == kind
        assert error.http_status == http_status

    def test_missing_credential_names_variable(self):
        """Test the message names the missing variable, never a value."""
        error = MissingCredential("TTS_API_KEY")
        assert "TTS_API_KEY" in error.message
        assert error.env_name == "TTS_API_KEY"

    def test_provider_error_str(self):
        """Test ProviderError string representation."""
        error = ProviderError("Model not found", ProviderType.GEMINI, status_code=404)
        assert str(error) == "[gemini] (404) Model not found"
        assert error.message == "Model not found"

    def test_provider_error_str_without_status(self):
        """Test ProviderError string without status code."""
        error = ProviderError("Connection refused", ProviderType.SPEECH)
        assert str(error) == "[speech] Connection refused"

    def test_malformed_preview_is_bounded(self):
        """Test only a bounded prefix of the raw body is kept."""
        raw = "<html>" + "x" * 5000
        error = MalformedProviderResponse(ProviderType.GEMINI, raw, status_code=502)
        assert len(error.preview) == RAW_PREVIEW_CHARS
        assert error.status_code == 502
        assert error.message.startswith("Provider returned a non-JSON response: <html>")

    def test_malformed_is_not_provider_error(self):
        """Test malformed bodies are a separate kind from provider errors."""
        assert not isinstance(MalformedProviderResponse(ProviderType.GEMINI), ProviderError)

    def test_rate_limited_message(self):
        """Test RateLimited mentions the retry delay when known."""
        assert RateLimited(retry_after=12).message == "Too many requests. Please slow down and retry in 12s."
        assert RateLimited().message == "Too many requests. Please slow down."

    def test_timeout_default_message(self):
        """Test Timeout has a user-facing default message."""
        assert Timeout().message == "The AI service took too long to respond."


@pytest.mark.fast
class TestDataTypes:
    """Tests for request and result dataclasses."""

    def test_outbound_request_is_immutable(self):
        """Test OutboundRequest fields and headers cannot change."""
        request = OutboundRequest(
            url="https://example.test/models/m:generateContent",
            method="POST",
            headers={"x-goog-api-key": "k"},
            body={"contents": []},
        )
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.url = "https://elsewhere.test"
        with pytest.raises(TypeError):
            request.headers["x-goog-api-key"] = "other"

    def test_outbound_request_copies_headers(self):
        """Test later changes to the source dict do not leak in."""
        headers = {"x-goog-api-key": "k"}
        request = OutboundRequest(url="u", method="GET", headers=headers)
        headers["x-goog-api-key"] = "changed"
        assert request.headers["x-goog-api-key"] == "k"

    def test_audio_repr_hides_bytes(self):
        """Test binary payloads stay out of reprs and logs."""
        audio = AudioResult(data=b"\x00" * 1000, voice="en-US-Neural2-F")
        assert "\\x00" not in repr(audio)
        assert "en-US-Neural2-F" in repr(audio)
