"""
Pytest configuration and fixtures for gateway tests.

All upstream traffic is served by MockUpstream through httpx.MockTransport,
so no test needs network access or real API keys.
"""
import os
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from gateway.config import Settings
from gateway.main import create_app
from gateway.services import GatewayServices, build_services
from tests.fixtures.mock_responses import MockUpstream

CREDENTIAL_ENV_NAMES = (
    "GEMINI_API_KEY",
    "GEMINI_KEY",
    "GOOGLE_API_KEY",
    "TTS_API_KEY",
    "GOOGLE_TTS_API_KEY",
)


# ============================================
# Test Fixtures
# ============================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials in the environment out of tests."""
    for name in CREDENTIAL_ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings():
    """Factory for Settings that ignores any .env file."""
    def _make(**overrides) -> Settings:
        values = {
            "GEMINI_API_KEY": "test-gemini-key",
            "TTS_API_KEY": "test-tts-key",
            "STATIC_DIR": os.path.join(os.path.dirname(__file__), "no-static-dir"),
            "CHAT_MODEL": "gemini-2.5-flash",
            "CHAT_FALLBACK_MODELS": "gemini-2.0-flash,gemini-1.5-flash",
            "IMAGE_MODEL": "gemini-2.5-flash-image",
            "ENVIRONMENT": "development",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def test_settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream()


@pytest.fixture
async def services(test_settings: Settings, upstream: MockUpstream) -> AsyncGenerator[GatewayServices, None]:
    """Service container wired to the fake upstream."""
    container = build_services(test_settings, transport=upstream.transport)
    yield container
    await container.close()


@pytest.fixture
async def make_services(make_settings, upstream: MockUpstream):
    """Factory for service containers with settings overrides."""
    created: list[GatewayServices] = []

    def _make(**overrides) -> GatewayServices:
        container = build_services(make_settings(**overrides), transport=upstream.transport)
        created.append(container)
        return container

    yield _make
    for container in created:
        await container.close()


@pytest.fixture
async def test_client(test_settings: Settings, services: GatewayServices) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to a fresh app instance."""
    app = create_app(test_settings, services=services)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================
# Pytest Configuration
# ============================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "fast: Fast unit tests (no external API calls)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow tests (long-running operations)"
    )
