"""Process-wide service container.

Holds the shared HTTP client, providers, voice cache, rate limiter and
orchestrator. One instance is created per application and reached from route
handlers through `request.app.state.services`, so tests can build their own
with a fake transport.

Examples:
    >>> services = build_services(get_settings())
    >>> reply = await services.orchestrator.chat("Hello")
    >>> await services.close()
"""

import logging
from dataclasses import dataclass

import httpx

from gateway.config import Settings
from gateway.core.fallback import FallbackOrchestrator
from gateway.core.providers import GeminiProvider, ProviderClient, SpeechProvider
from gateway.core.voices import VoiceCatalog
from gateway.utils.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    settings: Settings
    client: ProviderClient
    gemini: GeminiProvider
    speech: SpeechProvider
    voices: VoiceCatalog
    rate_limiter: SlidingWindowRateLimiter
    orchestrator: FallbackOrchestrator

    async def close(self) -> None:
        await self.client.close()


def build_services(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GatewayServices:
    """Wire providers and shared state from settings.

    Args:
        settings: Application settings.
        transport: Optional httpx transport (tests pass a MockTransport).

    Returns:
        GatewayServices ready to serve requests.
    """
    client = ProviderClient(timeout=settings.REQUEST_TIMEOUT_SECONDS, transport=transport)
    gemini = GeminiProvider(client, settings.GEMINI_API_KEY, base_url=settings.GEMINI_BASE_URL)
    speech = SpeechProvider(client, settings.TTS_API_KEY, base_url=settings.TTS_BASE_URL)
    voices = VoiceCatalog(speech.list_voices, ttl_seconds=settings.VOICE_CACHE_TTL_SECONDS)
    rate_limiter = SlidingWindowRateLimiter(
        limit=settings.RATE_LIMIT,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    logger.info(
        f"Providers configured: gemini={gemini.enabled}, speech={speech.enabled}; "
        f"chat model {settings.CHAT_MODEL}, image model {settings.IMAGE_MODEL}"
    )

    return GatewayServices(
        settings=settings,
        client=client,
        gemini=gemini,
        speech=speech,
        voices=voices,
        rate_limiter=rate_limiter,
        orchestrator=FallbackOrchestrator(gemini, speech, voices, settings),
    )
