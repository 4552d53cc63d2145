"""Cloud Text-to-Speech REST provider.

Examples:
    >>> provider = SpeechProvider(client, api_key="AIza...")
    >>> voices = await provider.list_voices()
    >>> audio = await provider.synthesize("Hello", "en-US", "FEMALE", voice_name="en-US-Neural2-F")

Tests:
    - tests/unit/test_speech_provider.py
"""

import logging
from typing import Any

from gateway.config import TTS_BASE_URL, ProviderType
from gateway.core.base import (
    AudioResult,
    MalformedProviderResponse,
    MissingCredential,
    OutboundRequest,
    ResultKind,
)
from gateway.core.normalizer import extract
from gateway.core.providers.client import ProviderClient
from gateway.core.voices import VoiceDescriptor

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPES = {
    "MP3": "audio/mpeg",
    "OGG_OPUS": "audio/ogg",
    "LINEAR16": "audio/wav",
}


class SpeechProvider:
    """Cloud Text-to-Speech provider.

    Attributes:
        provider_type: ProviderType.SPEECH
        api_key: Speech API key (may be None; calls then raise MissingCredential)
        base_url: API base URL
    """

    provider_type = ProviderType.SPEECH

    def __init__(
        self,
        client: ProviderClient,
        api_key: str | None,
        base_url: str = TTS_BASE_URL,
        audio_encoding: str = "MP3",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.audio_encoding = audio_encoding

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise MissingCredential("TTS_API_KEY")
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def synthesize_request(
        self,
        text: str,
        language_code: str,
        gender: str,
        voice_name: str | None = None,
    ) -> OutboundRequest:
        """Build a text:synthesize request. Without a name the provider picks the voice."""
        voice: dict[str, Any] = {"languageCode": language_code, "ssmlGender": gender}
        if voice_name:
            voice["name"] = voice_name

        return OutboundRequest(
            url=f"{self.base_url}/text:synthesize",
            method="POST",
            headers=self._headers(),
            body={
                "input": {"text": text},
                "voice": voice,
                "audioConfig": {"audioEncoding": self.audio_encoding},
            },
            provider=self.provider_type,
        )

    async def list_voices(self) -> list[VoiceDescriptor]:
        """Fetch the full voice catalog.

        Raises:
            MissingCredential: If no API key is configured.
            ProviderError: If the API call fails.
        """
        request = OutboundRequest(
            url=f"{self.base_url}/voices",
            method="GET",
            headers=self._headers(),
            provider=self.provider_type,
        )
        response = await self.client.invoke(request)
        voices = response.body.get("voices") if isinstance(response.body, dict) else None
        if voices is None:
            # An empty catalog comes back as {}
            return []
        if not isinstance(voices, list):
            raise MalformedProviderResponse(
                self.provider_type,
                str(voices),
                reason="Voice listing is not a list",
            )
        return [VoiceDescriptor.from_api(v) for v in voices if isinstance(v, dict) and v.get("name")]

    async def synthesize(
        self,
        text: str,
        language_code: str,
        gender: str,
        voice_name: str | None = None,
    ) -> AudioResult:
        """Synthesize speech.

        Raises:
            MissingCredential: If no API key is configured.
            NoMediaReturned: If the reply carries no audio.
            ProviderError: If the API call fails.
        """
        request = self.synthesize_request(text, language_code, gender, voice_name)
        response = await self.client.invoke(request)
        audio = extract(response, ResultKind.AUDIO)
        mime_type = AUDIO_MIME_TYPES.get(self.audio_encoding, audio.mime_type)
        return AudioResult(data=audio.data, mime_type=mime_type)
