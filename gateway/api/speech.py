"""Speech API endpoints.

Endpoints:
    POST /tts - Synthesize speech
    GET /voices - List the cached voice catalog

Examples:
    >>> POST /tts
    >>> {"text": "Hello", "languageCode": "en-US", "gender": "FEMALE", "voiceType": "neural"}
    >>> {"ok": true, "audioContent": "SUQz...", "audioUrl": "data:audio/mpeg;base64,SUQz...", ...}

Tests:
    - tests/unit/test_api.py::TestSpeechEndpoint
"""

import base64
import logging

from fastapi import APIRouter, Depends, Query

from gateway.api.dependencies import get_services
from gateway.core.fallback import run_with_deadline
from gateway.schemas import SpeechRequest, SpeechResponse, VoiceInfo, VoiceListResponse
from gateway.services import GatewayServices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["speech"])


@router.post("/tts", response_model=SpeechResponse)
async def text_to_speech(
    request: SpeechRequest,
    services: GatewayServices = Depends(get_services),
) -> SpeechResponse:
    """Synthesize speech, retrying with provider voice selection on failure."""
    audio = await run_with_deadline(
        services.orchestrator.speak(
            request.text,
            language_code=request.language_code,
            gender=request.gender,
            voice_type=request.voice_type,
        ),
        services.settings.REQUEST_DEADLINE_SECONDS,
    )
    encoded = base64.b64encode(audio.data).decode("ascii")
    return SpeechResponse(
        audio_content=encoded,
        audio_url=f"data:{audio.mime_type};base64,{encoded}",
        mime_type=audio.mime_type,
        voice=audio.voice,
    )


@router.get("/voices", response_model=VoiceListResponse)
async def list_voices(
    language_code: str | None = Query(None, alias="languageCode", description="Filter by language, e.g. en-US"),
    services: GatewayServices = Depends(get_services),
) -> VoiceListResponse:
    """List voices from the cached catalog.

    Returns:
        VoiceListResponse with matching voices
    """
    cached = services.voices.cached
    voices = await run_with_deadline(
        services.voices.get(),
        services.settings.REQUEST_DEADLINE_SECONDS,
    )
    if language_code:
        voices = [v for v in voices if v.speaks(language_code)]

    return VoiceListResponse(
        voices=[
            VoiceInfo(
                name=v.name,
                language_codes=list(v.language_codes),
                gender=v.gender,
                is_premium=v.is_premium,
            )
            for v in voices
        ],
        total=len(voices),
        cached=cached,
    )
