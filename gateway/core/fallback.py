"""Fallback orchestration for chat, speech and image calls.

Each call kind has a fixed, short fallback sequence. Attempts within one call
are strictly sequential and never exceed MAX_ATTEMPTS; there is no backoff
because these are interactive requests.

Sequences:
    - Chat: primary model, then configured fallback models while the failure
      says the model is unavailable
    - Speech: explicit catalog voice, then provider auto-selection
    - Image: prompt as given, then one rewritten prompt if no image came back

Examples:
    >>> orchestrator = FallbackOrchestrator(gemini, speech, catalog, settings)
    >>> reply = await orchestrator.chat("Hello")
    >>> audio = await orchestrator.speak("Hello", "en-US", "FEMALE")
    >>> image = await orchestrator.imagine("a red fox in snow")

Tests:
    - tests/unit/test_fallback.py
"""

import asyncio
import logging
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any, TypeVar

from gateway.config import ProviderType, Settings
from gateway.core.base import (
    AudioResult,
    GatewayError,
    ImageResult,
    InvalidInput,
    MalformedProviderResponse,
    MissingCredential,
    NoMediaReturned,
    ProviderError,
    TextReply,
    Timeout,
)
from gateway.core.normalizer import NO_RESPONSE_TEXT
from gateway.core.providers.gemini import GeminiProvider, model_path
from gateway.core.providers.speech import SpeechProvider
from gateway.core.voices import VoiceCatalog, select_voice
from gateway.prompts import image_rewrite

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3

# Case-sensitive substrings providers use when a model id is unknown or retired
MODEL_UNAVAILABLE_MARKERS = (
    "not found",
    "is not supported",
    "NOT_FOUND",
    "no longer available",
)

MODEL_ROLES = {"model", "assistant", "bot", "ai"}
SPEECH_GENDERS = {"FEMALE", "MALE", "NEUTRAL"}
MAX_SPEECH_CHARS = 5000
ASPECT_RATIOS = {"1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"}

# Failures after which the next step in a sequence is worth trying
SPEECH_FALLBACK_ERRORS = (ProviderError, MalformedProviderResponse, NoMediaReturned, Timeout)
CHAT_FALLBACK_ERRORS = (ProviderError, MalformedProviderResponse, Timeout)


def is_model_unavailable(error: Exception) -> bool:
    """Check whether a provider error means the model id cannot be used.

    Args:
        error: The failure from a chat attempt.

    Returns:
        True if a fallback model should be tried.
    """
    if not isinstance(error, ProviderError):
        return False
    return any(marker in error.message for marker in MODEL_UNAVAILABLE_MARKERS)


async def run_with_deadline(awaitable: Awaitable[T], seconds: float) -> T:
    """Await with a deadline, cancelling in-flight calls when it passes.

    Raises:
        Timeout: If the deadline passes first.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        logger.warning(f"Request deadline of {seconds:.0f}s exceeded")
        raise Timeout() from e


def build_contents(
    history: Sequence[Mapping[str, Any]] | None,
    message: str,
    limit: int,
) -> list[dict[str, Any]]:
    """Turn chat history plus the new message into Gemini contents."""
    turns = list(history or [])
    turns = turns[-limit:] if limit > 0 else []

    contents: list[dict[str, Any]] = []
    for turn in turns:
        text = turn.get("text") or turn.get("content") or ""
        if not isinstance(text, str) or not text.strip():
            continue
        role = "model" if str(turn.get("role", "")).lower() in MODEL_ROLES else "user"
        contents.append({"role": role, "parts": [{"text": text}]})

    contents.append({"role": "user", "parts": [{"text": message}]})
    return contents


class FallbackOrchestrator:
    """Runs the fallback sequences on top of the providers.

    Attributes:
        gemini: Text and image provider
        speech: Speech provider
        voices: Cached voice catalog
        settings: Model selection and feature switches
    """

    def __init__(
        self,
        gemini: GeminiProvider,
        speech: SpeechProvider,
        voices: VoiceCatalog,
        settings: Settings,
    ) -> None:
        self.gemini = gemini
        self.speech = speech
        self.voices = voices
        self.settings = settings

    def chat_models(self, requested: str | None = None) -> list[str]:
        """Models to try, in order: requested/primary first, then fallbacks."""
        models: list[str] = []
        for model in [requested or self.settings.CHAT_MODEL, *self.settings.chat_fallback_models]:
            model = model_path(model.strip())
            if model and model not in models:
                models.append(model)
        return models[:MAX_ATTEMPTS]

    async def chat(
        self,
        message: str,
        history: Sequence[Mapping[str, Any]] | None = None,
        model: str | None = None,
    ) -> TextReply:
        """Answer a chat message, falling back across models.

        Raises:
            InvalidInput: If the message is empty.
            MissingCredential: If the Gemini key is not configured.
            ProviderError: If the primary fails for another reason, or every model fails.
        """
        text = (message or "").strip()
        if not text:
            raise InvalidInput("Please provide a message.")
        if not self.gemini.enabled:
            raise MissingCredential("GEMINI_API_KEY")

        contents = build_contents(history, text, self.settings.CHAT_HISTORY_LIMIT)
        primary, *fallbacks = self.chat_models(model)
        last_error: GatewayError | None = None

        try:
            return await self.gemini.chat(
                primary, contents, system_instruction=self.settings.CHAT_SYSTEM_PROMPT
            )
        except ProviderError as e:
            if not is_model_unavailable(e) or not fallbacks:
                raise
            last_error = e
            logger.warning(f"Model {primary} unavailable ({e.message}); trying fallbacks")

        for fallback in fallbacks:
            try:
                reply = await self.gemini.chat(
                    fallback, contents, system_instruction=self.settings.CHAT_SYSTEM_PROMPT
                )
            except CHAT_FALLBACK_ERRORS as e:
                last_error = e
                logger.warning(f"Fallback model {fallback} failed: {e.message}")
                continue
            logger.info(f"Chat answered by fallback model {fallback}")
            return reply

        raise last_error

    async def speak(
        self,
        text: str,
        language_code: str = "en-US",
        gender: str = "FEMALE",
        voice_type: str = "neural",
    ) -> AudioResult:
        """Synthesize speech with an explicit voice, then provider auto-selection.

        Raises:
            InvalidInput: If text is empty or too long, or gender is unknown.
            MissingCredential: If the speech key is not configured.
            ProviderError: If both attempts fail; names language and gender.
        """
        text = (text or "").strip()
        if not text:
            raise InvalidInput("Please provide text to speak.")
        if len(text) > MAX_SPEECH_CHARS:
            raise InvalidInput(f"Text is too long; the limit is {MAX_SPEECH_CHARS} characters.")
        language_code = (language_code or "en-US").strip()
        gender = (gender or "FEMALE").strip().upper()
        if gender not in SPEECH_GENDERS:
            raise InvalidInput("Gender must be FEMALE, MALE or NEUTRAL.")
        voice_type = "standard" if (voice_type or "").lower() == "standard" else "neural"
        if not self.speech.enabled:
            raise MissingCredential("TTS_API_KEY")

        failures: list[str] = []
        voices = await self.voices.get_or_empty()
        voice = select_voice(voices, language_code, gender, voice_type)

        if voice is not None:
            voice_language = language_code
            if not voice.speaks(language_code) and voice.language_codes:
                voice_language = voice.language_codes[0]
            try:
                audio = await self.speech.synthesize(text, voice_language, gender, voice.name)
                return AudioResult(data=audio.data, mime_type=audio.mime_type, voice=voice.name)
            except SPEECH_FALLBACK_ERRORS as e:
                failures.append(f"voice {voice.name}: {e.message}")
                logger.warning(f"Voice {voice.name} failed, retrying with auto-selection: {e.message}")

        try:
            audio = await self.speech.synthesize(text, language_code, gender)
        except SPEECH_FALLBACK_ERRORS as e:
            failures.append(f"auto-selected voice: {e.message}")
            raise ProviderError(
                message=(
                    f"Speech synthesis failed for language {language_code}, "
                    f"gender {gender}: " + "; ".join(failures)
                ),
                provider=ProviderType.SPEECH,
                status_code=getattr(e, "status_code", None),
            ) from e
        return AudioResult(data=audio.data, mime_type=audio.mime_type)

    async def _rewrite_prompt(self, prompt: str) -> str | None:
        """Ask the text model for a shorter prompt. None if that fails."""
        try:
            reply = await self.gemini.generate_text(
                image_rewrite.get_prompt(prompt),
                self.settings.rewrite_model,
                max_tokens=256,
            )
        except GatewayError as e:
            logger.warning(f"Prompt rewrite failed: {e.message}")
            return None

        if reply.text == NO_RESPONSE_TEXT:
            return None
        return image_rewrite.clean_rewrite(reply.text) or None

    async def imagine(self, prompt: str, aspect_ratio: str | None = None) -> ImageResult:
        """Generate an image, rewriting the prompt once if nothing came back.

        Raises:
            InvalidInput: If the prompt is empty or the aspect ratio unknown.
            MissingCredential: If the Gemini key is not configured.
            NoMediaReturned: If no image came back after the allowed attempts.
            ProviderError: If the API call fails.
        """
        cleaned = image_rewrite.normalize_prompt(prompt)
        if not cleaned:
            raise InvalidInput("Please provide an image prompt.")
        if aspect_ratio and aspect_ratio not in ASPECT_RATIOS:
            raise InvalidInput(f"Unsupported aspect ratio: {aspect_ratio}")
        if not self.gemini.enabled:
            raise MissingCredential("GEMINI_API_KEY")

        model = self.settings.IMAGE_MODEL
        try:
            image = await self.gemini.generate_image(cleaned, model, aspect_ratio)
            return ImageResult(data=image.data, mime_type=image.mime_type, prompt=cleaned)
        except NoMediaReturned as e:
            if not self.settings.IMAGE_PROMPT_REWRITE:
                raise
            no_media = e
            logger.warning(f"No image for prompt, rewriting once: {e.message}")

        rewritten = await self._rewrite_prompt(cleaned)
        if not rewritten or rewritten == cleaned:
            raise no_media

        image = await self.gemini.generate_image(rewritten, model, aspect_ratio)
        return ImageResult(
            data=image.data,
            mime_type=image.mime_type,
            prompt=rewritten,
            rewritten=True,
        )
