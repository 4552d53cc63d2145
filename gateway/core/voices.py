"""Voice catalog cache and voice selection for speech synthesis.

The catalog is fetched from the speech provider and reused for a fixed TTL.
A refresh replaces the whole list; entries are never merged.

Examples:
    >>> catalog = VoiceCatalog(fetch=speech.list_voices, ttl_seconds=3600)
    >>> voices = await catalog.get()
    >>> select_voice(voices, "en-US", "MALE", "standard").name
    'en-US-Standard-B'

Tests:
    - tests/unit/test_voices.py
"""

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from gateway.core.base import GatewayError

logger = logging.getLogger(__name__)

PREMIUM_VOICE_PATTERN = re.compile(r"Neural2|Wavenet|Studio|Journey|Chirp|Polyglot|News")
STANDARD_VOICE_PATTERN = re.compile(r"Standard")


@dataclass(frozen=True)
class VoiceDescriptor:
    """One voice offered by the speech provider."""

    name: str
    language_codes: tuple[str, ...]
    gender: str
    is_premium: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "VoiceDescriptor":
        name = str(data.get("name", ""))
        return cls(
            name=name,
            language_codes=tuple(data.get("languageCodes") or ()),
            gender=str(data.get("ssmlGender", "SSML_VOICE_GENDER_UNSPECIFIED")).upper(),
            is_premium=bool(PREMIUM_VOICE_PATTERN.search(name)),
        )

    def speaks(self, language_code: str) -> bool:
        """Exact code match, or a bare language ("en") matching any region."""
        wanted = language_code.lower()
        for code in self.language_codes:
            code = code.lower()
            if code == wanted or code.split("-")[0] == wanted:
                return True
        return False


def select_voice(
    voices: Sequence[VoiceDescriptor],
    language_code: str,
    gender: str,
    voice_type: str = "neural",
) -> VoiceDescriptor | None:
    """Pick a voice for language, gender and tier.

    Preference order: requested tier for language+gender, any voice for
    language+gender, any voice for the language, any voice at all.

    Args:
        voices: Catalog to choose from.
        language_code: BCP-47 code such as "en-US".
        gender: "FEMALE" or "MALE".
        voice_type: "neural" (premium voices) or "standard".

    Returns:
        The chosen voice, or None for an empty catalog.
    """
    if not voices:
        return None

    tier_pattern = STANDARD_VOICE_PATTERN if voice_type == "standard" else PREMIUM_VOICE_PATTERN
    by_language = [v for v in voices if v.speaks(language_code)]
    by_gender = [v for v in by_language if v.gender == gender.upper()]

    for voice in by_gender:
        if tier_pattern.search(voice.name):
            return voice
    if by_gender:
        return by_gender[0]
    if by_language:
        return by_language[0]
    return voices[0]


class VoiceCatalog:
    """Process-wide voice list with a time-to-live.

    Attributes:
        ttl_seconds: Age after which the cached list is refetched
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[VoiceDescriptor]]],
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._voices: list[VoiceDescriptor] = []
        self._fetched_at: float | None = None
        self._lock = asyncio.Lock()

    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at > self.ttl_seconds

    @property
    def cached(self) -> bool:
        return not self.is_stale()

    async def get(self) -> list[VoiceDescriptor]:
        """Return the cached catalog, refetching once it is stale."""
        async with self._lock:
            if self.is_stale():
                voices = await self._fetch()
                self._voices = list(voices)
                self._fetched_at = self._clock()
                logger.info(f"Voice catalog refreshed: {len(self._voices)} voices")
            return list(self._voices)

    async def get_or_empty(self) -> list[VoiceDescriptor]:
        """Like get(), but a failed listing yields an empty list (not cached)."""
        try:
            return await self.get()
        except GatewayError as e:
            logger.warning(f"Voice listing failed, provider will auto-select: {e}")
            return []
