"""Unit tests for voice selection and the voice catalog cache.

Tests for gateway/core/voices.py.

Run with:
    pytest tests/unit/test_voices.py -v
"""

import asyncio

import pytest

from gateway.config import ProviderType
from gateway.core.base import ProviderError
from gateway.core.voices import VoiceCatalog, VoiceDescriptor, select_voice


def make_voice(name: str, gender: str, *codes: str) -> VoiceDescriptor:
    return VoiceDescriptor.from_api({"name": name, "ssmlGender": gender, "languageCodes": list(codes)})


CATALOG = [
    make_voice("en-US-Neural2-D", "MALE", "en-US"),
    make_voice("en-US-Standard-B", "MALE", "en-US"),
    make_voice("en-US-Neural2-F", "FEMALE", "en-US"),
    make_voice("en-GB-Wavenet-A", "FEMALE", "en-GB"),
    make_voice("de-DE-Standard-A", "FEMALE", "de-DE"),
]


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.fast
class TestVoiceDescriptor:
    """Tests for VoiceDescriptor."""

    def test_from_api(self):
        """Test catalog entries are parsed and tiered."""
        voice = VoiceDescriptor.from_api(
            {"name": "en-US-Studio-O", "ssmlGender": "female", "languageCodes": ["en-US"]}
        )
        assert voice.gender == "FEMALE"
        assert voice.language_codes == ("en-US",)
        assert voice.is_premium is True
        assert make_voice("en-US-Standard-A", "MALE", "en-US").is_premium is False

    def test_speaks(self):
        """Test exact and bare-language matching."""
        voice = make_voice("en-GB-Wavenet-A", "FEMALE", "en-GB")
        assert voice.speaks("en-GB")
        assert voice.speaks("en-gb")
        assert voice.speaks("en")
        assert not voice.speaks("en-US")


@pytest.mark.fast
class TestSelectVoice:
    """Tests for select_voice."""

    def test_standard_tier_prefers_standard(self):
        """Test en-US/MALE/standard picks the Standard voice over Neural2."""
        assert select_voice(CATALOG, "en-US", "MALE", "standard").name == "en-US-Standard-B"

    def test_neural_tier_prefers_premium(self):
        """Test en-US/MALE/neural picks the Neural2 voice."""
        assert select_voice(CATALOG, "en-US", "MALE", "neural").name == "en-US-Neural2-D"

    def test_missing_tier_falls_back_to_gender(self):
        """Test another tier is used when the requested one is absent."""
        assert select_voice(CATALOG, "en-US", "FEMALE", "standard").name == "en-US-Neural2-F"

    def test_missing_gender_falls_back_to_language(self):
        """Test any voice for the language is used when the gender is absent."""
        assert select_voice(CATALOG, "de-DE", "MALE", "neural").name == "de-DE-Standard-A"

    def test_unknown_language_falls_back_to_first(self):
        """Test the first voice is used when nothing matches."""
        assert select_voice(CATALOG, "ja-JP", "FEMALE").name == "en-US-Neural2-D"

    def test_empty_catalog(self):
        """Test an empty catalog selects nothing."""
        assert select_voice([], "en-US", "FEMALE") is None


@pytest.mark.fast
class TestVoiceCatalog:
    """Tests for VoiceCatalog TTL caching."""

    @pytest.mark.asyncio
    async def test_fetch_once_within_ttl(self):
        """Test the catalog is reused until the TTL passes."""
        clock = FakeClock()
        calls = []

        async def fetch():
            calls.append(clock.now)
            return list(CATALOG)

        catalog = VoiceCatalog(fetch, ttl_seconds=3600, clock=clock)
        assert catalog.cached is False

        await catalog.get()
        clock.now = 3600.0
        await catalog.get()
        assert calls == [0.0]
        assert catalog.cached is True

    @pytest.mark.asyncio
    async def test_stale_strictly_after_ttl(self):
        """Test the catalog is refetched once older than the TTL."""
        clock = FakeClock()
        calls = []

        async def fetch():
            calls.append(clock.now)
            return list(CATALOG)

        catalog = VoiceCatalog(fetch, ttl_seconds=3600, clock=clock)
        await catalog.get()
        clock.now = 3600.5
        assert catalog.is_stale()
        await catalog.get()
        assert calls == [0.0, 3600.5]

    @pytest.mark.asyncio
    async def test_refresh_replaces_list(self):
        """Test a refresh replaces entries instead of merging them."""
        clock = FakeClock()
        batches = [CATALOG[:2], CATALOG[2:3]]

        async def fetch():
            return batches.pop(0)

        catalog = VoiceCatalog(fetch, ttl_seconds=10, clock=clock)
        await catalog.get()
        clock.now = 11
        voices = await catalog.get()
        assert [v.name for v in voices] == ["en-US-Neural2-F"]

    @pytest.mark.asyncio
    async def test_get_returns_copy(self):
        """Test callers cannot mutate the cached list."""
        async def fetch():
            return list(CATALOG)

        catalog = VoiceCatalog(fetch, ttl_seconds=10, clock=FakeClock())
        voices = await catalog.get()
        voices.clear()
        assert len(await catalog.get()) == len(CATALOG)

    @pytest.mark.asyncio
    async def test_get_or_empty_on_failure(self):
        """Test a failed listing yields an empty list and is not cached."""
        attempts = []

        async def fetch():
            attempts.append(1)
            raise ProviderError("Permission denied", ProviderType.SPEECH, 403)

        catalog = VoiceCatalog(fetch, ttl_seconds=10, clock=FakeClock())
        assert await catalog.get_or_empty() == []
        assert await catalog.get_or_empty() == []
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_get_propagates_failure(self):
        """Test get() itself surfaces the provider error."""
        async def fetch():
            raise ProviderError("Permission denied", ProviderType.SPEECH, 403)

        catalog = VoiceCatalog(fetch, ttl_seconds=10, clock=FakeClock())
        with pytest.raises(ProviderError):
            await catalog.get()

    @pytest.mark.asyncio
    async def test_concurrent_gets_fetch_once(self):
        """Test simultaneous callers on a cold cache share one fetch."""
        calls = []

        async def fetch():
            calls.append(1)
            await asyncio.sleep(0.01)
            return list(CATALOG)

        catalog = VoiceCatalog(fetch, ttl_seconds=10, clock=FakeClock())

        results = await asyncio.gather(*(catalog.get() for _ in range(10)))

        assert len(calls) == 1
        assert all(len(voices) == len(CATALOG) for voices in results)
