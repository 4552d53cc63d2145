"""Gemini REST provider for chat text and image generation.

Builds generateContent / predict requests against the Generative Language API
and normalizes the replies.

Image requests are routed by model:
    - gemini-*-image models use generateContent with IMAGE response modality
    - imagen-* models use the predict endpoint (predictions list)

Examples:
    >>> provider = GeminiProvider(client, api_key="AIza...")
    >>> reply = await provider.chat(
    ...     model="gemini-2.5-flash",
    ...     contents=[{"role": "user", "parts": [{"text": "Hello"}]}],
    ... )
    >>> reply.text

Tests:
    - tests/unit/test_gemini_provider.py
"""

import logging
from typing import Any

from gateway.config import GEMINI_BASE_URL, ProviderType
from gateway.core.base import (
    ImageResult,
    MissingCredential,
    OutboundRequest,
    ResultKind,
    TextReply,
)
from gateway.core.normalizer import extract
from gateway.core.providers.client import ProviderClient

logger = logging.getLogger(__name__)


def model_path(model: str) -> str:
    """Strip an optional 'models/' prefix from a model id."""
    return model.removeprefix("models/")


def is_imagen_model(model: str) -> bool:
    return model_path(model).startswith("imagen")


class GeminiProvider:
    """Gemini REST provider.

    Attributes:
        provider_type: ProviderType.GEMINI
        api_key: Gemini API key (may be None; calls then raise MissingCredential)
        base_url: API base URL
    """

    provider_type = ProviderType.GEMINI

    def __init__(
        self,
        client: ProviderClient,
        api_key: str | None,
        base_url: str = GEMINI_BASE_URL,
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise MissingCredential("GEMINI_API_KEY")
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def generate_content_request(
        self,
        model: str,
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any] | None = None,
        system_instruction: str | None = None,
    ) -> OutboundRequest:
        """Build a generateContent request.

        Args:
            model: Model id, with or without a 'models/' prefix.
            contents: Gemini contents list.
            generation_config: Optional generationConfig object.
            system_instruction: Optional system instruction text.

        Returns:
            OutboundRequest ready for ProviderClient.invoke.
        """
        body: dict[str, Any] = {"contents": contents}
        if generation_config:
            body["generationConfig"] = generation_config
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        return OutboundRequest(
            url=f"{self.base_url}/models/{model_path(model)}:generateContent",
            method="POST",
            headers=self._headers(),
            body=body,
            provider=self.provider_type,
        )

    def predict_request(
        self,
        model: str,
        prompt: str,
        aspect_ratio: str | None = None,
    ) -> OutboundRequest:
        """Build an Imagen predict request for one image."""
        parameters: dict[str, Any] = {"sampleCount": 1}
        if aspect_ratio:
            parameters["aspectRatio"] = aspect_ratio

        return OutboundRequest(
            url=f"{self.base_url}/models/{model_path(model)}:predict",
            method="POST",
            headers=self._headers(),
            body={"instances": [{"prompt": prompt}], "parameters": parameters},
            provider=self.provider_type,
        )

    async def chat(
        self,
        model: str,
        contents: list[dict[str, Any]],
        system_instruction: str | None = None,
        generation_config: dict[str, Any] | None = None,
    ) -> TextReply:
        """Generate a text reply.

        Raises:
            MissingCredential: If no API key is configured.
            ProviderError: If the API call fails.
        """
        request = self.generate_content_request(
            model,
            contents,
            generation_config=generation_config,
            system_instruction=system_instruction,
        )
        response = await self.client.invoke(request)
        reply = extract(response, ResultKind.TEXT)
        return TextReply(text=reply.text, model=model_path(model))

    async def generate_text(self, prompt: str, model: str, max_tokens: int | None = None) -> TextReply:
        """Single-turn text generation (used for prompt rewriting)."""
        config = {"maxOutputTokens": max_tokens} if max_tokens else None
        return await self.chat(
            model,
            [{"role": "user", "parts": [{"text": prompt}]}],
            generation_config=config,
        )

    async def generate_image(
        self,
        prompt: str,
        model: str,
        aspect_ratio: str | None = None,
    ) -> ImageResult:
        """Generate one image.

        Raises:
            MissingCredential: If no API key is configured.
            NoMediaReturned: If the reply carries no image.
            ProviderError: If the API call fails.
        """
        if is_imagen_model(model):
            request = self.predict_request(model, prompt, aspect_ratio)
        else:
            generation_config: dict[str, Any] = {"responseModalities": ["TEXT", "IMAGE"]}
            if aspect_ratio:
                generation_config["imageConfig"] = {"aspectRatio": aspect_ratio}
            request = self.generate_content_request(
                model,
                [{"role": "user", "parts": [{"text": prompt}]}],
                generation_config=generation_config,
            )

        response = await self.client.invoke(request)
        return extract(response, ResultKind.IMAGE)
