"""
Canned provider payloads and a fake upstream for offline tests.

MockUpstream plugs into httpx.MockTransport, so every outbound call made by
ProviderClient is answered locally and recorded for assertions.

Usage:
    upstream = MockUpstream()
    upstream.add("gemini-2.5-flash:generateContent", gemini_text_response("Hi"))
    services = build_services(settings, transport=upstream.transport)
"""
import base64
import json
from typing import Any, Callable, Union

import httpx

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"mock-image-data" * 4
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")

MP3_BYTES = b"ID3" + b"mock-audio-data" * 4
MP3_B64 = base64.b64encode(MP3_BYTES).decode("ascii")

MockReply = Union[dict, httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


def gemini_text_response(*texts: str, thought: str | None = None) -> dict[str, Any]:
    """generateContent reply with one text part per argument."""
    parts: list[dict[str, Any]] = []
    if thought:
        parts.append({"text": thought, "thought": True})
    parts.extend({"text": t} for t in texts)
    return {
        "candidates": [
            {"content": {"role": "model", "parts": parts}, "finishReason": "STOP"}
        ]
    }


def gemini_image_response(
    data: str = PNG_B64,
    mime_type: str = "image/png",
    snake_case: bool = False,
) -> dict[str, Any]:
    """generateContent reply carrying inline image data."""
    if snake_case:
        part = {"inline_data": {"mime_type": mime_type, "data": data}}
    else:
        part = {"inlineData": {"mimeType": mime_type, "data": data}}
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": "Here you go"}, part]},
                "finishReason": "STOP",
            }
        ]
    }


def gemini_blocked_response(reason: str = "SAFETY") -> dict[str, Any]:
    """Reply where the prompt was blocked and nothing was generated."""
    return {"promptFeedback": {"blockReason": reason}}


def gemini_no_image_response(text: str = "I can't draw that.") -> dict[str, Any]:
    """Successful reply that only contains text."""
    return gemini_text_response(text)


def imagen_response(data: str = PNG_B64, key: str = "bytesBase64Encoded") -> dict[str, Any]:
    """Imagen predict reply."""
    return {"predictions": [{key: data, "mimeType": "image/png"}]}


def tts_response(data: str = MP3_B64) -> dict[str, Any]:
    """Cloud TTS text:synthesize reply."""
    return {"audioContent": data}


def voice(name: str, gender: str, *language_codes: str) -> dict[str, Any]:
    return {
        "name": name,
        "languageCodes": list(language_codes),
        "ssmlGender": gender,
        "naturalSampleRateHertz": 24000,
    }


def voices_response(*voices: dict[str, Any]) -> dict[str, Any]:
    """Cloud TTS voices listing."""
    if not voices:
        voices = (
            voice("en-US-Standard-B", "MALE", "en-US"),
            voice("en-US-Neural2-D", "MALE", "en-US"),
            voice("en-US-Standard-C", "FEMALE", "en-US"),
            voice("en-US-Neural2-F", "FEMALE", "en-US"),
            voice("de-DE-Wavenet-A", "FEMALE", "de-DE"),
        )
    return {"voices": list(voices)}


def gemini_error(
    message: str,
    status_code: int = 404,
    status: str = "NOT_FOUND",
) -> httpx.Response:
    """Google-style error envelope with a matching HTTP status."""
    return httpx.Response(
        status_code,
        json={"error": {"code": status_code, "message": message, "status": status}},
    )


def model_not_found(model: str) -> httpx.Response:
    return gemini_error(
        f"models/{model} is not found for API version v1beta, "
        f"or is not supported for generateContent."
    )


class MockUpstream:
    """Fake provider endpoints keyed by URL substring.

    Each route holds a queue of replies. Replies are consumed in order and the
    last one is repeated once the queue is down to one. A request matching no
    route fails the test.
    """

    def __init__(self):
        self.routes: list[tuple[str, list[MockReply]]] = []
        self.requests: list[httpx.Request] = []

    def add(self, match: str, *replies: MockReply) -> "MockUpstream":
        self.routes.append((match, list(replies)))
        return self

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for match, replies in self.routes:
            if match in url and replies:
                reply = replies.pop(0) if len(replies) > 1 else replies[0]
                if isinstance(reply, Exception):
                    raise reply
                if isinstance(reply, httpx.Response):
                    # Fresh copy so a repeated reply is never a consumed stream
                    return httpx.Response(
                        reply.status_code, headers=reply.headers, content=reply.content
                    )
                if callable(reply):
                    return reply(request)
                return httpx.Response(200, json=reply)
        raise AssertionError(f"Unexpected upstream request: {request.method} {url}")

    def calls(self, match: str = "") -> list[httpx.Request]:
        """Recorded requests whose URL contains match."""
        return [r for r in self.requests if match in str(r.url)]

    def bodies(self, match: str = "") -> list[dict[str, Any]]:
        """JSON bodies of recorded requests whose URL contains match."""
        return [json.loads(r.content) for r in self.calls(match) if r.content]
