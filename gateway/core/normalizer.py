"""Response normalization for heterogeneous provider payloads.

Provider replies arrive in several shapes (Gemini candidates with text or
inline media parts, Imagen predictions, Cloud TTS audioContent). Each result
kind has an ordered list of probes; a probe returns the payload it found or
None, and the first hit wins.

Examples:
    >>> reply = extract(response, ResultKind.TEXT)
    >>> reply.text
    'Hello, world'

Tests:
    - tests/unit/test_normalizer.py
"""

import base64
import binascii
import logging
from collections.abc import Callable, Iterator
from typing import Any

from gateway.core.base import (
    AudioResult,
    CanonicalResult,
    ImageResult,
    MalformedProviderResponse,
    NoMediaReturned,
    ProviderResponse,
    ResultKind,
    TextReply,
)

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "No response"

INLINE_DATA_KEYS = ("inlineData", "inline_data")
MIME_TYPE_KEYS = ("mimeType", "mime_type")

# Field names seen for the encoded image in batch ("predictions") responses
PREDICTION_PAYLOAD_KEYS = ("bytesBase64Encoded", "imageBytes", "b64_json", "image", "base64")

# Best effort: an unknown string field this long is assumed to be the image.
# Not a contract; providers that rename the field will usually still match.
LONG_PAYLOAD_THRESHOLD = 1000

# (encoded payload, mime type or None)
Media = tuple[str, str | None]
MediaProbe = Callable[[Any], Media | None]


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _iter_parts(body: Any) -> Iterator[dict[str, Any]]:
    """Yield every candidates[*].content.parts[*] dict in document order."""
    if not isinstance(body, dict):
        return
    for candidate in _as_list(body.get("candidates")):
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content")
        if not isinstance(content, dict):
            continue
        for part in _as_list(content.get("parts")):
            if isinstance(part, dict):
                yield part


def _first_key(mapping: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if mapping.get(key):
            return mapping[key]
    return None


def probe_text(body: Any) -> str | None:
    """Concatenate every text part, skipping model thoughts."""
    fragments = [
        part["text"]
        for part in _iter_parts(body)
        if isinstance(part.get("text"), str) and not part.get("thought")
    ]
    text = "".join(fragments)
    return text if text.strip() else None


def probe_inline_data(body: Any) -> Media | None:
    """First part holding inline media, under either naming convention."""
    for part in _iter_parts(body):
        inline = _first_key(part, INLINE_DATA_KEYS)
        if isinstance(inline, dict) and isinstance(inline.get("data"), str):
            return inline["data"], _first_key(inline, MIME_TYPE_KEYS)
    return None


def probe_audio_content(body: Any) -> Media | None:
    """Cloud TTS shape: top-level audioContent string."""
    if isinstance(body, dict) and isinstance(body.get("audioContent"), str) and body["audioContent"]:
        return body["audioContent"], None
    return None


def probe_predictions(body: Any) -> Media | None:
    """Batch image shape: predictions[0] with a known or very long field."""
    if not isinstance(body, dict):
        return None
    predictions = _as_list(body.get("predictions"))
    if not predictions or not isinstance(predictions[0], dict):
        return None

    prediction = predictions[0]
    mime_type = _first_key(prediction, MIME_TYPE_KEYS)
    for key in PREDICTION_PAYLOAD_KEYS:
        value = prediction.get(key)
        if isinstance(value, str) and value:
            return value, mime_type

    for key, value in prediction.items():
        if isinstance(value, str) and len(value) > LONG_PAYLOAD_THRESHOLD:
            logger.info(f"Using heuristic image field '{key}' from prediction")
            return value, mime_type
    return None


MEDIA_PROBES: dict[ResultKind, tuple[MediaProbe, ...]] = {
    ResultKind.AUDIO: (probe_audio_content, probe_inline_data),
    ResultKind.IMAGE: (probe_inline_data, probe_predictions),
}

DEFAULT_MIME_TYPES = {
    ResultKind.AUDIO: "audio/mpeg",
    ResultKind.IMAGE: "image/png",
}


def _no_media_reason(body: Any, kind: ResultKind) -> str:
    """Build a user-facing message, naming a block/finish reason if present."""
    noun = "image" if kind == ResultKind.IMAGE else "audio"
    message = f"The AI service did not return any {noun}."
    if not isinstance(body, dict):
        return message

    feedback = body.get("promptFeedback")
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        return f"{message} The request was blocked ({feedback['blockReason']})."

    for candidate in _as_list(body.get("candidates")):
        if isinstance(candidate, dict):
            reason = candidate.get("finishReason")
            if reason and reason != "STOP":
                return f"{message} Generation stopped ({reason})."

    text = probe_text(body)
    if text:
        return f"{message} It replied: {text[:200]}"
    return message


def _decode(encoded: str, response: ProviderResponse) -> bytes:
    # Accept data URLs as well as bare base64
    if encoded.startswith("data:") and "," in encoded:
        encoded = encoded.split(",", 1)[1]
    # Line-wrapped or unpadded payloads are still valid base64
    compact = "".join(encoded.split())
    compact += "=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedProviderResponse(
            response.provider,
            encoded,
            status_code=response.status_code,
            reason="Provider returned media that is not valid base64",
        ) from e


def extract(response: ProviderResponse, kind: ResultKind) -> CanonicalResult:
    """Extract the canonical payload of the given kind from a provider response.

    Args:
        response: Parsed provider response.
        kind: Which payload to extract.

    Returns:
        TextReply, AudioResult or ImageResult.

    Raises:
        NoMediaReturned: If an audio/image response carries no media.
        MalformedProviderResponse: If the media is not valid base64.
    """
    body = response.body

    if kind == ResultKind.TEXT:
        text = probe_text(body)
        if text is None:
            logger.info("Provider returned no text; using sentinel reply")
            return TextReply(text=NO_RESPONSE_TEXT)
        return TextReply(text=text)

    media: Media | None = None
    for probe in MEDIA_PROBES[kind]:
        media = probe(body)
        if media is not None:
            break

    if media is None:
        raise NoMediaReturned(_no_media_reason(body, kind))

    encoded, mime_type = media
    data = _decode(encoded, response)
    mime_type = mime_type or DEFAULT_MIME_TYPES[kind]
    if kind == ResultKind.AUDIO:
        return AudioResult(data=data, mime_type=mime_type)
    return ImageResult(data=data, mime_type=mime_type)
