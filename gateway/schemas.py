"""Request and response models for the HTTP API.

Field names are camelCase on the wire to match the static front end; several
request fields accept the alternate names older front ends send.

Examples:
    >>> SpeechRequest.model_validate({"text": "hi", "lang": "de-DE", "gender": "MALE"})
    SpeechRequest(text='hi', language_code='de-DE', gender='MALE', voice_type='neural')
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests


class ChatTurn(CamelModel):
    """One prior turn of the conversation."""

    role: str = "user"
    text: str = Field(default="", validation_alias=AliasChoices("text", "content"))


class ChatRequest(CamelModel):
    """Request to answer a chat message.

    Attributes:
        message: The new user message
        history: Prior turns, oldest first
        model: Optional model override
    """

    message: str = ""
    history: list[ChatTurn] = Field(default_factory=list)
    model: str | None = None


class SpeechRequest(CamelModel):
    """Request to synthesize speech."""

    text: str = ""
    language_code: str = Field(
        default="en-US",
        validation_alias=AliasChoices("languageCode", "language_code", "lang", "language"),
    )
    gender: str = "FEMALE"
    voice_type: str = Field(
        default="neural",
        validation_alias=AliasChoices("voiceType", "voice_type"),
    )


class ImageRequest(CamelModel):
    """Request to generate an image."""

    prompt: str = ""
    aspect_ratio: str | None = Field(
        default=None,
        validation_alias=AliasChoices("aspectRatio", "aspect_ratio"),
    )


# Responses


class ChatResponse(CamelModel):
    ok: bool = True
    reply: str
    model: str | None = None


class SpeechResponse(CamelModel):
    """Synthesized audio as base64 and as a data URL."""

    ok: bool = True
    audio_content: str
    audio_url: str
    mime_type: str
    voice: str | None = None


class ImageResponse(CamelModel):
    """Generated image as base64 and as a data URL."""

    ok: bool = True
    image_base64: str
    image_data_url: str
    mime_type: str
    prompt: str | None = None
    rewritten: bool = False


class VoiceInfo(CamelModel):
    name: str
    language_codes: list[str]
    gender: str
    is_premium: bool


class VoiceListResponse(CamelModel):
    voices: list[VoiceInfo]
    total: int
    cached: bool = False


class ErrorResponse(CamelModel):
    """Error envelope returned for every handled failure."""

    ok: bool = False
    error: str
    message: str
    reply: str | None = None


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    version: str
    providers: dict[str, bool]
