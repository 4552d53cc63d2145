"""genai-gateway: request relay for chat, speech and image providers."""

__version__ = "1.0.0"
