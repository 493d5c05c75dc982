"""Error taxonomy for the answering pipeline and lead collection."""

from __future__ import annotations

from typing import Any

FALLBACK_MESSAGE = "Sorry, I encountered an error. Please try again."


class ChatbotEngineError(Exception):
    """Base class; ``status_code`` and ``public_message`` drive the API mapping."""

    status_code = 500
    public_message = FALLBACK_MESSAGE

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ChatbotEngineError):
    status_code = 404

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.message


class OwnershipError(ChatbotEngineError):
    """Conversation exists but belongs to a different chatbot."""

    status_code = 403
    public_message = "Conversation does not belong to this chatbot"


class ValidationError(ChatbotEngineError):
    status_code = 400

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.message


class ProviderError(ChatbotEngineError):
    """A generative model or similarity search call failed."""

    status_code = 500


class RateLimitError(ProviderError):
    """The model provider rejected the call for quota or rate limits."""

    status_code = 429


class ProviderConfigError(ProviderError):
    """The model provider rejected the configured API key."""

    status_code = 503


class ConflictError(ChatbotEngineError):
    status_code = 409

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.message


class ConfigError(ChatbotEngineError):
    """Malformed stored configuration (automation keywords, lead fields)."""


class DimensionMismatchError(ValueError):
    """Vector dimensionality differs from the one fixed for an index."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


__all__ = [
    "FALLBACK_MESSAGE",
    "ChatbotEngineError",
    "NotFoundError",
    "OwnershipError",
    "ValidationError",
    "ProviderError",
    "RateLimitError",
    "ProviderConfigError",
    "ConflictError",
    "ConfigError",
    "DimensionMismatchError",
]
