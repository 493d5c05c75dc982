"""Rewrites a conversational utterance into a compact search query."""

from __future__ import annotations

import re

from chatbot_engine.core.errors import ProviderError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.core.metrics import REWRITE_FALLBACKS
from chatbot_engine.llm.client import GenerativeClient

logger = get_logger(__name__)

MAX_QUERY_WORDS = 10

REWRITE_PROMPT = """Rewrite the user's message as a search query for a knowledge base.
Use between 3 and 10 words. Keep product names, numbers and key terms.
Output only the query on a single line, without quotes or explanations.

User message: {message}

Search query:"""

_QUOTES = "\"'`“”‘’"
_LIST_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")
_WHITESPACE_RE = re.compile(r"\s+")


class QueryRewriter:
    """Best-effort rewrite; any provider failure returns the utterance unchanged."""

    def __init__(
        self,
        client: GenerativeClient,
        model_id: str,
        max_tokens: int = 60,
        temperature: float = 0.3,
    ) -> None:
        self.client = client
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

    def rewrite(self, message: str) -> str:
        try:
            raw = self.client.generate(
                self.model_id,
                REWRITE_PROMPT.format(message=message),
                self.max_tokens,
                self.temperature,
                purpose="rewrite",
            )
        except ProviderError as exc:
            REWRITE_FALLBACKS.inc()
            logger.warning("Query rewrite failed, using original message: %s", exc)
            return message

        query = clean_query(raw)
        if not query:
            REWRITE_FALLBACKS.inc()
            logger.warning("Query rewrite returned nothing usable, using original message")
            return message
        logger.debug("Rewrote query", extra={"ctx_query": query})
        return query


def clean_query(raw: str) -> str:
    """First non-empty line, unquoted, whitespace-collapsed, capped at ten words."""
    for line in (raw or "").splitlines():
        candidate = _LIST_MARKER_RE.sub("", line)
        candidate = candidate.translate({ord(char): None for char in _QUOTES})
        candidate = _WHITESPACE_RE.sub(" ", candidate).strip()
        if candidate:
            return " ".join(candidate.split(" ")[:MAX_QUERY_WORDS])
    return ""


__all__ = ["QueryRewriter", "clean_query", "REWRITE_PROMPT"]
