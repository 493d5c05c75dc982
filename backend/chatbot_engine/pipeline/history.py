"""Bounded recent-message window for a conversation."""

from __future__ import annotations

from typing import Sequence

from chatbot_engine.db.repositories import MessageRepository
from chatbot_engine.models.entities import Message, SenderType
from chatbot_engine.utils.time import minutes_ago_ms

NEW_CONVERSATION = "This is the start of the conversation."

_SPEAKERS = {SenderType.USER: "User", SenderType.BOT: "Bot"}


class ConversationHistory:
    def __init__(self, messages: MessageRepository, window_minutes: int = 30, limit: int = 10) -> None:
        self.messages = messages
        self.window_minutes = window_minutes
        self.limit = limit

    def load(self, conversation_id: str | None, now_ms: int | None = None) -> list[Message]:
        if not conversation_id:
            return []
        since = minutes_ago_ms(self.window_minutes, now_ms)
        return self.messages.recent(conversation_id, since_ms=since, limit=self.limit)

    def render(self, conversation_id: str | None, now_ms: int | None = None) -> str:
        return format_history(self.load(conversation_id, now_ms))


def format_history(messages: Sequence[Message]) -> str:
    if not messages:
        return NEW_CONVERSATION
    return "\n".join(f"{_SPEAKERS[message.sender]}: {message.content}" for message in messages)


def is_new_conversation(history: str) -> bool:
    return not history.strip() or history == NEW_CONVERSATION


__all__ = ["NEW_CONVERSATION", "ConversationHistory", "format_history", "is_new_conversation"]
