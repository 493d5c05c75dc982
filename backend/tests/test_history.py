"""Tests for the conversation history window."""

from chatbot_engine.db.repositories import ChatbotRepository, ConversationRepository, MessageRepository
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.models.entities import SenderType
from chatbot_engine.pipeline.history import (
    NEW_CONVERSATION,
    ConversationHistory,
    format_history,
    is_new_conversation,
)
from chatbot_engine.utils.time import now_ms


def _conversation(db: SQLiteDatabase) -> str:
    chatbot_id = ChatbotRepository(db).create(name="Acme")
    return ConversationRepository(db).create(chatbot_id, "hi").id


def test_empty_window_renders_sentinel(db: SQLiteDatabase) -> None:
    history = ConversationHistory(MessageRepository(db))
    assert history.render(_conversation(db)) == NEW_CONVERSATION
    assert history.render(None) == NEW_CONVERSATION
    assert is_new_conversation(NEW_CONVERSATION)
    assert is_new_conversation("")


def test_round_trip_preserves_alternation_and_content(db: SQLiteDatabase) -> None:
    messages = MessageRepository(db)
    conversation_id = _conversation(db)
    turns = [
        (SenderType.USER, "Do you have a free tier?"),
        (SenderType.BOT, "Yes: up to 3 seats.\nNo card needed."),
        (SenderType.USER, "And after that?"),
        (SenderType.BOT, "The team plan."),
    ]
    for sender, content in turns:
        messages.append(conversation_id, sender, content)

    loaded = ConversationHistory(messages).load(conversation_id)
    assert [(message.sender, message.content) for message in loaded] == turns
    assert format_history(loaded) == (
        "User: Do you have a free tier?\n"
        "Bot: Yes: up to 3 seats.\nNo card needed.\n"
        "User: And after that?\n"
        "Bot: The team plan."
    )


def test_window_keeps_most_recent_messages_within_time_limit(db: SQLiteDatabase) -> None:
    messages = MessageRepository(db)
    conversation_id = _conversation(db)
    now = now_ms()
    db.execute(
        "INSERT INTO messages (id, conversation_id, sender, content, created_at) VALUES (?, ?, ?, ?, ?)",
        ["msg_old", conversation_id, "USER", "stale", now - 31 * 60 * 1000],
    )
    db.commit()
    for idx in range(12):
        messages.append(conversation_id, SenderType.USER if idx % 2 == 0 else SenderType.BOT, f"m{idx}")

    loaded = ConversationHistory(messages, window_minutes=30, limit=10).load(conversation_id)
    assert [message.content for message in loaded] == [f"m{idx}" for idx in range(2, 12)]
