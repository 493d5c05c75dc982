"""Row-level access for chatbots, conversations and messages."""

from __future__ import annotations

import sqlite3
from typing import Any

import orjson

from chatbot_engine.core.errors import ConfigError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.models.entities import (
    Chatbot,
    Conversation,
    FieldType,
    KnowledgeSource,
    LeadField,
    LeadForm,
    LogicAutomation,
    Message,
    SenderType,
)
from chatbot_engine.utils.ids import new_id
from chatbot_engine.utils.time import now_ms

logger = get_logger(__name__)

TITLE_LENGTH = 50


class ChatbotRepository:
    """Loads chatbot snapshots and stores their configuration rows."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, chatbot_id: str) -> Chatbot | None:
        row = self.db.query_one("SELECT * FROM chatbots WHERE id = ?", [chatbot_id])
        if row is None:
            return None
        sources = tuple(
            KnowledgeSource(id=src["id"], chatbot_id=src["chatbot_id"], name=src["name"])
            for src in self.db.query(
                "SELECT id, chatbot_id, name FROM knowledge_sources WHERE chatbot_id = ? ORDER BY created_at, rowid",
                [chatbot_id],
            )
        )
        automations = tuple(
            _row_to_automation(item)
            for item in self.db.query(
                "SELECT * FROM logic_automations WHERE chatbot_id = ? ORDER BY created_at, rowid",
                [chatbot_id],
            )
        )
        return Chatbot(
            id=row["id"],
            workspace_id=row["workspace_id"],
            name=row["name"],
            directive=row["directive"],
            description=row["description"],
            model_id=row["model_id"],
            max_tokens=int(row["max_tokens"]),
            temperature=float(row["temperature"]),
            knowledge_sources=sources,
            automations=automations,
            lead_form=self.get_form(chatbot_id),
        )

    def get_form(self, chatbot_id: str) -> LeadForm | None:
        row = self.db.query_one("SELECT * FROM lead_forms WHERE chatbot_id = ?", [chatbot_id])
        return _row_to_form(row) if row else None

    def get_form_by_id(self, form_id: str) -> LeadForm | None:
        row = self.db.query_one("SELECT * FROM lead_forms WHERE id = ?", [form_id])
        return _row_to_form(row) if row else None

    def create(
        self,
        name: str,
        directive: str | None = None,
        description: str | None = None,
        model_id: str | None = None,
        max_tokens: int = 600,
        temperature: float = 0.7,
        workspace_id: str | None = None,
    ) -> str:
        chatbot_id = new_id("bot")
        now = now_ms()
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO chatbots (
                  id, workspace_id, name, directive, description, model_id,
                  max_tokens, temperature, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [chatbot_id, workspace_id, name, directive, description, model_id, max_tokens, temperature, now, now],
            )
        return chatbot_id

    def add_source(self, chatbot_id: str, name: str) -> KnowledgeSource:
        source_id = new_id("src")
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO knowledge_sources (id, chatbot_id, name, created_at) VALUES (?, ?, ?, ?)",
                [source_id, chatbot_id, name, now_ms()],
            )
        return KnowledgeSource(id=source_id, chatbot_id=chatbot_id, name=name)

    def add_automation(
        self,
        chatbot_id: str,
        action: str,
        keywords: Any,
        name: str | None = None,
        trigger_type: str = "KEYWORD",
        action_config: Any = None,
        is_active: bool = True,
    ) -> str:
        """Store an automation; string payloads are kept verbatim, even if malformed."""
        automation_id = new_id("lgc")
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO logic_automations (
                  id, chatbot_id, name, trigger_type, keywords_json, action,
                  action_config_json, is_active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    automation_id,
                    chatbot_id,
                    name,
                    trigger_type,
                    _as_json_text(keywords),
                    action,
                    _as_json_text(action_config),
                    int(is_active),
                    now_ms(),
                ],
            )
        return automation_id

    def upsert_form(
        self,
        chatbot_id: str,
        fields: Any,
        title: str | None = None,
        success_message: str | None = None,
    ) -> str:
        existing = self.db.query_one("SELECT id FROM lead_forms WHERE chatbot_id = ?", [chatbot_id])
        now = now_ms()
        fields_json = _as_json_text(fields)
        with self.db.transaction() as conn:
            if existing:
                form_id = existing["id"]
                conn.execute(
                    "UPDATE lead_forms SET title = ?, fields_json = ?, success_message = ?, updated_at = ? WHERE id = ?",
                    [title, fields_json, success_message, now, form_id],
                )
            else:
                form_id = new_id("frm")
                conn.execute(
                    """
                    INSERT INTO lead_forms (id, chatbot_id, title, fields_json, success_message, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [form_id, chatbot_id, title, fields_json, success_message, now, now],
                )
        return form_id


class ConversationRepository:
    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, conversation_id: str) -> Conversation | None:
        row = self.db.query_one("SELECT * FROM conversations WHERE id = ?", [conversation_id])
        return _row_to_conversation(row) if row else None

    def create(self, chatbot_id: str, first_message: str, visitor_id: str | None = None) -> Conversation:
        conversation = Conversation(
            id=new_id("cnv"),
            chatbot_id=chatbot_id,
            visitor_id=visitor_id,
            title=first_message[:TITLE_LENGTH],
            is_active=True,
            metadata={},
            lead_id=None,
            created_at=now_ms(),
        )
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO conversations (id, chatbot_id, visitor_id, title, is_active, metadata_json, created_at)
                VALUES (?, ?, ?, ?, 1, ?, ?)
                """,
                [
                    conversation.id,
                    chatbot_id,
                    visitor_id,
                    conversation.title,
                    orjson.dumps(conversation.metadata).decode("utf-8"),
                    conversation.created_at,
                ],
            )
        return conversation

    def update(
        self,
        conversation_id: str,
        is_active: bool | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Conversation | None:
        """Apply the given changes; deactivating stamps ``ended_at``."""
        updates: list[str] = []
        params: list[Any] = []
        if is_active is not None:
            updates.append("is_active = ?")
            params.append(int(is_active))
            if not is_active:
                updates.append("ended_at = ?")
                params.append(now_ms())
        if metadata is not None:
            updates.append("metadata_json = ?")
            params.append(orjson.dumps(metadata).decode("utf-8"))
        if updates:
            params.append(conversation_id)
            with self.db.transaction() as conn:
                conn.execute(f"UPDATE conversations SET {', '.join(updates)} WHERE id = ?", params)
        return self.get(conversation_id)


class MessageRepository:
    """Append-only message log."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def append(self, conversation_id: str, sender: SenderType, content: str) -> Message:
        message = Message(
            id=new_id("msg"),
            conversation_id=conversation_id,
            sender=sender,
            content=content,
            created_at=now_ms(),
        )
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO messages (id, conversation_id, sender, content, created_at) VALUES (?, ?, ?, ?, ?)",
                [message.id, conversation_id, sender.value, content, message.created_at],
            )
        return message

    def recent(self, conversation_id: str, since_ms: int, limit: int) -> list[Message]:
        """Most recent ``limit`` messages newer than ``since_ms``, oldest first."""
        rows = self.db.query(
            """
            SELECT id, conversation_id, sender, content, created_at
            FROM messages
            WHERE conversation_id = ? AND created_at >= ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            [conversation_id, since_ms, limit],
        )
        return [_row_to_message(row) for row in reversed(rows)]

    def transcript(self, conversation_id: str, limit: int = 50) -> list[Message]:
        rows = self.db.query(
            """
            SELECT id, conversation_id, sender, content, created_at
            FROM messages
            WHERE conversation_id = ?
            ORDER BY created_at ASC, rowid ASC
            LIMIT ?
            """,
            [conversation_id, limit],
        )
        return [_row_to_message(row) for row in rows]


def parse_lead_fields(raw: Any) -> tuple[LeadField, ...]:
    """Parse stored lead field JSON.

    Raises ConfigError when the payload is not a JSON list. Individual entries
    that lack a label or carry an unknown type are dropped.
    """
    if raw is None or raw == "":
        return ()
    payload = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise ConfigError("Lead form fields are not valid JSON") from exc
    if not isinstance(payload, list):
        raise ConfigError("Lead form fields must be a JSON list")
    fields: list[LeadField] = []
    for idx, item in enumerate(payload):
        if not isinstance(item, dict) or not str(item.get("label") or "").strip():
            logger.warning("Dropping malformed lead field at position %s", idx)
            continue
        try:
            field_type = FieldType(str(item.get("type") or "TEXT").upper())
        except ValueError:
            logger.warning("Dropping lead field %r with unknown type %r", item.get("label"), item.get("type"))
            continue
        options = item.get("options") or []
        fields.append(
            LeadField(
                id=str(item.get("id") or f"field_{idx}"),
                type=field_type,
                label=str(item["label"]).strip(),
                required=bool(item.get("required", False)),
                placeholder=item.get("placeholder") or None,
                options=tuple(str(option) for option in options if isinstance(option, (str, int, float))),
            )
        )
    return tuple(fields)


def _row_to_form(row: sqlite3.Row) -> LeadForm:
    try:
        fields = parse_lead_fields(row["fields_json"])
    except ConfigError as exc:
        logger.warning("Ignoring lead form %s fields: %s", row["id"], exc)
        fields = ()
    return LeadForm(
        id=row["id"],
        chatbot_id=row["chatbot_id"],
        title=row["title"],
        fields=fields,
        success_message=row["success_message"],
    )


def _row_to_automation(row: sqlite3.Row) -> LogicAutomation:
    return LogicAutomation(
        id=row["id"],
        chatbot_id=row["chatbot_id"],
        name=row["name"],
        trigger_type=row["trigger_type"] or "KEYWORD",
        keywords_raw=row["keywords_json"],
        action=row["action"],
        action_config_raw=row["action_config_json"],
        is_active=bool(row["is_active"]),
    )


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    metadata = orjson.loads(row["metadata_json"]) if row["metadata_json"] else {}
    return Conversation(
        id=row["id"],
        chatbot_id=row["chatbot_id"],
        visitor_id=row["visitor_id"],
        title=row["title"],
        is_active=bool(row["is_active"]),
        metadata=metadata,
        lead_id=row["lead_id"],
        created_at=int(row["created_at"]),
        ended_at=row["ended_at"],
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        sender=SenderType(row["sender"]),
        content=row["content"],
        created_at=int(row["created_at"]),
    )


def _as_json_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return orjson.dumps(value).decode("utf-8")


__all__ = [
    "ChatbotRepository",
    "ConversationRepository",
    "MessageRepository",
    "parse_lead_fields",
]
