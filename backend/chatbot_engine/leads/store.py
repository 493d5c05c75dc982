"""Lead persistence and the per-visitor submission flag."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Mapping

import orjson

from chatbot_engine.core.errors import ConflictError, NotFoundError, OwnershipError, ValidationError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.core.metrics import LEADS_SUBMITTED
from chatbot_engine.db.repositories import ChatbotRepository, ConversationRepository
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.models.entities import Lead, LeadForm
from chatbot_engine.utils.ids import new_id
from chatbot_engine.utils.time import now_ms

logger = get_logger(__name__)

DEFAULT_SUCCESS_MESSAGE = "Thank you! We'll be in touch soon."
DUPLICATE_MESSAGE = "A lead has already been submitted for this conversation."


@dataclass(frozen=True, slots=True)
class LeadReceipt:
    lead_id: str
    success_message: str


class LeadService:
    """Stores leads at most once per (chatbot, conversation)."""

    def __init__(
        self,
        db: SQLiteDatabase,
        chatbots: ChatbotRepository,
        conversations: ConversationRepository,
    ) -> None:
        self.db = db
        self.chatbots = chatbots
        self.conversations = conversations

    def submit(
        self,
        form_id: str,
        chatbot_id: str,
        conversation_id: str | None,
        data: Mapping[str, Any],
        origin: str = "api",
    ) -> LeadReceipt:
        form = self.chatbots.get_form_by_id(form_id)
        if form is None or form.chatbot_id != chatbot_id:
            raise NotFoundError("Form not found")

        if conversation_id:
            conversation = self.conversations.get(conversation_id)
            if conversation is not None and conversation.chatbot_id != chatbot_id:
                raise OwnershipError("Conversation belongs to another chatbot")

        normalized = normalize_lead_data(form, data)
        if conversation_id and self.find(chatbot_id, conversation_id) is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

        lead_id = new_id("lead")
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO leads (id, form_id, chatbot_id, conversation_id, data_json, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [lead_id, form.id, chatbot_id, conversation_id, orjson.dumps(normalized).decode("utf-8"), now_ms()],
                )
                if conversation_id:
                    conn.execute("UPDATE conversations SET lead_id = ? WHERE id = ?", [lead_id, conversation_id])
        except sqlite3.IntegrityError as exc:
            raise ConflictError(DUPLICATE_MESSAGE) from exc

        LEADS_SUBMITTED.labels(origin=origin).inc()
        logger.info("Stored lead", extra={"ctx_lead_id": lead_id, "ctx_chatbot_id": chatbot_id, "ctx_origin": origin})
        return LeadReceipt(lead_id=lead_id, success_message=form.success_message or DEFAULT_SUCCESS_MESSAGE)

    def find(self, chatbot_id: str, conversation_id: str) -> Lead | None:
        row = self.db.query_one(
            "SELECT * FROM leads WHERE chatbot_id = ? AND conversation_id = ?",
            [chatbot_id, conversation_id],
        )
        if row is None:
            return None
        return Lead(
            id=row["id"],
            form_id=row["form_id"],
            chatbot_id=row["chatbot_id"],
            conversation_id=row["conversation_id"],
            data=orjson.loads(row["data_json"]),
            created_at=int(row["created_at"]),
        )

    def count(self, chatbot_id: str) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM leads WHERE chatbot_id = ?", [chatbot_id])
        return int(row["count"]) if row else 0

    def has_submitted(self, chatbot_id: str, visitor_id: str) -> bool:
        row = self.db.query_one(
            "SELECT 1 FROM lead_submissions WHERE chatbot_id = ? AND visitor_id = ?",
            [chatbot_id, visitor_id],
        )
        return row is not None

    def mark_submitted(self, chatbot_id: str, visitor_id: str, lead_id: str | None = None) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO lead_submissions (chatbot_id, visitor_id, lead_id, submitted_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (chatbot_id, visitor_id) DO UPDATE SET lead_id = excluded.lead_id
                """,
                [chatbot_id, visitor_id, lead_id, now_ms()],
            )


def normalize_lead_data(form: LeadForm, data: Mapping[str, Any]) -> dict[str, str]:
    """Key answers by field label, accepting either label or id on input.

    Raises ValidationError listing every required field left blank.
    """
    normalized: dict[str, str] = {}
    missing: list[str] = []
    for lead_field in form.fields:
        value = data.get(lead_field.label)
        if value is None:
            value = data.get(lead_field.id)
        text = "" if value is None else str(value).strip()
        if lead_field.required and not text:
            missing.append(lead_field.label)
        if value is not None:
            normalized[lead_field.label] = text
    if missing:
        raise ValidationError(
            "Missing required fields: " + ", ".join(missing),
            details={"missing": missing},
        )
    return normalized


__all__ = ["LeadService", "LeadReceipt", "normalize_lead_data", "DEFAULT_SUCCESS_MESSAGE"]
