"""Internal dataclasses representing persisted entities and pipeline values."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SenderType(str, Enum):
    USER = "USER"
    BOT = "BOT"


class FieldType(str, Enum):
    TEXT = "TEXT"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    NUMBER = "NUMBER"
    CURRENCY = "CURRENCY"
    DATE = "DATE"
    LINK = "LINK"
    SELECT = "SELECT"
    RADIO = "RADIO"
    CHECKBOX = "CHECKBOX"
    TEXTAREA = "TEXTAREA"
    MULTISELECT = "MULTISELECT"


class ActionType(str, Enum):
    LINK_BUTTON = "LINK_BUTTON"
    SCHEDULE_MEETING = "SCHEDULE_MEETING"
    COLLECT_LEADS = "COLLECT_LEADS"

    @classmethod
    def parse(cls, value: str) -> "ActionType | None":
        """Accept both stored enum names and camelCase feature names."""
        aliases = {
            "linkbutton": cls.LINK_BUTTON,
            "link_button": cls.LINK_BUTTON,
            "meetingschedule": cls.SCHEDULE_MEETING,
            "schedule_meeting": cls.SCHEDULE_MEETING,
            "leadcollection": cls.COLLECT_LEADS,
            "collect_leads": cls.COLLECT_LEADS,
        }
        return aliases.get((value or "").strip().lower())


@dataclass(frozen=True, slots=True)
class KnowledgeSource:
    id: str
    chatbot_id: str
    name: str


@dataclass(frozen=True, slots=True)
class LogicAutomation:
    id: str
    chatbot_id: str
    name: str | None
    trigger_type: str
    keywords_raw: str | None
    action: str
    action_config_raw: str | None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class LeadField:
    id: str
    type: FieldType
    label: str
    required: bool = False
    placeholder: str | None = None
    options: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LeadForm:
    id: str
    chatbot_id: str
    title: str | None
    fields: tuple[LeadField, ...]
    success_message: str | None = None


@dataclass(frozen=True, slots=True)
class Chatbot:
    """Read-only snapshot of a chatbot for the duration of one turn."""

    id: str
    workspace_id: str | None
    name: str
    directive: str | None
    description: str | None
    model_id: str | None
    max_tokens: int
    temperature: float
    knowledge_sources: tuple[KnowledgeSource, ...] = ()
    automations: tuple[LogicAutomation, ...] = ()
    lead_form: LeadForm | None = None


@dataclass(slots=True)
class Conversation:
    id: str
    chatbot_id: str
    visitor_id: str | None
    title: str | None
    is_active: bool
    metadata: dict[str, Any]
    lead_id: str | None
    created_at: int
    ended_at: int | None = None


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    sender: SenderType
    content: str
    created_at: int


@dataclass(frozen=True, slots=True)
class SearchMatch:
    content: str
    score: float
    source_id: str
    source_name: str
    chunk_id: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Lead:
    id: str
    form_id: str
    chatbot_id: str
    conversation_id: str | None
    data: dict[str, str]
    created_at: int


__all__ = [
    "SenderType",
    "FieldType",
    "ActionType",
    "KnowledgeSource",
    "LogicAutomation",
    "LeadField",
    "LeadForm",
    "Chatbot",
    "Conversation",
    "Message",
    "SearchMatch",
    "Lead",
]
