"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    chatbot_id: str
    message: str = Field(min_length=1)
    conversation_id: str | None = None
    visitor_id: str | None = None


class LogicTriggerPayload(BaseModel):
    automation_id: str
    name: str | None = None
    action: str
    keywords: list[str]
    config: dict[str, Any] = Field(default_factory=dict)


class SourceUrl(BaseModel):
    title: str
    url: str
    score: float


class ChatResponse(BaseModel):
    message: str
    conversation_id: str
    logic_triggers: list[LogicTriggerPayload] = Field(default_factory=list)
    source_urls: list[SourceUrl] = Field(default_factory=list)
    mode: Literal["grounded", "open", "lead"]
    sources_used: int = 0
    lead_status: str | None = None
    lead_question: str | None = None


class MessageResponse(BaseModel):
    id: str
    sender: Literal["USER", "BOT"]
    content: str
    created_at: datetime


class MessagesResponse(BaseModel):
    conversation_id: str
    messages: list[MessageResponse]


class ConversationUpdateRequest(BaseModel):
    is_active: bool | None = None
    metadata: dict[str, Any] | None = None


class ConversationResponse(BaseModel):
    id: str
    chatbot_id: str
    visitor_id: str | None = None
    title: str | None = None
    is_active: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    lead_id: str | None = None
    created_at: datetime
    ended_at: datetime | None = None


class SearchResultItem(BaseModel):
    content: str
    score: float
    source_id: str
    source_name: str
    chunk_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultItem]
    context: str
    sources_used: int


class LeadSessionRequest(BaseModel):
    chatbot_id: str
    conversation_id: str
    visitor_id: str | None = None


class LeadSessionResponse(BaseModel):
    started: bool
    status: str
    message: str | None = None
    field_index: int | None = None


class LeadSubmitRequest(BaseModel):
    form_id: str
    chatbot_id: str
    conversation_id: str | None = None
    data: dict[str, Any]


class LeadSubmitResponse(BaseModel):
    success: bool = True
    lead_id: str
    success_message: str


class ChatbotCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    directive: str | None = None
    description: str | None = None
    model_id: str | None = None
    max_tokens: int = Field(default=600, gt=0)
    temperature: float = Field(default=0.7, gt=0)
    workspace_id: str | None = None


class KnowledgeSourceResponse(BaseModel):
    id: str
    chatbot_id: str
    name: str


class AutomationResponse(BaseModel):
    id: str
    name: str | None = None
    trigger_type: str
    action: str
    is_active: bool


class LeadFieldPayload(BaseModel):
    id: str | None = None
    type: str = "TEXT"
    label: str
    required: bool = False
    placeholder: str | None = None
    options: list[str] = Field(default_factory=list)


class LeadFormResponse(BaseModel):
    id: str
    title: str | None = None
    fields: list[LeadFieldPayload]
    success_message: str | None = None


class ChatbotResponse(BaseModel):
    id: str
    workspace_id: str | None = None
    name: str
    directive: str | None = None
    description: str | None = None
    model_id: str | None = None
    max_tokens: int
    temperature: float
    knowledge_sources: list[KnowledgeSourceResponse] = Field(default_factory=list)
    automations: list[AutomationResponse] = Field(default_factory=list)
    lead_form: LeadFormResponse | None = None


class SourceCreateRequest(BaseModel):
    name: str = Field(min_length=1)


class DocumentIngestRequest(BaseModel):
    text: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentIngestResponse(BaseModel):
    source_id: str
    chunks: int
    chunk_ids: list[str]


class AutomationCreateRequest(BaseModel):
    action: str
    keywords: list[str] | str = Field(description="Keyword list, or raw JSON text stored as-is")
    name: str | None = None
    trigger_type: str = "KEYWORD"
    action_config: dict[str, Any] | str | None = None
    is_active: bool = True


class AutomationCreateResponse(BaseModel):
    id: str


class LeadFormUpsertRequest(BaseModel):
    fields: list[LeadFieldPayload] | str
    title: str | None = None
    success_message: str | None = None


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, Any] | None = None


__all__ = [
    "ChatRequest",
    "ChatResponse",
    "LogicTriggerPayload",
    "SourceUrl",
    "MessageResponse",
    "MessagesResponse",
    "ConversationUpdateRequest",
    "ConversationResponse",
    "SearchResultItem",
    "SearchResponse",
    "LeadSessionRequest",
    "LeadSessionResponse",
    "LeadSubmitRequest",
    "LeadSubmitResponse",
    "ChatbotCreateRequest",
    "ChatbotResponse",
    "KnowledgeSourceResponse",
    "AutomationResponse",
    "LeadFieldPayload",
    "LeadFormResponse",
    "SourceCreateRequest",
    "DocumentIngestRequest",
    "DocumentIngestResponse",
    "AutomationCreateRequest",
    "AutomationCreateResponse",
    "LeadFormUpsertRequest",
    "ErrorResponse",
]
