"""Administrative routes for seeding chatbots and their knowledge."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chatbot_engine.api.dependencies import get_chatbot_repository, get_ingestor
from chatbot_engine.core.errors import NotFoundError
from chatbot_engine.core.metrics import metrics_response
from chatbot_engine.db.repositories import ChatbotRepository
from chatbot_engine.ingest.pipeline import KnowledgeIngestor
from chatbot_engine.models.dto import (
    AutomationCreateRequest,
    AutomationCreateResponse,
    AutomationResponse,
    ChatbotCreateRequest,
    ChatbotResponse,
    DocumentIngestRequest,
    DocumentIngestResponse,
    KnowledgeSourceResponse,
    LeadFieldPayload,
    LeadFormResponse,
    LeadFormUpsertRequest,
    SourceCreateRequest,
)
from chatbot_engine.models.entities import Chatbot, LeadForm

router = APIRouter()


@router.post("/chatbots", response_model=ChatbotResponse, summary="Create a chatbot")
def create_chatbot(
    request: ChatbotCreateRequest,
    chatbots: ChatbotRepository = Depends(get_chatbot_repository),
) -> ChatbotResponse:
    chatbot_id = chatbots.create(
        name=request.name,
        directive=request.directive,
        description=request.description,
        model_id=request.model_id,
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        workspace_id=request.workspace_id,
    )
    return _chatbot_response(_require_chatbot(chatbots, chatbot_id))


@router.get("/chatbots/{chatbot_id}", response_model=ChatbotResponse, summary="Chatbot snapshot")
def get_chatbot(chatbot_id: str, chatbots: ChatbotRepository = Depends(get_chatbot_repository)) -> ChatbotResponse:
    return _chatbot_response(_require_chatbot(chatbots, chatbot_id))


@router.post(
    "/chatbots/{chatbot_id}/sources",
    response_model=KnowledgeSourceResponse,
    summary="Attach a knowledge source",
)
def create_source(
    chatbot_id: str,
    request: SourceCreateRequest,
    chatbots: ChatbotRepository = Depends(get_chatbot_repository),
) -> KnowledgeSourceResponse:
    _require_chatbot(chatbots, chatbot_id)
    source = chatbots.add_source(chatbot_id, request.name)
    return KnowledgeSourceResponse(id=source.id, chatbot_id=source.chatbot_id, name=source.name)


@router.post(
    "/sources/{source_id}/documents",
    response_model=DocumentIngestResponse,
    summary="Chunk, embed and index a document",
)
def ingest_document(
    source_id: str,
    request: DocumentIngestRequest,
    ingestor: KnowledgeIngestor = Depends(get_ingestor),
) -> DocumentIngestResponse:
    result = ingestor.ingest_text(source_id, request.text, request.metadata)
    return DocumentIngestResponse(**result.to_dict())


@router.post(
    "/chatbots/{chatbot_id}/automations",
    response_model=AutomationCreateResponse,
    summary="Add a logic automation",
)
def create_automation(
    chatbot_id: str,
    request: AutomationCreateRequest,
    chatbots: ChatbotRepository = Depends(get_chatbot_repository),
) -> AutomationCreateResponse:
    _require_chatbot(chatbots, chatbot_id)
    automation_id = chatbots.add_automation(
        chatbot_id,
        action=request.action,
        keywords=request.keywords,
        name=request.name,
        trigger_type=request.trigger_type,
        action_config=request.action_config,
        is_active=request.is_active,
    )
    return AutomationCreateResponse(id=automation_id)


@router.put("/chatbots/{chatbot_id}/form", response_model=LeadFormResponse, summary="Create or replace the lead form")
def upsert_form(
    chatbot_id: str,
    request: LeadFormUpsertRequest,
    chatbots: ChatbotRepository = Depends(get_chatbot_repository),
) -> LeadFormResponse:
    _require_chatbot(chatbots, chatbot_id)
    fields = request.fields
    if not isinstance(fields, str):
        fields = [item.model_dump(exclude_none=True) for item in fields]
    chatbots.upsert_form(chatbot_id, fields, title=request.title, success_message=request.success_message)
    form = chatbots.get_form(chatbot_id)
    if form is None:
        raise NotFoundError("Lead form not found")
    return _form_response(form)


@router.get("/metrics", summary="Prometheus metrics")
def get_metrics():
    return metrics_response()


def _require_chatbot(chatbots: ChatbotRepository, chatbot_id: str) -> Chatbot:
    chatbot = chatbots.get(chatbot_id)
    if chatbot is None:
        raise NotFoundError("Chatbot not found")
    return chatbot


def _chatbot_response(chatbot: Chatbot) -> ChatbotResponse:
    return ChatbotResponse(
        id=chatbot.id,
        workspace_id=chatbot.workspace_id,
        name=chatbot.name,
        directive=chatbot.directive,
        description=chatbot.description,
        model_id=chatbot.model_id,
        max_tokens=chatbot.max_tokens,
        temperature=chatbot.temperature,
        knowledge_sources=[
            KnowledgeSourceResponse(id=src.id, chatbot_id=src.chatbot_id, name=src.name)
            for src in chatbot.knowledge_sources
        ],
        automations=[
            AutomationResponse(
                id=item.id,
                name=item.name,
                trigger_type=item.trigger_type,
                action=item.action,
                is_active=item.is_active,
            )
            for item in chatbot.automations
        ],
        lead_form=_form_response(chatbot.lead_form) if chatbot.lead_form else None,
    )


def _form_response(form: LeadForm) -> LeadFormResponse:
    return LeadFormResponse(
        id=form.id,
        title=form.title,
        success_message=form.success_message,
        fields=[
            LeadFieldPayload(
                id=field.id,
                type=field.type.value,
                label=field.label,
                required=field.required,
                placeholder=field.placeholder,
                options=list(field.options),
            )
            for field in form.fields
        ],
    )


__all__ = ["router"]
