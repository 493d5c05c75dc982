"""Chat API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from chatbot_engine.api.dependencies import get_chat_service
from chatbot_engine.leads.machine import LeadReply
from chatbot_engine.models.dto import (
    ChatRequest,
    ChatResponse,
    ConversationResponse,
    ConversationUpdateRequest,
    LeadSessionRequest,
    LeadSessionResponse,
    LogicTriggerPayload,
    MessageResponse,
    MessagesResponse,
    SearchResponse,
    SearchResultItem,
    SourceUrl,
)
from chatbot_engine.models.entities import Conversation
from chatbot_engine.pipeline.chat import ChatService, ChatTurn
from chatbot_engine.utils.time import ms_to_datetime

router = APIRouter()


@router.post("", response_model=ChatResponse, summary="Answer one user message")
def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)) -> ChatResponse:
    result = service.handle_message(
        ChatTurn(
            chatbot_id=request.chatbot_id,
            message=request.message,
            conversation_id=request.conversation_id,
            visitor_id=request.visitor_id,
        )
    )
    return ChatResponse(
        message=result.message,
        conversation_id=result.conversation_id,
        logic_triggers=[
            LogicTriggerPayload(
                automation_id=trigger.automation_id,
                name=trigger.name,
                action=trigger.action,
                keywords=trigger.keywords,
                config=trigger.config,
            )
            for trigger in result.logic_triggers
        ],
        source_urls=[SourceUrl(title=src.title, url=src.url, score=src.score) for src in result.source_urls],
        mode=result.mode,
        sources_used=result.sources_used,
        lead_status=result.lead_status,
        lead_question=result.lead_question,
    )


@router.get("/search", response_model=SearchResponse, summary="Search a chatbot's knowledge without generation")
def search(
    chatbot_id: str,
    query: str,
    limit: int | None = Query(default=None, ge=1, le=50),
    threshold: float | None = Query(default=None, ge=0.0, le=1.0),
    service: ChatService = Depends(get_chat_service),
) -> SearchResponse:
    context = service.search(chatbot_id, query, limit=limit, threshold=threshold)
    return SearchResponse(
        query=query,
        results=[
            SearchResultItem(
                content=match.content,
                score=match.score,
                source_id=match.source_id,
                source_name=match.source_name,
                chunk_id=match.chunk_id,
                metadata=match.metadata,
            )
            for match in context.matches
        ],
        context=context.text,
        sources_used=context.sources_used,
    )


@router.get("/{conversation_id}/messages", response_model=MessagesResponse, summary="Conversation transcript")
def messages(
    conversation_id: str,
    chatbot_id: str,
    service: ChatService = Depends(get_chat_service),
) -> MessagesResponse:
    transcript = service.get_messages(chatbot_id, conversation_id)
    return MessagesResponse(
        conversation_id=conversation_id,
        messages=[
            MessageResponse(
                id=message.id,
                sender=message.sender.value,
                content=message.content,
                created_at=ms_to_datetime(message.created_at),
            )
            for message in transcript
        ],
    )


@router.put("/{conversation_id}", response_model=ConversationResponse, summary="Update or end a conversation")
def update_conversation(
    conversation_id: str,
    request: ConversationUpdateRequest,
    service: ChatService = Depends(get_chat_service),
) -> ConversationResponse:
    conversation = service.update_conversation(
        conversation_id,
        is_active=request.is_active,
        metadata=request.metadata,
    )
    return _conversation_response(conversation)


@router.post("/lead/start", response_model=LeadSessionResponse, summary="Start conversational lead collection")
def start_lead(request: LeadSessionRequest, service: ChatService = Depends(get_chat_service)) -> LeadSessionResponse:
    reply = service.start_lead_collection(request.chatbot_id, request.conversation_id, request.visitor_id)
    return _lead_response(service, request.conversation_id, reply)


@router.post("/lead/retry", response_model=LeadSessionResponse, summary="Resume lead collection after a failed submission")
def retry_lead(request: LeadSessionRequest, service: ChatService = Depends(get_chat_service)) -> LeadSessionResponse:
    reply = service.retry_lead_submission(request.chatbot_id, request.conversation_id)
    return _lead_response(service, request.conversation_id, reply)


def _lead_response(service: ChatService, conversation_id: str, reply: LeadReply | None) -> LeadSessionResponse:
    if reply is None:
        return LeadSessionResponse(started=False, status=service.leads.status(conversation_id).value)
    return LeadSessionResponse(
        started=True,
        status=reply.status.value,
        message=reply.message,
        field_index=reply.field_index,
    )


def _conversation_response(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        id=conversation.id,
        chatbot_id=conversation.chatbot_id,
        visitor_id=conversation.visitor_id,
        title=conversation.title,
        is_active=conversation.is_active,
        metadata=conversation.metadata,
        lead_id=conversation.lead_id,
        created_at=ms_to_datetime(conversation.created_at),
        ended_at=ms_to_datetime(conversation.ended_at),
    )


__all__ = ["router"]
