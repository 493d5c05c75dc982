"""Per-turn orchestration of the answering pipeline and lead collection."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from chatbot_engine.core.errors import NotFoundError, OwnershipError, ValidationError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.core.metrics import REQUEST_COUNT, REQUEST_LATENCY
from chatbot_engine.db.repositories import ChatbotRepository, ConversationRepository, MessageRepository
from chatbot_engine.leads.machine import LeadCollector, LeadReply
from chatbot_engine.models.entities import ActionType, Chatbot, Conversation, Message, SenderType
from chatbot_engine.pipeline.composer import AnswerComposer
from chatbot_engine.pipeline.history import ConversationHistory
from chatbot_engine.pipeline.rewriter import QueryRewriter
from chatbot_engine.pipeline.triggers import FiredTrigger, LogicTriggerMatcher, format_trigger_annotations
from chatbot_engine.retrieval.aggregator import KnowledgeAggregator, KnowledgeContext, SourceAttribution

logger = get_logger(__name__)

LEAD_MODE = "lead"


@dataclass(slots=True)
class ChatTurn:
    chatbot_id: str
    message: str
    conversation_id: str | None = None
    visitor_id: str | None = None


@dataclass(slots=True)
class ChatResult:
    message: str
    conversation_id: str
    mode: str
    logic_triggers: list[FiredTrigger] = field(default_factory=list)
    source_urls: list[SourceAttribution] = field(default_factory=list)
    sources_used: int = 0
    lead_status: str | None = None
    lead_question: str | None = None


@contextmanager
def observe(endpoint: str) -> Iterator[None]:
    started = time.perf_counter()
    status = "ok"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        REQUEST_COUNT.labels(endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.perf_counter() - started)


class ChatService:
    """Runs one user turn end to end.

    Lead collection and the answering pipeline are mutually exclusive per
    turn: when an active lead session consumes the message, no rewrite,
    search or generation happens. Unknown chatbots and conversations (or a
    conversation owned by another chatbot) abort before anything is stored.
    """

    def __init__(
        self,
        chatbots: ChatbotRepository,
        conversations: ConversationRepository,
        messages: MessageRepository,
        history: ConversationHistory,
        matcher: LogicTriggerMatcher,
        rewriter: QueryRewriter,
        aggregator: KnowledgeAggregator,
        composer: AnswerComposer,
        leads: LeadCollector,
    ) -> None:
        self.chatbots = chatbots
        self.conversations = conversations
        self.messages = messages
        self.history = history
        self.matcher = matcher
        self.rewriter = rewriter
        self.aggregator = aggregator
        self.composer = composer
        self.leads = leads

    def handle_message(self, turn: ChatTurn) -> ChatResult:
        with observe("chat"):
            return self._handle(turn)

    def _handle(self, turn: ChatTurn) -> ChatResult:
        text = turn.message.strip()
        if not text:
            raise ValidationError("Message is required")
        chatbot = self.get_chatbot(turn.chatbot_id)
        conversation = self._owned_conversation(chatbot.id, turn.conversation_id) if turn.conversation_id else None

        if conversation is not None:
            reply = self.leads.handle_message(conversation.id, text)
            if reply.consumed:
                return self._lead_turn(conversation, text, reply)

        history = self.history.render(conversation.id if conversation else None)
        if conversation is None:
            conversation = self.conversations.create(chatbot.id, text, visitor_id=turn.visitor_id)
        self.messages.append(conversation.id, SenderType.USER, text)

        triggers = self.matcher.match(text, chatbot.automations)
        query = self.rewriter.rewrite(text)
        context = self.aggregator.aggregate(query, chatbot.knowledge_sources)
        answer = self.composer.compose(
            chatbot,
            text,
            context.text,
            annotations=format_trigger_annotations(triggers),
            history=history,
        )
        self.messages.append(conversation.id, SenderType.BOT, answer.text)
        logger.info(
            "Answered turn",
            extra={
                "ctx_conversation_id": conversation.id,
                "ctx_mode": answer.mode.value,
                "ctx_sources_used": context.sources_used,
                "ctx_triggers": len(triggers),
            },
        )

        result = ChatResult(
            message=answer.text,
            conversation_id=conversation.id,
            mode=answer.mode.value,
            logic_triggers=triggers,
            source_urls=context.sources,
            sources_used=context.sources_used,
        )
        if any(trigger.action_type is ActionType.COLLECT_LEADS for trigger in triggers):
            visitor_id = turn.visitor_id or conversation.visitor_id or conversation.id
            started = self.leads.start(chatbot, conversation.id, visitor_id)
            if started is not None and started.message:
                self.messages.append(conversation.id, SenderType.BOT, started.message)
                result.lead_question = started.message
                result.lead_status = started.status.value
        return result

    def search(
        self,
        chatbot_id: str,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> KnowledgeContext:
        """Knowledge search without rewriting or generation."""
        with observe("search"):
            if not query.strip():
                raise ValidationError("Query is required")
            chatbot = self.get_chatbot(chatbot_id)
            return self.aggregator.aggregate(
                query.strip(),
                chatbot.knowledge_sources,
                per_source_limit=limit,
                threshold=threshold,
                global_cap=limit,
            )

    def get_messages(self, chatbot_id: str, conversation_id: str, limit: int = 50) -> list[Message]:
        chatbot = self.get_chatbot(chatbot_id)
        conversation = self._owned_conversation(chatbot.id, conversation_id)
        return self.messages.transcript(conversation.id, limit=limit)

    def update_conversation(
        self,
        conversation_id: str,
        is_active: bool | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Conversation:
        updated = self.conversations.update(conversation_id, is_active=is_active, metadata=metadata)
        if updated is None:
            raise NotFoundError("Conversation not found")
        if is_active is False:
            self.leads.sessions.drop(conversation_id)
        return updated

    def start_lead_collection(
        self,
        chatbot_id: str,
        conversation_id: str,
        visitor_id: str | None = None,
    ) -> LeadReply | None:
        """Explicit start, e.g. when the widget opens; None when collection is not possible."""
        chatbot = self.get_chatbot(chatbot_id)
        conversation = self._owned_conversation(chatbot.id, conversation_id)
        reply = self.leads.start(chatbot, conversation.id, visitor_id or conversation.visitor_id or conversation.id)
        if reply is not None and reply.message:
            self.messages.append(conversation.id, SenderType.BOT, reply.message)
        return reply

    def retry_lead_submission(self, chatbot_id: str, conversation_id: str) -> LeadReply | None:
        chatbot = self.get_chatbot(chatbot_id)
        conversation = self._owned_conversation(chatbot.id, conversation_id)
        reply = self.leads.retry(conversation.id)
        if reply is not None and reply.message:
            self.messages.append(conversation.id, SenderType.BOT, reply.message)
        return reply

    def get_chatbot(self, chatbot_id: str) -> Chatbot:
        chatbot = self.chatbots.get(chatbot_id)
        if chatbot is None:
            raise NotFoundError("Chatbot not found")
        return chatbot

    def _owned_conversation(self, chatbot_id: str, conversation_id: str) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if conversation.chatbot_id != chatbot_id:
            raise OwnershipError(
                "Conversation belongs to another chatbot",
                details={"conversation_id": conversation_id, "chatbot_id": chatbot_id},
            )
        return conversation

    def _lead_turn(self, conversation: Conversation, text: str, reply: LeadReply) -> ChatResult:
        self.messages.append(conversation.id, SenderType.USER, text)
        message = reply.message or ""
        if message:
            self.messages.append(conversation.id, SenderType.BOT, message)
        return ChatResult(
            message=message,
            conversation_id=conversation.id,
            mode=LEAD_MODE,
            lead_status=reply.status.value,
        )


__all__ = ["ChatService", "ChatTurn", "ChatResult", "observe"]
