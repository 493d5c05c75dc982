"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from chatbot_engine.core.config import Settings, get_settings
from chatbot_engine.db.repositories import ChatbotRepository, ConversationRepository, MessageRepository
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.ingest.pipeline import KnowledgeIngestor
from chatbot_engine.leads.machine import LeadCollector
from chatbot_engine.leads.session import SessionRegistry
from chatbot_engine.leads.store import LeadService
from chatbot_engine.llm.client import GenerativeClient
from chatbot_engine.pipeline.chat import ChatService
from chatbot_engine.pipeline.composer import AnswerComposer
from chatbot_engine.pipeline.history import ConversationHistory
from chatbot_engine.pipeline.rewriter import QueryRewriter
from chatbot_engine.pipeline.triggers import LogicTriggerMatcher
from chatbot_engine.retrieval import EmbeddingModel, IndexRegistry, KnowledgeAggregator, KnowledgeSearch

_DB: SQLiteDatabase | None = None
_INDEX_REGISTRY: IndexRegistry | None = None
_GENERATOR: GenerativeClient | None = None
_SESSIONS: SessionRegistry | None = None
_LEAD_SERVICE: LeadService | None = None
_INGESTOR: KnowledgeIngestor | None = None
_CHAT_SERVICE: ChatService | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_embedding_model() -> EmbeddingModel:
    settings = get_app_settings()
    return EmbeddingModel.get(settings.embedding_model, settings.embedding_dim)


def get_index_registry() -> IndexRegistry:
    global _INDEX_REGISTRY
    if _INDEX_REGISTRY is None:
        _INDEX_REGISTRY = IndexRegistry(get_database(), get_app_settings().embedding_model)
    return _INDEX_REGISTRY


def get_generator() -> GenerativeClient:
    global _GENERATOR
    if _GENERATOR is None:
        settings = get_app_settings()
        _GENERATOR = GenerativeClient(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return _GENERATOR


def get_chatbot_repository() -> ChatbotRepository:
    return ChatbotRepository(get_database())


def get_session_registry() -> SessionRegistry:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = SessionRegistry()
    return _SESSIONS


def get_lead_service() -> LeadService:
    global _LEAD_SERVICE
    if _LEAD_SERVICE is None:
        db = get_database()
        _LEAD_SERVICE = LeadService(db, ChatbotRepository(db), ConversationRepository(db))
    return _LEAD_SERVICE


def get_ingestor() -> KnowledgeIngestor:
    global _INGESTOR
    if _INGESTOR is None:
        _INGESTOR = KnowledgeIngestor(
            database=get_database(),
            embedding_model=get_embedding_model(),
            registry=get_index_registry(),
        )
    return _INGESTOR


def get_chat_service() -> ChatService:
    global _CHAT_SERVICE
    if _CHAT_SERVICE is None:
        settings = get_app_settings()
        db = get_database()
        generator = get_generator()
        messages = MessageRepository(db)
        _CHAT_SERVICE = ChatService(
            chatbots=ChatbotRepository(db),
            conversations=ConversationRepository(db),
            messages=messages,
            history=ConversationHistory(
                messages,
                window_minutes=settings.history_window_minutes,
                limit=settings.history_limit,
            ),
            matcher=LogicTriggerMatcher(),
            rewriter=QueryRewriter(generator, settings.rewrite_model),
            aggregator=KnowledgeAggregator(
                KnowledgeSearch(get_index_registry(), get_embedding_model()),
                per_source_limit=settings.search_limit,
                threshold=settings.search_threshold,
                global_cap=settings.context_cap,
                max_workers=settings.search_workers,
            ),
            composer=AnswerComposer(generator, settings.answer_model),
            leads=LeadCollector(
                get_session_registry(),
                get_lead_service(),
                max_retries=settings.lead_max_retries,
            ),
        )
    return _CHAT_SERVICE


def reset_dependencies() -> None:
    """Drop cached singletons; the next request rebuilds them from settings."""
    global _DB, _INDEX_REGISTRY, _GENERATOR, _SESSIONS, _LEAD_SERVICE, _INGESTOR, _CHAT_SERVICE
    if _DB is not None:
        _DB.close()
    _DB = None
    _INDEX_REGISTRY = None
    _GENERATOR = None
    _SESSIONS = None
    _LEAD_SERVICE = None
    _INGESTOR = None
    _CHAT_SERVICE = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_embedding_model",
    "get_index_registry",
    "get_generator",
    "get_chatbot_repository",
    "get_session_registry",
    "get_lead_service",
    "get_ingestor",
    "get_chat_service",
    "reset_dependencies",
]
