"""FastAPI application setup for the chatbot engine."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatbot_engine.api.dependencies import (
    get_app_settings,
    get_chat_service,
    get_database,
    get_embedding_model,
    get_index_registry,
    get_ingestor,
    get_lead_service,
)
from chatbot_engine.api.routes_admin import router as admin_router
from chatbot_engine.api.routes_chat import router as chat_router
from chatbot_engine.api.routes_leads import router as leads_router
from chatbot_engine.core.errors import FALLBACK_MESSAGE, ChatbotEngineError
from chatbot_engine.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Chatbot Engine",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/chat", tags=["chat"])
app.include_router(leads_router, prefix="/leads", tags=["leads"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(ChatbotEngineError)
async def handle_engine_error(request: Request, exc: ChatbotEngineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc.message, extra={"ctx_error": type(exc).__name__})
    else:
        logger.info("Request to %s rejected: %s", request.url.path, exc.message)
    return _error_response(exc.status_code, type(exc).__name__, exc.public_message, exc.message, exc.details)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(500, "InternalError", FALLBACK_MESSAGE, str(exc), {})


def _error_response(status_code: int, error: str, message: str, raw: str, details: dict) -> JSONResponse:
    body: dict[str, object] = {"error": error, "message": message}
    if get_app_settings().debug_errors:
        body["details"] = {"error": raw, **details}
    return JSONResponse(status_code=status_code, content=body)


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_embedding_model()
    get_index_registry()
    get_lead_service()
    get_ingestor()
    get_chat_service()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
