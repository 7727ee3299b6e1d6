"""FastAPI backend for the Bent's Woodworking assistant.

This module is a thin **presentation layer**. All business logic lives in
the ``application`` package so it can be tested and reused independently
of any HTTP framework.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from openai import AsyncOpenAI
from starlette.exceptions import HTTPException as StarletteHTTPException

from bents_assistant import __version__
from bents_assistant.application.classifier import RelevanceClassifier
from bents_assistant.application.citations import CitationExtractor
from bents_assistant.application.exceptions import (
    ConfigurationError,
    TableNotAllowedError,
    UpstreamCallError,
)
from bents_assistant.application.generator import AnswerGenerator
from bents_assistant.application.handshake import PendingHandshakeStore
from bents_assistant.application.policies import CallPolicies
from bents_assistant.application.retrieval import DocumentRetriever
from bents_assistant.application.rewriter import QueryRewriter
from bents_assistant.application.use_cases import ChatUseCase, LinksUseCase
from bents_assistant.config import Settings, get_settings
from bents_assistant.domain.infrastructure.completion_service import (
    PydanticAICompletionService,
    create_completion_agent,
)
from bents_assistant.domain.infrastructure.database import Database
from bents_assistant.domain.infrastructure.document_store import PgVectorDocumentStore
from bents_assistant.domain.infrastructure.embedding_service import OpenAIEmbeddingService
from bents_assistant.domain.infrastructure.identity_service import ClerkIdentityService
from bents_assistant.domain.infrastructure.product_store import PostgresProductStore
from bents_assistant.logging_config import setup_logging
from bents_assistant.presentation.routes import chat_router, links_router, users_router
from bents_assistant.telemetry import get_instrumentation_settings, setup_telemetry

# ---------------------------------------------------------------------------
# Lifespan: initialise shared resources once at startup
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Set up and tear down services around the application lifetime."""
    settings: Settings = app.state.settings
    settings.validate_runtime()

    # Retries are owned by the call policies, not the SDK
    openai_client = AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_request_timeout_seconds,
        max_retries=0,
    )
    http_client = httpx.AsyncClient(timeout=settings.identity_timeout_seconds)

    database = Database(settings)
    database.connect()

    policies = CallPolicies.from_settings(settings)
    agent = create_completion_agent(
        settings, openai_client, instrument=get_instrumentation_settings(settings)
    )
    completion = PydanticAICompletionService(agent)

    retriever = DocumentRetriever(
        embedding_service=OpenAIEmbeddingService(
            openai_client, settings.openai_embedding_model, settings.embedding_dimensions
        ),
        document_store=PgVectorDocumentStore(
            database, settings.allowed_document_tables, settings.embedding_dimensions
        ),
        policies=policies,
        table=settings.document_table,
        top_k=settings.retrieval_top_k,
    )
    identity = ClerkIdentityService(http_client, settings.clerk_secret_key, settings.clerk_api_url)
    handshakes = PendingHandshakeStore(
        ttl_seconds=settings.handshake_ttl_seconds,
        max_entries=settings.handshake_max_entries,
    )

    # Wire up the use cases with all their dependencies
    app.state.identity = identity
    app.state.handshakes = handshakes
    app.state.chat_uc = ChatUseCase(
        classifier=RelevanceClassifier(
            completion, policies.classification, history_window=settings.history_window
        ),
        rewriter=QueryRewriter(completion, policies.rewrite),
        retriever=retriever,
        generator=AnswerGenerator(
            completion,
            history_window=settings.history_window,
            temperature=settings.answer_temperature,
        ),
        handshakes=handshakes,
        identity_service=identity,
        identity_policy=policies.identity,
    )
    app.state.links_uc = LinksUseCase(
        handshakes=handshakes,
        extractor=CitationExtractor(completion, PostgresProductStore(database), policies),
        identity_service=identity,
        identity_policy=policies.identity,
    )

    logger.info("Application startup complete")
    yield

    await http_client.aclose()
    await openai_client.close()
    await database.close()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Error envelope: every JSON error is {"error": message}
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(_request: Request, exc: ConfigurationError):
        logger.error("Configuration error: {}", exc)
        return _error(500, "Server configuration error")

    @app.exception_handler(UpstreamCallError)
    async def _upstream_error(_request: Request, exc: UpstreamCallError):
        logger.error("Upstream call failed | policy={} detail={}", exc.policy, exc.detail)
        return _error(500, str(exc))

    @app.exception_handler(TableNotAllowedError)
    async def _table_error(_request: Request, exc: TableNotAllowedError):
        logger.error("Rejected document table: {}", exc)
        return _error(500, str(exc))


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Bent's Woodworking Assistant",
        description="Retrieval-grounded answers over Jason Bent's video transcripts.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-session-id", "x-vercel-ai-data-stream"],
    )
    register_exception_handlers(app)

    app.include_router(chat_router)
    app.include_router(links_router)
    app.include_router(users_router)

    # Instrument FastAPI with observability (no-op when OBSERVABILITY=off)
    setup_telemetry(app, settings)
    return app


_settings = get_settings()
setup_logging(level=_settings.log_level, json=_settings.log_json)

app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("bents_assistant.main:app", host="0.0.0.0", port=8000, reload=True)
