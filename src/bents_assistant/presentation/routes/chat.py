"""Chat routes: health check and the streamed chat endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger

from bents_assistant.application.exceptions import (
    ConfigurationError,
    TableNotAllowedError,
    UpstreamCallError,
)
from bents_assistant.application.handshake import resolve_handshake_key
from bents_assistant.application.use_cases.chat import ChatUseCase, last_user_message
from bents_assistant.presentation.dependencies import get_session_header, get_user_id
from bents_assistant.presentation.schemas import ChatRequest
from bents_assistant.presentation.streaming import MEDIA_TYPE, STREAM_HEADERS, vercel_data_stream

router = APIRouter(tags=["chat"])


@router.get("/health")
async def health():
    """Simple liveness / readiness check."""
    return {"status": "ok"}


@router.post("/api/chat")
async def chat(
    request: ChatRequest,
    raw_request: Request,
    user_id: str = Depends(get_user_id),
    session_header: str | None = Depends(get_session_header),
):
    """Answer the last user turn as a Vercel AI data stream.

    Classification, rewriting and retrieval finish before the response
    starts, so their failures surface as a JSON error. Only generation
    is streamed.
    """
    uc: ChatUseCase = raw_request.app.state.chat_uc
    handshake_key = resolve_handshake_key(request.session_id or session_header, user_id)

    logger.info(
        "POST /api/chat | user={} key={} turns={} msg={}",
        user_id,
        handshake_key,
        len(request.messages),
        last_user_message(request.messages)[:60],
    )

    try:
        answer = await uc.execute(request.messages, user_id=user_id, handshake_key=handshake_key)
    except (ConfigurationError, UpstreamCallError, TableNotAllowedError):
        raise
    except Exception as exc:
        logger.exception("Chat pipeline failed before streaming")
        return JSONResponse({"error": str(exc) or type(exc).__name__}, status_code=500)

    return StreamingResponse(
        vercel_data_stream(answer),
        media_type=MEDIA_TYPE,
        headers={**STREAM_HEADERS, "x-session-id": handshake_key},
    )
