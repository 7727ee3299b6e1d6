"""Citation handshake route.

The frontend calls ``/api/links`` twice per relevant answer:

1. ``{context, query}``: stage the retrieval context
2. ``{answer}``: extract video references and related products

This endpoint never fails from the caller's point of view: every problem
is answered with HTTP 200 and empty collections.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from loguru import logger

from bents_assistant.application.handshake import resolve_handshake_key
from bents_assistant.application.use_cases.links import LinksUseCase
from bents_assistant.presentation.dependencies import get_session_header, get_user_id
from bents_assistant.presentation.schemas import LinksRequest, LinksResponse, LinksWaitingResponse

router = APIRouter(tags=["links"])


@router.post("/api/links")
async def links(
    raw_request: Request,
    user_id: str = Depends(get_user_id),
    session_header: str | None = Depends(get_session_header),
):
    uc: LinksUseCase = raw_request.app.state.links_uc

    try:
        body = LinksRequest.model_validate(await raw_request.json())
    except ValueError as exc:
        logger.warning("POST /api/links | unreadable body: {}", exc)
        return LinksResponse.no_context().to_body()

    key = resolve_handshake_key(body.session_id or session_header, user_id)

    try:
        if body.is_stage:
            logger.info("POST /api/links | phase=stage user={} key={}", user_id, key)
            await uc.stage(key, context=body.context, query=body.query, user_id=user_id)
            return LinksWaitingResponse().model_dump(by_alias=True)

        if body.answer:
            logger.info("POST /api/links | phase=answer user={} key={}", user_id, key)
            result = await uc.resolve(key, answer=body.answer, user_id=user_id)
            if result is not None:
                return LinksResponse.from_result(result).to_body()
    except Exception:
        logger.exception("POST /api/links failed | key={}", key)

    return LinksResponse.no_context().to_body()
