"""User routes: profile proxy for the frontend."""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from bents_assistant.application.exceptions import IdentityLookupError
from bents_assistant.domain.protocols import IIdentityService
from bents_assistant.presentation.dependencies import require_user_id
from bents_assistant.presentation.schemas import UserInfoResponse

router = APIRouter(tags=["users"])

_UPSTREAM_ERRORS = {
    404: "User not found",
    401: "Authentication invalid",
}


@router.get("/api/get-user")
async def get_user(raw_request: Request, user_id: str = Depends(require_user_id)):
    """Return ``{id, firstName, lastName}`` for the caller.

    A missing ``CLERK_SECRET_KEY`` raises ``ConfigurationError``, which the
    app-level handler turns into a 500.
    """
    identity: IIdentityService = raw_request.app.state.identity

    try:
        user = await identity.fetch_user(user_id)
    except IdentityLookupError as exc:
        logger.warning("GET /api/get-user | user={} upstream status={}", user_id, exc.status_code)
        message = _UPSTREAM_ERRORS.get(exc.status_code, "Request failed")
        return JSONResponse({"error": message}, status_code=exc.status_code)
    except httpx.HTTPError as exc:
        logger.error("GET /api/get-user | user={} transport error: {}", user_id, exc)
        return JSONResponse({"error": "Failed to retrieve user data"}, status_code=500)

    logger.info("GET /api/get-user | user={} found", user_id)
    return UserInfoResponse.from_domain(user).model_dump(by_alias=True)
