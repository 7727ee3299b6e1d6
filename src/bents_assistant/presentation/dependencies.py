"""Request-scoped dependencies: caller identity and handshake key.

Authentication itself happens in the frontend (Clerk). The backend trusts
the ``x-user-id`` header it forwards; callers without one are anonymous.
"""

from __future__ import annotations

from fastapi import Header, HTTPException

from bents_assistant.domain.infrastructure.identity_service import ANONYMOUS_USER_ID


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller's user id, ``anonymous`` when the header is absent."""
    return x_user_id or ANONYMOUS_USER_ID


def require_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller's user id; 401 when the header is absent."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def get_session_header(x_session_id: str | None = Header(default=None)) -> str | None:
    return x_session_id
