"""HTTP request/response schemas (Pydantic models) for the REST API.

Field names on the wire are camelCase to match the existing frontend.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bents_assistant.domain.models import (
    ChatTurn,
    CitationResult,
    Product,
    UserProfile,
    VideoReference,
)

# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """Request body for POST /api/chat.

    ``user_id`` comes from the ``x-user-id`` header, not the body.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    messages: list[ChatTurn] = Field(
        default_factory=list,
        description="Full conversation; the last user turn is the question.",
    )
    session_id: str | None = Field(
        default=None,
        alias="sessionId",
        description="Optional handshake key shared with the following /api/links call.",
    )

    @field_validator("messages", mode="before")
    @classmethod
    def _coerce_messages(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        turns = []
        for m in value:
            if not isinstance(m, dict):
                continue
            content = m.get("content")
            turns.append(
                {
                    "role": str(m.get("role") or ""),
                    "content": content if isinstance(content, str) else "",
                }
            )
        return turns


# ---------------------------------------------------------------------------
# Links (two-phase citation handshake)
# ---------------------------------------------------------------------------


class LinksRequest(BaseModel):
    """Request body for POST /api/links.

    Phase 1 sends ``context`` and ``query``; phase 2 sends ``answer``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    context: str | None = None
    query: str | None = None
    answer: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")

    @property
    def is_stage(self) -> bool:
        return bool(self.context and self.query)


class VideoReferenceResponse(BaseModel):
    timestamp: str
    video_title: str
    urls: list[str]
    description: str

    @classmethod
    def from_domain(cls, ref: VideoReference) -> VideoReferenceResponse:
        return cls(**ref.to_dict())


class ProductResponse(BaseModel):
    id: str
    title: str
    tags: list[str]
    link: str

    @classmethod
    def from_domain(cls, product: Product) -> ProductResponse:
        return cls(**product.to_dict())


class LinksWaitingResponse(BaseModel):
    """Phase 1 acknowledgement."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "waiting_for_answer"
    has_context: bool = Field(default=True, alias="hasContext")


class LinksResponse(BaseModel):
    """Phase 2 result, or the empty answer when nothing was staged.

    ``hasContext`` is only present on the empty answer.
    """

    model_config = ConfigDict(populate_by_name=True)

    video_references: dict[str, VideoReferenceResponse] = Field(
        default_factory=dict, alias="videoReferences"
    )
    related_products: list[ProductResponse] = Field(
        default_factory=list, alias="relatedProducts"
    )
    status: str = "success"
    has_context: bool | None = Field(default=None, alias="hasContext")

    @classmethod
    def from_result(cls, result: CitationResult) -> LinksResponse:
        return cls(
            video_references={
                key: VideoReferenceResponse.from_domain(ref)
                for key, ref in result.video_references.items()
            },
            related_products=[ProductResponse.from_domain(p) for p in result.related_products],
        )

    @classmethod
    def no_context(cls) -> LinksResponse:
        return cls(has_context=False)

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserInfoResponse(BaseModel):
    """Response from GET /api/get-user."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")

    @classmethod
    def from_domain(cls, user: UserProfile) -> UserInfoResponse:
        return cls(id=user.id, first_name=user.first_name, last_name=user.last_name)
