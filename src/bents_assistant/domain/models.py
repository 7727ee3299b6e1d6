"""Domain entities and value objects.

These are the core data structures of the woodworking assistant domain,
independent of any infrastructure or framework concerns.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ChatTurn(BaseModel):
    """A single message in the conversation."""

    model_config = ConfigDict(extra="ignore")

    role: str = Field(description="Message role: 'user', 'assistant' or 'system'")
    content: str = Field(default="", description="Message content")


class RelevanceLabel(str, Enum):
    """Category assigned to an incoming question before any retrieval happens."""

    GREETING = "GREETING"
    RELEVANT = "RELEVANT"
    INAPPROPRIATE = "INAPPROPRIATE"
    NOT_RELEVANT = "NOT_RELEVANT"

    @classmethod
    def parse(cls, raw: str | None) -> RelevanceLabel:
        """Map raw model output to a label, falling back to NOT_RELEVANT."""
        token = (raw or "").strip().strip(".\"'`").strip().upper()
        try:
            return cls(token)
        except ValueError:
            return cls.NOT_RELEVANT

    @property
    def is_terminal(self) -> bool:
        """Terminal labels are answered without retrieval or citations."""
        return self is not RelevanceLabel.RELEVANT


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetrievedDocument:
    """A transcript chunk returned by nearest-neighbour search."""

    id: str
    text: str
    title: str
    url: str
    chunk_id: str
    similarity_score: float


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------


@dataclass
class VideoReference:
    timestamp: str
    video_title: str
    urls: list[str]
    description: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Product:
    id: str
    title: str
    tags: list[str]
    link: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CitationResult:
    """Video references keyed by position ("0", "1", ...) plus related products."""

    video_references: dict[str, VideoReference] = field(default_factory=dict)
    related_products: list[Product] = field(default_factory=list)

    @classmethod
    def empty(cls) -> CitationResult:
        return cls()


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserProfile:
    id: str
    first_name: str | None
    last_name: str | None
    email: str | None = None


# ---------------------------------------------------------------------------
# Handshake
# ---------------------------------------------------------------------------


@dataclass
class PendingHandshake:
    """Retrieval context staged by phase 1, waiting for the rendered answer."""

    context: str
    query: str
    user: UserProfile | None = None
    created_at: float = 0.0
