"""Domain service interfaces (ports).

These protocols define the contracts that infrastructure implementations
must satisfy.  The application layer depends on these abstractions,
not on concrete classes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Protocol, runtime_checkable

from bents_assistant.domain.models import ChatTurn, Product, RetrievedDocument, UserProfile

# ---------------------------------------------------------------------------
# Language model
# ---------------------------------------------------------------------------


@runtime_checkable
class ICompletionService(Protocol):
    """Interface for chat completions.

    Implementations: PydanticAICompletionService (OpenAI via pydantic-ai).
    """

    async def complete(
        self, messages: Sequence[ChatTurn], *, temperature: float | None = None
    ) -> str: ...

    def stream(
        self, messages: Sequence[ChatTurn], *, temperature: float | None = None
    ) -> AsyncIterator[str]: ...


@runtime_checkable
class IEmbeddingService(Protocol):
    """Interface for text embedding.

    Implementations: OpenAIEmbeddingService.
    """

    async def embed_text(self, text: str) -> list[float]: ...

    @property
    def dimension(self) -> int: ...


# ---------------------------------------------------------------------------
# Datastore
# ---------------------------------------------------------------------------


@runtime_checkable
class IDocumentStore(Protocol):
    """Interface for nearest-neighbour search over transcript chunks.

    Implementations: PgVectorDocumentStore.
    """

    async def search(self, vector: list[float], table: str, top_k: int) -> list[RetrievedDocument]: ...


@runtime_checkable
class IProductStore(Protocol):
    """Interface for product lookup by video title.

    Implementations: PostgresProductStore.
    """

    async def find_by_video_titles(self, titles: Sequence[str]) -> list[Product]: ...


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@runtime_checkable
class IIdentityService(Protocol):
    """Interface for user profile lookup.

    Implementations: ClerkIdentityService.
    """

    async def get_user(self, user_id: str) -> UserProfile | None: ...

    async def fetch_user(self, user_id: str) -> UserProfile: ...
