"""Embedding + vector search, wrapped in their call policies."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from bents_assistant.application.exceptions import RetrievalError
from bents_assistant.application.policies import CallPolicies, run_with_policy
from bents_assistant.domain.models import RetrievedDocument
from bents_assistant.domain.protocols import IDocumentStore, IEmbeddingService


def format_context(documents: Sequence[RetrievedDocument]) -> str:
    """Join documents as ``Source/Content/URL`` blocks separated by blank lines."""
    return "\n\n".join(
        f"Source: {doc.title}\nContent: {doc.text}\nURL: {doc.url}" for doc in documents
    )


class DocumentRetriever:
    """Embeds a query and fetches the closest transcript chunks.

    Both steps raise ``RetrievalError`` when their policy is exhausted; an
    empty list therefore always means "searched, nothing matched".
    """

    def __init__(
        self,
        embedding_service: IEmbeddingService,
        document_store: IDocumentStore,
        policies: CallPolicies,
        *,
        table: str,
        top_k: int = 10,
    ) -> None:
        self.embedding_service = embedding_service
        self.document_store = document_store
        self.policies = policies
        self.table = table
        self.top_k = top_k

    async def embed(self, text: str) -> list[float]:
        vector = await run_with_policy(
            self.policies.embedding,
            lambda: self.embedding_service.embed_text(text),
            error_cls=RetrievalError,
        )
        logger.info("Embedding generated | length={}", len(vector))
        return vector

    async def search(
        self, vector: list[float], table: str | None = None, top_k: int | None = None
    ) -> list[RetrievedDocument]:
        table = table or self.table
        top_k = top_k or self.top_k
        documents = await run_with_policy(
            self.policies.vector_search,
            lambda: self.document_store.search(vector, table, top_k),
            error_cls=RetrievalError,
        )
        ranked = sorted(documents, key=lambda d: d.similarity_score, reverse=True)[:top_k]
        logger.info("Found similar documents | table={} count={}", table, len(ranked))
        return ranked

    async def retrieve(self, query: str) -> list[RetrievedDocument]:
        vector = await self.embed(query)
        return await self.search(vector)
