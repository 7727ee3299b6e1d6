"""Shared fixtures and in-memory collaborators for the test suite."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from unittest.mock import AsyncMock

import pytest

from bents_assistant.application.citations import CitationExtractor
from bents_assistant.application.classifier import RelevanceClassifier
from bents_assistant.application.generator import AnswerGenerator
from bents_assistant.application.handshake import PendingHandshakeStore
from bents_assistant.application.policies import CallPolicies
from bents_assistant.application.retrieval import DocumentRetriever
from bents_assistant.application.rewriter import QueryRewriter
from bents_assistant.application.use_cases import ChatUseCase, LinksUseCase
from bents_assistant.domain.models import ChatTurn, Product, RetrievedDocument


class FakeCompletion:
    """Scripted ``ICompletionService``.

    ``complete`` pops ``replies`` in order; an exception instance in the
    list is raised instead of returned. ``stream`` yields ``stream_chunks``
    and raises ``stream_error`` afterwards when set.
    """

    def __init__(
        self,
        replies: Sequence[str | Exception] = (),
        stream_chunks: Sequence[str] = ("Hello", " world"),
        stream_error: Exception | None = None,
    ) -> None:
        self.replies = list(replies)
        self.stream_chunks = list(stream_chunks)
        self.stream_error = stream_error
        self.complete_calls: list[tuple[list[ChatTurn], float | None]] = []
        self.stream_calls: list[tuple[list[ChatTurn], float | None]] = []

    async def complete(self, messages, *, temperature=None) -> str:
        self.complete_calls.append((list(messages), temperature))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def stream(self, messages, *, temperature=None) -> AsyncIterator[str]:
        self.stream_calls.append((list(messages), temperature))
        for chunk in self.stream_chunks:
            yield chunk
        if self.stream_error is not None:
            raise self.stream_error


def make_document(
    idx: int, score: float, title: str = "Workshop Basics", url: str = "https://yt.com/abc"
) -> RetrievedDocument:
    return RetrievedDocument(
        id=str(idx),
        text=f"At 12:45 chunk {idx} shows chisel sharpening.",
        title=title,
        url=url,
        chunk_id=f"c{idx}",
        similarity_score=score,
    )


def make_product(pid: str, title: str = "Chisel Set") -> Product:
    return Product(id=pid, title=title, tags=["Workshop Basics"], link=f"https://shop/{pid}")


def turns(*pairs: tuple[str, str]) -> list[ChatTurn]:
    return [ChatTurn(role=role, content=content) for role, content in pairs]


@pytest.fixture()
def policies() -> CallPolicies:
    return CallPolicies()


@pytest.fixture()
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture()
def embedding_service() -> AsyncMock:
    svc = AsyncMock()
    svc.embed_text.return_value = [0.1, 0.2, 0.3]
    return svc


@pytest.fixture()
def document_store() -> AsyncMock:
    store = AsyncMock()
    store.search.return_value = [make_document(1, 0.91), make_document(2, 0.85)]
    return store


@pytest.fixture()
def product_store() -> AsyncMock:
    store = AsyncMock()
    store.find_by_video_titles.return_value = [make_product("p1")]
    return store


@pytest.fixture()
def identity_service() -> AsyncMock:
    svc = AsyncMock()
    svc.get_user.return_value = None
    return svc


@pytest.fixture()
def handshakes() -> PendingHandshakeStore:
    return PendingHandshakeStore(ttl_seconds=600, max_entries=10)


@pytest.fixture()
def retriever(embedding_service, document_store, policies) -> DocumentRetriever:
    return DocumentRetriever(embedding_service, document_store, policies, table="bents", top_k=10)


@pytest.fixture()
def chat_uc(completion, retriever, handshakes, identity_service, policies) -> ChatUseCase:
    return ChatUseCase(
        classifier=RelevanceClassifier(completion, policies.classification),
        rewriter=QueryRewriter(completion, policies.rewrite),
        retriever=retriever,
        generator=AnswerGenerator(completion),
        handshakes=handshakes,
        identity_service=identity_service,
        identity_policy=policies.identity,
    )


@pytest.fixture()
def links_uc(completion, product_store, handshakes, identity_service, policies) -> LinksUseCase:
    return LinksUseCase(
        handshakes=handshakes,
        extractor=CitationExtractor(completion, product_store, policies),
        identity_service=identity_service,
        identity_policy=policies.identity,
    )
