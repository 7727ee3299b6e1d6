"""Tests for embedding + vector search orchestration."""

import pytest
from conftest import make_document

from bents_assistant.application.exceptions import RetrievalError
from bents_assistant.application.retrieval import DocumentRetriever, format_context


class TestFormatContext:
    def test_blocks_joined_by_blank_line(self):
        docs = [make_document(1, 0.9, title="A", url="u1"), make_document(2, 0.8, title="B", url="u2")]
        context = format_context(docs)
        assert context == (
            f"Source: A\nContent: {docs[0].text}\nURL: u1"
            "\n\n"
            f"Source: B\nContent: {docs[1].text}\nURL: u2"
        )

    def test_empty(self):
        assert format_context([]) == ""


class TestDocumentRetriever:
    async def test_retrieve_embeds_then_searches(self, retriever, embedding_service, document_store):
        docs = await retriever.retrieve("sharpen chisel")

        embedding_service.embed_text.assert_awaited_once_with("sharpen chisel")
        document_store.search.assert_awaited_once_with([0.1, 0.2, 0.3], "bents", 10)
        assert [d.id for d in docs] == ["1", "2"]

    async def test_results_sorted_by_descending_similarity(self, retriever, document_store):
        document_store.search.return_value = [
            make_document(1, 0.2),
            make_document(2, 0.9),
            make_document(3, 0.5),
        ]
        docs = await retriever.search([0.0])
        scores = [d.similarity_score for d in docs]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    async def test_results_bounded_by_top_k(self, retriever, document_store):
        document_store.search.return_value = [make_document(i, 1 - i / 20) for i in range(12)]
        docs = await retriever.search([0.0], top_k=3)
        assert len(docs) == 3

    async def test_embedding_failure_raises_after_retries(self, retriever, embedding_service):
        embedding_service.embed_text.side_effect = RuntimeError("rate limited")

        with pytest.raises(RetrievalError) as exc_info:
            await retriever.embed("q")

        assert exc_info.value.policy == "embedding"
        assert embedding_service.embed_text.await_count == 3

    async def test_search_failure_is_not_an_empty_result(self, retriever, document_store):
        document_store.search.side_effect = ConnectionError("db down")

        with pytest.raises(RetrievalError, match="vector_search"):
            await retriever.search([0.0])

    async def test_no_matches_is_empty_list(self, embedding_service, document_store, policies):
        document_store.search.return_value = []
        retriever = DocumentRetriever(embedding_service, document_store, policies, table="bents")
        assert await retriever.retrieve("q") == []
