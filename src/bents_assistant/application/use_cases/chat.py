"""Chat use case: orchestrates one chat turn through the RAG pipeline.

Classification strictly precedes rewriting, which precedes embedding,
retrieval and generation. Terminal labels (greeting, inappropriate,
not relevant) are answered straight away: no retrieval, no citations.
A turn that stages no context drops whatever an earlier turn staged
under the same key.

This module has **no dependency on FastAPI** and can be invoked from any
transport layer.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from bents_assistant.application.classifier import RelevanceClassifier
from bents_assistant.application.generator import AnswerGenerator, AnswerStream
from bents_assistant.application.handshake import PendingHandshakeStore
from bents_assistant.application.policies import CallPolicy, run_with_policy
from bents_assistant.application.retrieval import DocumentRetriever, format_context
from bents_assistant.application.rewriter import QueryRewriter
from bents_assistant.domain.models import ChatTurn, UserProfile
from bents_assistant.domain.protocols import IIdentityService
from bents_assistant.telemetry import get_tracer, run_name, span_attributes

TRACER = get_tracer(__name__)


def last_user_message(messages: Sequence[ChatTurn]) -> str:
    for msg in reversed(messages):
        if msg.role == "user":
            return msg.content
    return ""


class ChatUseCase:
    """Orchestrates a single chat turn.

    Parameters
    ----------
    classifier, rewriter, retriever, generator:
        The pipeline stages.
    handshakes:
        Where the retrieval context is staged for the citation request.
    identity_service, identity_policy:
        Optional profile lookup; only enriches trace metadata.
    """

    def __init__(
        self,
        classifier: RelevanceClassifier,
        rewriter: QueryRewriter,
        retriever: DocumentRetriever,
        generator: AnswerGenerator,
        handshakes: PendingHandshakeStore,
        identity_service: IIdentityService | None = None,
        identity_policy: CallPolicy | None = None,
    ) -> None:
        self.classifier = classifier
        self.rewriter = rewriter
        self.retriever = retriever
        self.generator = generator
        self.handshakes = handshakes
        self.identity_service = identity_service
        self.identity_policy = identity_policy

    async def execute(
        self,
        messages: Sequence[ChatTurn],
        *,
        user_id: str,
        handshake_key: str,
    ) -> AnswerStream:
        """Run every synchronous stage and return the answer as a stream.

        A conversation without a user turn is classified as an empty question.

        Raises:
            UpstreamCallError: Classification failed.
            RetrievalError: Embedding or vector search failed.
        """
        question = last_user_message(messages)
        user = await self.lookup_user(user_id)

        with TRACER.start_as_current_span(
            run_name(user, "chat-pipeline"),
            attributes=span_attributes(user_id, user),
        ) as span:
            label = await self.classifier.classify(question, messages)
            span.set_attribute("relevance.label", label.value)

            if label.is_terminal:
                self.handshakes.discard(handshake_key)
                answer = self.generator.generate(label, question, messages)
                span.set_attribute("run.name", answer.run_name)
                return answer

            rewritten = await self.rewriter.rewrite(question, messages)
            documents = await self.retriever.retrieve(rewritten)
            context = format_context(documents)
            span.set_attribute("retrieval.documents", len(documents))

            if context:
                self.handshakes.stage(handshake_key, context=context, query=rewritten, user=user)
            else:
                self.handshakes.discard(handshake_key)
                logger.info("No context retrieved, nothing staged for citations")

            answer = self.generator.generate(label, question, messages, context=context)
            span.set_attribute("run.name", answer.run_name)
            return answer

    async def lookup_user(self, user_id: str) -> UserProfile | None:
        if self.identity_service is None or self.identity_policy is None:
            return None
        return await run_with_policy(
            self.identity_policy,
            lambda: self.identity_service.get_user(user_id),
            fallback=None,
        )
