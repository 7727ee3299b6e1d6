"""Answer generation: one response strategy per relevance label."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from loguru import logger

from bents_assistant.application.classifier import history_json
from bents_assistant.application.prompts import (
    GREETING_PROMPT,
    INAPPROPRIATE_REFUSAL,
    NOT_RELEVANT_PROMPT,
    RELEVANT_USER_PROMPT,
    SYSTEM_INSTRUCTIONS,
)
from bents_assistant.domain.models import ChatTurn, RelevanceLabel
from bents_assistant.domain.protocols import ICompletionService

RUN_NAMES = {
    RelevanceLabel.GREETING: "greeting-completion",
    RelevanceLabel.INAPPROPRIATE: "inappropriate-completion",
    RelevanceLabel.NOT_RELEVANT: "not-relevant-completion",
    RelevanceLabel.RELEVANT: "relevant-completion",
}


@dataclass
class AnswerStream:
    """A lazily produced answer; iterating it yields text deltas."""

    label: RelevanceLabel
    run_name: str
    chunks: AsyncIterator[str]

    def __aiter__(self) -> AsyncIterator[str]:
        return self.chunks

    async def collect(self) -> str:
        return "".join([chunk async for chunk in self.chunks])


async def _single(text: str) -> AsyncIterator[str]:
    yield text


class AnswerGenerator:
    """Builds the user-facing streamed answer for a classified question.

    - GREETING: friendly free-form reply to the raw message
    - INAPPROPRIATE: the fixed refusal, emitted verbatim without a model call
    - NOT_RELEVANT: redirect that acknowledges, states the specialisation
      and asks for a rephrase
    - RELEVANT: persona answer from system instructions, windowed history,
      retrieved context and the question
    """

    def __init__(
        self,
        completion: ICompletionService,
        *,
        history_window: int = 5,
        temperature: float | None = None,
    ) -> None:
        self.completion = completion
        self.history_window = history_window
        self.temperature = temperature

    def generate(
        self,
        label: RelevanceLabel,
        question: str,
        history: Sequence[ChatTurn] = (),
        context: str = "",
    ) -> AnswerStream:
        run_name = RUN_NAMES[label]
        logger.info("Generating answer | strategy={}", run_name)

        if label is RelevanceLabel.INAPPROPRIATE:
            return AnswerStream(label, run_name, _single(INAPPROPRIATE_REFUSAL))

        messages = self.build_messages(label, question, history, context)
        return AnswerStream(label, run_name, self._stream(messages))

    def build_messages(
        self,
        label: RelevanceLabel,
        question: str,
        history: Sequence[ChatTurn] = (),
        context: str = "",
    ) -> list[ChatTurn]:
        if label is RelevanceLabel.GREETING:
            return [ChatTurn(role="user", content=GREETING_PROMPT.format(question=question))]
        if label is RelevanceLabel.NOT_RELEVANT:
            return [ChatTurn(role="user", content=NOT_RELEVANT_PROMPT.format(question=question))]
        if label is RelevanceLabel.RELEVANT:
            window = list(history)[-self.history_window :] if self.history_window > 0 else []
            history_text = history_json(window)
            return [
                ChatTurn(role="system", content=SYSTEM_INSTRUCTIONS),
                ChatTurn(
                    role="user",
                    content=RELEVANT_USER_PROMPT.format(
                        history=history_text, context=context, question=question
                    ),
                ),
            ]
        raise ValueError(f"No prompt for label {label}")

    async def _stream(self, messages: list[ChatTurn]) -> AsyncIterator[str]:
        async for delta in self.completion.stream(messages, temperature=self.temperature):
            yield delta
