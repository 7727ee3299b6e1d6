"""Relevance classification: route a question before any retrieval happens."""

from __future__ import annotations

import json
from collections.abc import Sequence

from loguru import logger

from bents_assistant.application.policies import CallPolicy, run_with_policy
from bents_assistant.application.prompts import RELEVANCE_PROMPT
from bents_assistant.domain.models import ChatTurn, RelevanceLabel
from bents_assistant.domain.protocols import ICompletionService


def history_json(history: Sequence[ChatTurn]) -> str:
    return json.dumps([{"role": t.role, "content": t.content} for t in history])


class RelevanceClassifier:
    """Asks the model for exactly one of the four category tokens.

    Anything the model answers outside those tokens is treated as
    ``NOT_RELEVANT``. Model failures are not masked: once the policy is
    exhausted an ``UpstreamCallError`` propagates.
    """

    def __init__(
        self,
        completion: ICompletionService,
        policy: CallPolicy,
        history_window: int = 5,
    ) -> None:
        self.completion = completion
        self.policy = policy
        self.history_window = history_window

    async def classify(self, question: str, history: Sequence[ChatTurn]) -> RelevanceLabel:
        window = list(history)[-self.history_window :] if self.history_window > 0 else []
        prompt = RELEVANCE_PROMPT.format(history=history_json(window), question=question)

        raw = await run_with_policy(
            self.policy,
            lambda: self.completion.complete(
                [ChatTurn(role="user", content=prompt)], temperature=0.0
            ),
        )
        label = RelevanceLabel.parse(raw)
        logger.info("Relevance check | raw={!r} label={}", raw, label.value)
        return label
