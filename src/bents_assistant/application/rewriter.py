"""Query rewriting for retrieval."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from bents_assistant.application.classifier import history_json
from bents_assistant.application.policies import CallPolicy, FailureMode, run_with_policy
from bents_assistant.application.prompts import REWRITE_ECHO_PREFIX, REWRITE_PROMPT
from bents_assistant.domain.models import ChatTurn
from bents_assistant.domain.protocols import ICompletionService


class QueryRewriter:
    """Turns the raw question into a search-friendly query using the full history.

    Never aborts the pipeline: any failure yields the original question.
    """

    def __init__(self, completion: ICompletionService, policy: CallPolicy) -> None:
        if policy.on_failure is not FailureMode.FALLBACK:
            raise ValueError("the rewrite policy must fall back, not raise")
        self.completion = completion
        self.policy = policy

    async def rewrite(self, question: str, history: Sequence[ChatTurn]) -> str:
        prompt = REWRITE_PROMPT.format(question=question, history=history_json(history))

        raw = await run_with_policy(
            self.policy,
            lambda: self.completion.complete(
                [ChatTurn(role="user", content=prompt)], temperature=0.0
            ),
            fallback=None,
        )
        rewritten = self._clean(raw) or question
        logger.info("Query rewrite | original={!r} rewritten={!r}", question, rewritten)
        return rewritten

    @staticmethod
    def _clean(raw: str | None) -> str:
        if not raw:
            return ""
        return raw.replace(REWRITE_ECHO_PREFIX, "", 1).strip()
