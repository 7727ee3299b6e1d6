"""Named per-operation call policies.

Every call to an external collaborator goes through ``run_with_policy`` with
one of the policies below, so the timeout, retry budget and failure behaviour
of each operation live in one place:

- classification / embedding / vector search raise when exhausted
- rewrite / citation / product lookup / identity fall back to a default
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from loguru import logger

from bents_assistant.application.exceptions import UpstreamCallError
from bents_assistant.config import Settings

T = TypeVar("T")


class FailureMode(str, Enum):
    RAISE = "raise"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class CallPolicy:
    """Timeout, retry budget and failure behaviour for one operation."""

    name: str
    timeout_seconds: float | None
    max_retries: int = 0
    on_failure: FailureMode = FailureMode.RAISE

    @property
    def attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class CallPolicies:
    classification: CallPolicy = field(
        default_factory=lambda: CallPolicy("classification", 15.0, 1, FailureMode.RAISE)
    )
    rewrite: CallPolicy = field(
        default_factory=lambda: CallPolicy("rewrite", 15.0, 1, FailureMode.FALLBACK)
    )
    embedding: CallPolicy = field(
        default_factory=lambda: CallPolicy("embedding", 5.0, 2, FailureMode.RAISE)
    )
    vector_search: CallPolicy = field(
        default_factory=lambda: CallPolicy("vector_search", 10.0, 1, FailureMode.RAISE)
    )
    citation: CallPolicy = field(
        default_factory=lambda: CallPolicy("citation", 20.0, 1, FailureMode.FALLBACK)
    )
    product_lookup: CallPolicy = field(
        default_factory=lambda: CallPolicy("product_lookup", 10.0, 1, FailureMode.FALLBACK)
    )
    identity: CallPolicy = field(
        default_factory=lambda: CallPolicy("identity", 5.0, 1, FailureMode.FALLBACK)
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> CallPolicies:
        s = settings
        return cls(
            classification=CallPolicy(
                "classification", s.classification_timeout_seconds, s.classification_retries
            ),
            rewrite=CallPolicy(
                "rewrite", s.rewrite_timeout_seconds, s.rewrite_retries, FailureMode.FALLBACK
            ),
            embedding=CallPolicy("embedding", s.embedding_timeout_seconds, s.embedding_retries),
            vector_search=CallPolicy(
                "vector_search", s.vector_search_timeout_seconds, s.vector_search_retries
            ),
            citation=CallPolicy(
                "citation", s.citation_timeout_seconds, s.citation_retries, FailureMode.FALLBACK
            ),
            product_lookup=CallPolicy(
                "product_lookup",
                s.product_lookup_timeout_seconds,
                s.product_lookup_retries,
                FailureMode.FALLBACK,
            ),
            identity=CallPolicy(
                "identity", s.identity_timeout_seconds, s.identity_retries, FailureMode.FALLBACK
            ),
        )


async def run_with_policy(
    policy: CallPolicy,
    call: Callable[[], Awaitable[T]],
    *,
    fallback: T | None = None,
    error_cls: type[UpstreamCallError] = UpstreamCallError,
) -> T:
    """Await ``call()`` under ``policy``.

    ``call`` is a zero-argument factory so each attempt gets a fresh awaitable.

    Raises:
        error_cls: When all attempts fail and the policy is ``RAISE``.
    """
    last_exc: Exception | None = None

    for attempt in range(1, policy.attempts + 1):
        try:
            if policy.timeout_seconds is None:
                return await call()
            return await asyncio.wait_for(call(), timeout=policy.timeout_seconds)
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "{} attempt {}/{} failed: {}",
                policy.name,
                attempt,
                policy.attempts,
                _describe(exc),
            )

    if policy.on_failure is FailureMode.FALLBACK:
        logger.warning("{} exhausted its retries, using fallback", policy.name)
        return fallback  # type: ignore[return-value]

    raise error_cls(policy.name, _describe(last_exc)) from last_exc


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "timed out"
    return str(exc) or type(exc).__name__
