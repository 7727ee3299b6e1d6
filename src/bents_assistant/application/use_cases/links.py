"""Links use case: the two phases of the citation handshake."""

from __future__ import annotations

from loguru import logger

from bents_assistant.application.citations import CitationExtractor
from bents_assistant.application.handshake import PendingHandshakeStore
from bents_assistant.application.policies import CallPolicy, run_with_policy
from bents_assistant.domain.models import CitationResult, UserProfile
from bents_assistant.domain.protocols import IIdentityService


class LinksUseCase:
    """Stages context (phase 1) and turns a rendered answer into citations (phase 2)."""

    def __init__(
        self,
        handshakes: PendingHandshakeStore,
        extractor: CitationExtractor,
        identity_service: IIdentityService | None = None,
        identity_policy: CallPolicy | None = None,
    ) -> None:
        self.handshakes = handshakes
        self.extractor = extractor
        self.identity_service = identity_service
        self.identity_policy = identity_policy

    async def stage(self, key: str, *, context: str, query: str, user_id: str) -> None:
        user = await self._lookup_user(user_id)
        self.handshakes.stage(key, context=context, query=query, user=user)
        logger.info("Waiting for answer | key={} query={!r}", key, query)

    async def resolve(self, key: str, *, answer: str, user_id: str) -> CitationResult | None:
        """Consume the staged entry for ``key`` and extract citations.

        Returns ``None`` when nothing (or only an expired entry) is staged.
        """
        pending = self.handshakes.consume(key)
        if pending is None:
            logger.info("No staged context for key={}, returning empty citations", key)
            return None

        user = pending.user or await self._lookup_user(user_id)
        return await self.extractor.extract(
            pending.context, pending.query, answer, user_id=user_id, user=user
        )

    async def _lookup_user(self, user_id: str) -> UserProfile | None:
        if self.identity_service is None or self.identity_policy is None:
            return None
        return await run_with_policy(
            self.identity_policy,
            lambda: self.identity_service.get_user(user_id),
            fallback=None,
        )
