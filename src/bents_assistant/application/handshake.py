"""Staging area pairing a streamed answer with its later citation request.

Phase 1 (the chat request) stages the retrieval context and rewritten
query under a handshake key. Phase 2 (the client echoing the rendered
answer) consumes the entry. Entries expire after ``ttl_seconds`` and the
store holds at most ``max_entries``, evicting the oldest first.

Staging twice under the same key overwrites the first entry; callers that
need concurrent chats to stay independent must use distinct keys.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable

from loguru import logger

from bents_assistant.domain.models import PendingHandshake, UserProfile


def resolve_handshake_key(session_id: str | None, user_id: str) -> str:
    """Explicit session id when the client sends one, else the caller's user id."""
    if session_id and session_id.strip():
        return session_id.strip()
    return user_id


class PendingHandshakeStore:
    """Time-bounded map of handshake key → ``PendingHandshake``.

    All methods are synchronous and never await, so on a single event
    loop each call runs without interleaving.
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, PendingHandshake] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def stage(
        self,
        key: str,
        *,
        context: str,
        query: str,
        user: UserProfile | None = None,
    ) -> PendingHandshake:
        self.purge_expired()

        if key in self._entries:
            logger.warning("Handshake {} overwritten before its answer arrived", key)
            del self._entries[key]
        while len(self._entries) >= self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.warning("Handshake store full, evicted {}", evicted)

        entry = PendingHandshake(context=context, query=query, user=user, created_at=self._clock())
        self._entries[key] = entry
        logger.info("Handshake staged | key={} context_chars={}", key, len(context))
        return entry

    def peek(self, key: str) -> PendingHandshake | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[key]
            return None
        return entry

    def consume(self, key: str) -> PendingHandshake | None:
        """Return and remove the entry for ``key``; expired entries count as absent."""
        entry = self.peek(key)
        if entry is not None:
            del self._entries[key]
            logger.info("Handshake consumed | key={}", key)
        return entry

    def discard(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        expired = [k for k, entry in self._entries.items() if self._expired(entry)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Purged {} expired handshake(s)", len(expired))
        return len(expired)

    def _expired(self, entry: PendingHandshake) -> bool:
        return self._clock() - entry.created_at > self.ttl_seconds
