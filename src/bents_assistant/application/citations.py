"""Citation extraction: video references from the tag grammar, then related products.

The model is asked to answer with one tag group per line::

    {{timestamp:MM:SS}}{{title:...}}{{url:...}}{{description:...}}

Only complete groups are kept. A line missing any of the four fields
produces nothing; it is never repaired or defaulted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from loguru import logger

from bents_assistant.application.policies import CallPolicies, run_with_policy
from bents_assistant.application.prompts import (
    VIDEO_EXTRACTION_PROMPT,
    VIDEO_EXTRACTION_USER_PROMPT,
)
from bents_assistant.domain.models import ChatTurn, CitationResult, Product, UserProfile, VideoReference
from bents_assistant.domain.protocols import ICompletionService, IProductStore
from bents_assistant.telemetry import get_tracer, run_name

TRACER = get_tracer(__name__)

CITATION_PATTERN = re.compile(
    r"\{\{timestamp:(\d{2}:\d{2})\}\}"
    r"\{\{title:([^}\n]+)\}\}"
    r"\{\{url:([^}\n]+)\}\}"
    r"\{\{description:([^}\n]+)\}\}"
)

_BOILERPLATE_PREFIX = re.compile(
    r"^(This video |Here |In this clip |This clip |Shows |Demonstrates )"
)

EXTRACTION_TEMPERATURE = 0.1


def normalize_description(raw: str) -> str:
    """First sentence, leading boilerplate removed, first letter capitalised."""
    first_sentence = raw.strip().split(".")[0]
    cleaned = _BOILERPLATE_PREFIX.sub("", first_sentence, count=1).strip()
    return cleaned[:1].upper() + cleaned[1:]


def parse_video_references(text: str) -> dict[str, VideoReference]:
    """Index-keyed references ("0", "1", ...) in the order they appear."""
    references: dict[str, VideoReference] = {}
    for index, match in enumerate(CITATION_PATTERN.finditer(text or "")):
        timestamp, title, url, description = match.groups()
        references[str(index)] = VideoReference(
            timestamp=timestamp,
            video_title=title,
            urls=[url],
            description=normalize_description(description),
        )
    return references


def distinct_titles(references: dict[str, VideoReference]) -> list[str]:
    return list(dict.fromkeys(ref.video_title for ref in references.values()))


def dedupe_products(products: Iterable[Product]) -> list[Product]:
    """Keep the first product seen for each id."""
    seen: dict[str, Product] = {}
    for product in products:
        seen.setdefault(product.id, product)
    return list(seen.values())


class CitationExtractor:
    """Runs the citation pipeline for an answer that has already been delivered.

    Never raises: every failure degrades to empty references/products so a
    rendered answer is never invalidated after the fact.
    """

    def __init__(
        self,
        completion: ICompletionService,
        product_store: IProductStore,
        policies: CallPolicies,
    ) -> None:
        self.completion = completion
        self.product_store = product_store
        self.policies = policies

    async def extract(
        self,
        context: str,
        query: str,
        answer: str,
        *,
        user_id: str = "",
        user: UserProfile | None = None,
    ) -> CitationResult:
        with TRACER.start_as_current_span(run_name(user, "video-reference-pipeline")) as span:
            if user_id:
                span.set_attribute("user.id", user_id)
            try:
                references = await self.extract_references(context, query, answer)
                products = await self.related_products(distinct_titles(references))
            except Exception:
                logger.exception("Citation extraction failed, returning empty citations")
                return CitationResult.empty()

            span.set_attribute("citations.video_references", len(references))
            span.set_attribute("citations.related_products", len(products))
            logger.info(
                "Citations extracted | videos={} products={}", len(references), len(products)
            )
            return CitationResult(video_references=references, related_products=products)

    async def extract_references(
        self, context: str, query: str, answer: str
    ) -> dict[str, VideoReference]:
        messages = [
            ChatTurn(role="system", content=VIDEO_EXTRACTION_PROMPT),
            ChatTurn(
                role="user",
                content=VIDEO_EXTRACTION_USER_PROMPT.format(
                    context=context, question=query, answer=answer
                ),
            ),
        ]
        raw = await run_with_policy(
            self.policies.citation,
            lambda: self.completion.complete(messages, temperature=EXTRACTION_TEMPERATURE),
            fallback="",
        )
        return parse_video_references(raw or "")

    async def related_products(self, titles: list[str]) -> list[Product]:
        if not titles:
            return []
        with TRACER.start_as_current_span("product-retrieval"):
            products = await run_with_policy(
                self.policies.product_lookup,
                lambda: self.product_store.find_by_video_titles(titles),
                fallback=[],
            )
        return dedupe_products(products or [])
