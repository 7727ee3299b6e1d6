"""Tests for the two-phase links use case."""

from conftest import FakeCompletion

from bents_assistant.application.citations import CitationExtractor
from bents_assistant.application.use_cases import LinksUseCase
from bents_assistant.domain.models import UserProfile

CHISEL_LINE = (
    "{{timestamp:12:45}}{{title:Workshop Basics}}{{url:https://yt.com/abc}}"
    "{{description:Demonstration of chisel sharpening technique}}"
)


def make_links_uc(handshakes, product_store, identity_service, policies, replies):
    completion = FakeCompletion(replies=replies)
    uc = LinksUseCase(
        handshakes=handshakes,
        extractor=CitationExtractor(completion, product_store, policies),
        identity_service=identity_service,
        identity_policy=policies.identity,
    )
    return uc, completion


class TestLinksUseCase:
    async def test_stage_then_resolve(self, handshakes, product_store, identity_service, policies):
        uc, completion = make_links_uc(
            handshakes, product_store, identity_service, policies, [CHISEL_LINE]
        )

        await uc.stage("k", context="ctx", query="sharpen chisel", user_id="anonymous")
        result = await uc.resolve("k", answer="Hone at 25 degrees.", user_id="anonymous")

        assert result is not None
        assert result.video_references["0"].timestamp == "12:45"
        assert [p.id for p in result.related_products] == ["p1"]
        assert "Context:\nctx" in completion.complete_calls[0][0][1].content

    async def test_resolve_consumes_entry(self, handshakes, product_store, identity_service, policies):
        uc, _ = make_links_uc(
            handshakes, product_store, identity_service, policies, [CHISEL_LINE]
        )
        await uc.stage("k", context="ctx", query="q", user_id="u")

        assert await uc.resolve("k", answer="a", user_id="u") is not None
        assert await uc.resolve("k", answer="a", user_id="u") is None
        assert len(handshakes) == 0

    async def test_resolve_without_stage(self, handshakes, product_store, identity_service, policies):
        uc, completion = make_links_uc(handshakes, product_store, identity_service, policies, [])

        assert await uc.resolve("k", answer="a", user_id="u") is None
        assert completion.complete_calls == []

    async def test_keys_are_independent(self, handshakes, product_store, identity_service, policies):
        uc, _ = make_links_uc(
            handshakes, product_store, identity_service, policies, [CHISEL_LINE]
        )
        await uc.stage("a", context="ctx-a", query="qa", user_id="u1")
        await uc.stage("b", context="ctx-b", query="qb", user_id="u2")

        await uc.resolve("b", answer="x", user_id="u2")

        assert handshakes.peek("a").context == "ctx-a"
        assert handshakes.peek("b") is None

    async def test_stage_records_profile(self, handshakes, product_store, identity_service, policies):
        user = UserProfile(id="user_1", first_name="Ada", last_name="Lovelace")
        identity_service.get_user.return_value = user
        uc, _ = make_links_uc(handshakes, product_store, identity_service, policies, [])

        await uc.stage("k", context="ctx", query="q", user_id="user_1")

        assert handshakes.peek("k").user == user

    async def test_identity_failure_is_absorbed(
        self, handshakes, product_store, identity_service, policies
    ):
        identity_service.get_user.side_effect = ConnectionError("clerk down")
        uc, _ = make_links_uc(handshakes, product_store, identity_service, policies, [])

        await uc.stage("k", context="ctx", query="q", user_id="user_1")

        assert handshakes.peek("k").user is None
