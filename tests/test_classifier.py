"""Tests for relevance labels and the classifier."""

import pytest
from conftest import FakeCompletion, turns

from bents_assistant.application.classifier import RelevanceClassifier
from bents_assistant.application.exceptions import UpstreamCallError
from bents_assistant.application.policies import CallPolicies
from bents_assistant.domain.models import RelevanceLabel


class TestRelevanceLabelParse:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("GREETING", RelevanceLabel.GREETING),
            ("relevant", RelevanceLabel.RELEVANT),
            ("  INAPPROPRIATE\n", RelevanceLabel.INAPPROPRIATE),
            ("NOT_RELEVANT.", RelevanceLabel.NOT_RELEVANT),
            ('"RELEVANT"', RelevanceLabel.RELEVANT),
        ],
    )
    def test_known_tokens(self, raw, expected):
        assert RelevanceLabel.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["", None, "Sure! RELEVANT", "maybe", "RELEVANT because"])
    def test_anything_else_is_not_relevant(self, raw):
        assert RelevanceLabel.parse(raw) is RelevanceLabel.NOT_RELEVANT

    def test_only_relevant_is_non_terminal(self):
        assert not RelevanceLabel.RELEVANT.is_terminal
        assert RelevanceLabel.GREETING.is_terminal
        assert RelevanceLabel.INAPPROPRIATE.is_terminal
        assert RelevanceLabel.NOT_RELEVANT.is_terminal


class TestRelevanceClassifier:
    async def test_returns_parsed_label(self):
        completion = FakeCompletion(replies=["RELEVANT"])
        classifier = RelevanceClassifier(completion, CallPolicies().classification)

        label = await classifier.classify("How do I sharpen a chisel?", [])

        assert label is RelevanceLabel.RELEVANT
        messages, temperature = completion.complete_calls[0]
        assert temperature == 0.0
        assert len(messages) == 1
        assert "How do I sharpen a chisel?" in messages[0].content

    async def test_uses_last_five_turns(self):
        completion = FakeCompletion(replies=["GREETING"])
        classifier = RelevanceClassifier(completion, CallPolicies().classification)
        history = turns(*[("user" if i % 2 == 0 else "assistant", f"turn-{i}") for i in range(7)])

        await classifier.classify("hi", history)

        prompt = completion.complete_calls[0][0][0].content
        assert "turn-0" not in prompt
        assert "turn-1" not in prompt
        for i in range(2, 7):
            assert f"turn-{i}" in prompt

    async def test_retries_once_then_succeeds(self):
        completion = FakeCompletion(replies=[RuntimeError("flaky"), "INAPPROPRIATE"])
        classifier = RelevanceClassifier(completion, CallPolicies().classification)

        assert await classifier.classify("x", []) is RelevanceLabel.INAPPROPRIATE
        assert len(completion.complete_calls) == 2

    async def test_failure_is_not_masked(self):
        completion = FakeCompletion(replies=[RuntimeError("down"), RuntimeError("down")])
        classifier = RelevanceClassifier(completion, CallPolicies().classification)

        with pytest.raises(UpstreamCallError, match="classification failed"):
            await classifier.classify("x", [])

    async def test_unexpected_output_maps_to_not_relevant(self):
        completion = FakeCompletion(replies=["I think this is about cooking"])
        classifier = RelevanceClassifier(completion, CallPolicies().classification)

        assert await classifier.classify("best pasta?", []) is RelevanceLabel.NOT_RELEVANT
