import json
import logging

import pytest

from alignengine.classifier import ContextClassifier
from alignengine.composer import FALLBACK_ANSWER, BranchSelector, ResponseComposer
from alignengine.config import ResponseStyle
from alignengine.heat_shield import CapacityFilter


@pytest.fixture
def selector():
    return BranchSelector()


@pytest.fixture
def composer():
    return ResponseComposer()


class TestBranchSelector:
    def test_override_wins(self, selector, config):
        assert selector.select(config, "formal", override="specialized").name == "specialized"

    def test_suggestion_used_without_override(self, selector, config):
        assert selector.select(config, "formal").name == "formal"

    def test_unknown_override_falls_back_to_suggestion(self, selector, config, caplog):
        with caplog.at_level(logging.WARNING):
            profile = selector.select(config, "formal", override="nope")
        assert profile.name == "formal"
        assert "nope" in caplog.text

    def test_unknown_suggestion_falls_back_to_default(self, selector, config):
        assert selector.select(config, "mystery").name == config.default_branch
        assert selector.select(config, None).name == config.default_branch


class TestCompose:
    def _report(self, make_edges, strengths=(0.9, 0.7, 0.5, 0.3)):
        return CapacityFilter().apply(make_edges(list(strengths)), 2.0, 0.1, exponent=2.0)

    def test_compose_success(self, composer, config, make_edges):
        report = self._report(make_edges)
        profile = config.branches["personal"]
        result = composer.compose(["alpha", "gamma", "delta", "omega"], report, profile, config)

        assert result.success
        assert result.branch == "personal"
        assert result.edges_retained == 2
        assert result.edges_considered == 4
        assert "alpha, gamma, delta (+1 more)" in result.answer
        assert "Retained 2 of 4 connections" in result.supporting_details
        assert "c0 -> c1 (0.90)" in result.supporting_details
        assert result.alignment.formula_holds
        assert result.shield["capacity"] == pytest.approx(0.4)

    def test_style_changes_wording_only(self, composer, config, make_edges):
        report = self._report(make_edges)
        casual = composer.compose(["alpha"], report, config.branches["personal"], config)
        formal = composer.compose(["alpha"], report, config.branches["formal"], config)
        assert casual.answer != formal.answer
        assert casual.edges_retained == formal.edges_retained
        assert casual.concepts == formal.concepts
        assert ResponseStyle.PROFESSIONAL.value in formal.supporting_details

    def test_context_and_margin_details(self, composer, config, make_edges):
        context = ContextClassifier().classify("academic research at the university")
        result = composer.compose(
            ["academic"], self._report(make_edges), config.branches["formal"], config,
            context=context, effective_margin=0.15,
        )
        assert "Branch margin override: 0.15" in result.supporting_details
        assert "formal_academic" in result.supporting_details
        assert result.context["suggested_branch"] == "formal"

    def test_result_serializes(self, composer, config, make_edges):
        result = composer.compose(["alpha"], self._report(make_edges), config.branches["personal"], config)
        data = json.loads(result.to_json())
        assert data["branch"] == "personal"
        assert data["alignment"]["secondary"] == pytest.approx(2.99)
        assert "RESULT [OK]" in result.to_prompt_block()


def test_summarize():
    assert ResponseComposer.summarize([], 3) == "no concepts"
    assert ResponseComposer.summarize(["a", "b"], 3) == "a, b"
    assert ResponseComposer.summarize(["a", "b", "c", "d"], 2) == "a, b (+2 more)"
    assert ResponseComposer.summarize(["a"], 0) == "no concepts"


class TestFallback:
    def test_fallback_populates_alignment(self, composer, config):
        result = composer.fallback(config, None, "empty input")
        assert not result.success
        assert result.concepts == []
        assert result.answer == FALLBACK_ANSWER
        assert result.branch == config.default_branch
        assert result.alignment.secondary == pytest.approx(2.99)
        assert "empty input" in result.supporting_details
        assert "FALLBACK" in result.to_prompt_block()

    def test_unknown_branch_uses_default(self, composer, config):
        assert composer.fallback(config, "bogus", "x").branch == config.default_branch

    def test_known_branch_kept(self, composer, config):
        assert composer.fallback(config, "formal", "x").branch == "formal"
