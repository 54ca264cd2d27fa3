import numpy as np
import pytest

from alignengine.graph import (
    CandidateEdge,
    ConnectionGraphBuilder,
    HashScorer,
    TableScorer,
    cosine,
    hash_embed,
)


def _by_key(edges):
    return {e.key: e for e in edges}


class TestBuilderWithTable:
    def test_basic_edges(self, table_scorer):
        edges = ConnectionGraphBuilder(table_scorer).build(["alpha", "gamma", "delta"])
        keys = _by_key(edges)
        assert set(keys) == {("alpha", "gamma"), ("alpha", "delta"), ("gamma", "delta"), ("delta", "alpha")}
        assert keys[("alpha", "gamma")].strength == pytest.approx(0.9)

    def test_long_jump_scaled_not_dropped(self):
        scorer = TableScorer({"alpha": [("beta", 0.9, 6)]})
        edges = ConnectionGraphBuilder(scorer, max_jump_distance=3).build(["alpha"])
        assert len(edges) == 1
        assert edges[0].strength == pytest.approx(0.45)
        assert edges[0].jump_distance == 6

    def test_call_ceiling_overrides_default(self, table_scorer):
        edges = ConnectionGraphBuilder(table_scorer, max_jump_distance=3).build(
            ["delta"], max_jump_distance=2
        )
        assert edges[0].strength == pytest.approx(0.5 * 2 / 4)

    def test_duplicates_keep_strongest(self):
        scorer = TableScorer({"alpha": [("beta", 0.4, 1), ("beta", 0.7, 2), CandidateEdge("beta", 0.2)]})
        edges = ConnectionGraphBuilder(scorer).build(["alpha"])
        assert len(edges) == 1
        assert edges[0].strength == pytest.approx(0.7)

    def test_strength_and_jump_clamped(self):
        scorer = TableScorer({"alpha": [("beta", 1.7, 0), ("gamma", -0.3, 1)]})
        keys = _by_key(ConnectionGraphBuilder(scorer).build(["alpha"]))
        assert keys[("alpha", "beta")].strength == 1.0
        assert keys[("alpha", "beta")].jump_distance == 1
        assert keys[("alpha", "gamma")].strength == 0.0

    def test_self_loops_dropped(self):
        scorer = TableScorer({"alpha": [("alpha", 0.9, 1)]})
        assert ConnectionGraphBuilder(scorer).build(["alpha"]) == []

    def test_unknown_concepts_have_no_edges(self, table_scorer):
        assert ConnectionGraphBuilder(table_scorer).build(["omega"]) == []


class TestHashScorer:
    def test_hash_embed_is_unit_and_stable(self):
        v = hash_embed("gravity")
        assert np.linalg.norm(v) == pytest.approx(1.0, abs=1e-5)
        assert np.array_equal(v, hash_embed("gravity"))
        assert cosine(v, hash_embed("gravity")) == pytest.approx(1.0, abs=1e-5)

    def test_hash_embed_accepts_lone_surrogates(self):
        v = hash_embed("wor\ud800ld")
        assert np.linalg.norm(v) == pytest.approx(1.0, abs=1e-5)
        assert np.array_equal(v, hash_embed("wor\ud800ld"))

    def test_deterministic_build(self):
        concepts = ["memory", "gravity", "shapes", "concept", "networks", "across", "domains"]
        builder = ConnectionGraphBuilder(HashScorer(window=3))
        first = {(e.source, e.target, e.strength, e.jump_distance) for e in builder.build(concepts)}
        second = {(e.source, e.target, e.strength, e.jump_distance) for e in builder.build(concepts)}
        assert first == second
        assert first

    def test_edges_respect_window_and_bounds(self):
        concepts = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot"]
        edges = ConnectionGraphBuilder(HashScorer(window=2)).build(concepts)
        assert all(1 <= e.jump_distance <= 2 for e in edges)
        assert all(0.0 <= e.strength <= 1.0 for e in edges)

    def test_similar_words_score_higher(self):
        scorer = HashScorer(window=2)
        out = {c.target: c.strength for c in scorer.score("gravity", ["gravity", "gravitational", "banana"])}
        assert out["gravitational"] > out["banana"]
