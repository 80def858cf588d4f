"""Tests for document-pair relationship scoring."""

import pytest

from docgraph.relationships import RelationshipSynthesizer, combine_signals, recommend_link_strength
from docgraph.similarity import SimilarityEngine

from conftest import KeywordEmbeddingOracle


def _setup(store, oracle=None):
    d1 = store.add_document("Solar", "solar energy on the grid")
    d2 = store.add_document("Grid", "grid storage for solar energy")
    d3 = store.add_document("Bread", "")
    solar = store.add_theme("Solar Energy", importance=0.9)
    grid = store.add_theme("Grid Storage")
    store.link_document_to_theme(d1, solar)
    store.link_document_to_theme(d2, solar)
    store.link_document_to_theme(d2, grid)
    store.link_document_to_theme(d3, store.add_theme("sourdough"))
    pv = store.add_definition("PV", "photovoltaic")
    store.link_document_to_definition(d1, pv)
    store.link_document_to_definition(d2, pv)
    return RelationshipSynthesizer(store, SimilarityEngine(oracle)), (d1, d2, d3)


def test_combine_signals_weights_and_clamp():
    assert combine_signals({"exact_theme_matches": 1}) == pytest.approx(0.4)
    assert combine_signals({"exact_definition_matches": 1}) == pytest.approx(0.5)
    assert combine_signals({"exact_theme_matches": 10}) == 1.0
    assert combine_signals({}) == 0.0


@pytest.mark.parametrize("score,band", [
    (0.8, "strong"), (0.65, "medium"), (0.4, "weak"), (0.1, "very-weak"),
])
def test_recommend_link_strength(score, band):
    assert recommend_link_strength(score) == band


def test_lexical_relationship(store):
    synthesizer, (d1, d2, _) = _setup(store)
    rel = synthesizer.analyze_document_relationship(d1, d2, semantic=False)

    assert rel.exact_theme_matches == ["Solar Energy"]
    assert rel.exact_definition_matches == ["PV"]
    assert rel.semantic_connections == []
    assert rel.content_similarity == 0.0
    assert rel.signals["theme_overlap"] == pytest.approx(0.5)
    assert rel.signals["definition_overlap"] == pytest.approx(1.0)
    # (2.0 + 2.5 + 0.5 * 1.2 + 1.0 * 1.3) / 5
    assert rel.score == pytest.approx(1.0)
    assert rel.recommended_strength == "strong"


def test_unrelated_documents_score_zero(store):
    synthesizer, (d1, _, d3) = _setup(store)
    rel = synthesizer.analyze_document_relationship(d1, d3, semantic=False)
    assert rel.score == 0.0
    assert rel.recommended_strength == "very-weak"


def test_semantic_relationship_adds_signals(store):
    synthesizer, (d1, d2, _) = _setup(store, KeywordEmbeddingOracle())
    rel = synthesizer.analyze_document_relationship(d1, d2)
    assert rel.semantic
    assert rel.semantic_connections
    assert 0.0 < rel.content_similarity <= 1.0
    assert "identical" in rel.connection_types
    assert 0.0 <= rel.score <= 1.0


def test_results_cached_until_link_changes(store):
    synthesizer, (d1, d2, _) = _setup(store)
    first = synthesizer.analyze_document_relationship(d1, d2, semantic=False)
    assert synthesizer.analyze_document_relationship(d2, d1, semantic=False) is first

    store.link_document_to_theme(d1, store.add_theme("Grid Storage"))
    updated = synthesizer.analyze_document_relationship(d1, d2, semantic=False)
    assert updated is not first
    assert sorted(updated.exact_theme_matches) == ["Grid Storage", "Solar Energy"]


def test_build_connections_skips_zero_scores(store):
    synthesizer, (d1, d2, _) = _setup(store)
    connections = synthesizer.build_connections([d1, d2, "doc-3"], semantic=False)
    assert len(connections) == 1
    assert (connections[0].source, connections[0].target) == (d1, d2)
    assert connections[0].shared_definitions == ["PV"]


def test_content_similarity_only_after_semantic_analysis(store):
    synthesizer, (d1, d2, _) = _setup(store, KeywordEmbeddingOracle())
    assert synthesizer.content_similarity(d1, d2) == 0.0
    synthesizer.analyze_document_relationship(d1, d2, semantic=True)
    assert synthesizer.content_similarity(d1, d2) > 0.0


def test_adding_shared_theme_never_lowers_score(store):
    synthesizer, (d1, d2, _) = _setup(store)
    d4 = store.add_document("Wind", "")
    store.link_document_to_theme(d4, store.add_theme("Wind Power"))
    scores = [synthesizer.analyze_document_relationship(d2, d4, semantic=False).score]
    for label in ("Grid Storage", "Offshore Turbines", "Energy Policy"):
        theme = store.add_theme(label)
        store.link_document_to_theme(d2, theme)
        store.link_document_to_theme(d4, theme)
        scores.append(synthesizer.analyze_document_relationship(d2, d4, semantic=False).score)
    assert scores == sorted(scores)
    assert scores[0] == 0.0
    assert scores[-1] > 0.0
