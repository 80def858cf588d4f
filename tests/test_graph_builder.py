"""Tests for graph payload construction and layout."""

import math

import pytest

from docgraph.errors import ValidationError
from docgraph.graph import GraphBuilder, graph_density
from docgraph.graph.layout import document_positions, edge_color, shared_theme_positions, unique_theme_position
from docgraph.models import Connection


def _store_with_docs(store):
    d1 = store.add_document("Solar", "")
    d2 = store.add_document("Grid", "")
    d3 = store.add_document("Bread", "")
    solar = store.add_theme("Solar Energy", "technological", 0.9)
    store.link_document_to_theme(d1, solar, 0.8)
    store.link_document_to_theme(d2, solar, 0.6)
    store.link_document_to_theme(d2, store.add_theme("Grid Regulation", importance=0.5))
    store.link_document_to_theme(d3, store.add_theme("Sourdough"))
    return [d1, d2, d3]


def test_graph_density():
    assert graph_density(1, 0) == 0.0
    assert graph_density(3, 3) == 1.0
    assert graph_density(4, 3) == pytest.approx(0.5)


def test_threshold_must_be_unit_interval(store):
    with pytest.raises(ValidationError):
        GraphBuilder(store, 1.5)


def test_node_types_and_theme_edges(store):
    doc_ids = _store_with_docs(store)
    graph = GraphBuilder(store).build(doc_ids, [])

    assert [n.id for n in graph.nodes_of_type("document")] == doc_ids
    assert [n.label for n in graph.nodes_of_type("shared-theme")] == ["Solar Energy"]
    assert sorted(n.label for n in graph.nodes_of_type("unique-theme")) == ["Grid Regulation", "Sourdough"]

    theme_edges = graph.edges_of_type("theme-connection")
    assert {(e.source, e.strength) for e in theme_edges} == {("doc-1", 0.8), ("doc-2", 0.6)}
    assert all(e.strength == 0.8 for e in graph.edges_of_type("unique-theme-connection"))
    assert graph.metadata["shared_theme_count"] == 1
    assert graph.metadata["unique_theme_count"] == 2


def test_document_edges_respect_threshold(store):
    doc_ids = _store_with_docs(store)
    connections = [
        Connection("doc-1", "doc-2", 0.75, ["Solar Energy"]),
        Connection("doc-1", "doc-3", 0.39),
        Connection("doc-2", "doc-3", 0.4),
    ]
    graph = GraphBuilder(store, 0.4).build(doc_ids, connections, lambda a, b: 0.5)

    doc_edges = graph.edges_of_type("document-connection")
    assert {(e.source, e.target) for e in doc_edges} == {("doc-1", "doc-2"), ("doc-2", "doc-3")}
    assert all(e.strength >= 0.4 for e in doc_edges)
    assert doc_edges[0].metadata["semantic_similarity"] == 0.5
    assert graph.metadata["document_connection_count"] == 2
    assert graph.metadata["graph_density"] == pytest.approx(2 / 3)


def test_edges_outside_document_set_ignored(store):
    doc_ids = _store_with_docs(store)
    graph = GraphBuilder(store).build(doc_ids[:2], [Connection("doc-1", "doc-3", 0.9)])
    assert graph.edges_of_type("document-connection") == []
    # Sourdough belongs to a document outside the graph
    assert "Sourdough" not in [n.label for n in graph.nodes]


def test_every_edge_endpoint_is_a_node(store):
    doc_ids = _store_with_docs(store)
    graph = GraphBuilder(store).build(doc_ids, [Connection("doc-1", "doc-2", 0.9)])
    node_ids = {n.id for n in graph.nodes}
    for edge in graph.edges:
        assert edge.source in node_ids
        assert edge.target in node_ids


def test_payload_to_dict(store):
    doc_ids = _store_with_docs(store)
    payload = GraphBuilder(store).build(doc_ids, []).to_dict()
    assert set(payload) == {"nodes", "edges", "metadata"}
    assert set(payload["nodes"][0]["position"]) == {"x", "y", "z"}


def test_empty_graph(store):
    graph = GraphBuilder(store).build([], [])
    assert graph.nodes == []
    assert graph.metadata["graph_density"] == 0.0
    assert graph.metadata["average_connection_strength"] == 0.0


def test_layout_radii():
    positions = document_positions(10)
    assert math.hypot(positions[0].x, positions[0].y) == pytest.approx(50.0)
    assert math.hypot(document_positions(2)[1].x, document_positions(2)[1].y) == pytest.approx(30.0)

    shared = shared_theme_positions(3, [2, 3])
    assert [p.z for p in shared] == [12.0, 14.0]
    assert math.hypot(shared[0].x, shared[0].y) == pytest.approx(15.0)


def test_unique_theme_position_orbits_anchor():
    anchor = document_positions(1)[0]
    position = unique_theme_position(anchor, 0)
    assert position.x == pytest.approx(anchor.x + 25.0)
    assert position.z == anchor.z - 5.0


def test_edge_color_bands():
    assert edge_color(0.9).startswith("rgba(239")
    assert edge_color(0.1, 0.6).endswith("0.6)")
