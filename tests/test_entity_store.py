"""Tests for the entity store: dedup, indices, queries and snapshots."""

import json

import pytest

from docgraph.errors import NotFoundError, ValidationError
from docgraph.storage import ConnectionCache, EntityStore


def _assert_indices_symmetric(store):
    for doc_id in store.documents:
        for theme_id in store.themes_for_document(doc_id):
            assert doc_id in store.documents_for_theme(theme_id)
        for def_id in store.definitions_for_document(doc_id):
            assert doc_id in store.documents_for_definition(def_id)
    for theme_id in store.themes:
        for doc_id in store.documents_for_theme(theme_id):
            assert theme_id in store.themes_for_document(doc_id)
        assert store.get_theme(theme_id).document_ids == set(store.documents_for_theme(theme_id))
    for def_id in store.definitions:
        for doc_id in store.documents_for_definition(def_id):
            assert def_id in store.definitions_for_document(doc_id)


def test_document_ids_are_sequential(store):
    assert store.add_document("A", "alpha") == "doc-1"
    assert store.add_document("A", "alpha") == "doc-2"
    assert len(store.documents) == 2


def test_theme_dedup_exact_and_case(store):
    first = store.add_theme("Solar Energy", importance=0.9)
    assert store.add_theme("solar energy!") == first
    assert store.add_theme("  SOLAR   ENERGY ") == first
    assert len(store.themes) == 1


def test_theme_dedup_keeps_first_attributes(store):
    first = store.add_theme("Solar Energy", "technological", 0.9)
    store.add_theme("solar energy", "economic", 0.2)
    theme = store.get_theme(first)
    assert theme.category == "technological"
    assert theme.importance == 0.9


def test_theme_dedup_fuzzy_threshold(store):
    first = store.add_theme("global solar energy market")
    # 4 shared words of 5 -> Jaccard 0.8
    assert store.add_theme("global solar energy market trends") == first
    # 2 shared words of 3 -> below the dedup threshold
    other = store.add_theme("solar energy storage")
    assert other != first


def test_related_themes_linked_symmetrically(store):
    a = store.add_theme("solar energy")
    b = store.add_theme("renewable solar energy")
    c = store.add_theme("sourdough")
    assert b in store.get_theme(a).related_theme_ids
    assert a in store.get_theme(b).related_theme_ids
    assert not store.get_theme(c).related_theme_ids


def test_empty_theme_label_rejected(store):
    with pytest.raises(ValidationError):
        store.add_theme("  ?! ")


def test_importance_out_of_range_rejected(store):
    with pytest.raises(ValidationError):
        store.add_theme("solar", importance=1.5)
    with pytest.raises(ValidationError):
        store.add_definition("pv", "photovoltaic", importance=-0.1)


def test_definition_dedup_on_normalized_term(store):
    first = store.add_definition("Photovoltaic", "Light to electricity")
    assert store.add_definition("photovoltaic", "something else") == first
    assert store.get_definition(first).definition == "Light to electricity"


def test_linking_keeps_indices_symmetric(store):
    d1 = store.add_document("One", "x")
    d2 = store.add_document("Two", "y")
    t = store.add_theme("solar energy")
    d = store.add_definition("pv", "photovoltaic")
    store.link_document_to_theme(d1, t, 0.8, "intro")
    store.link_document_to_theme(d2, t)
    store.link_document_to_definition(d1, d)

    _assert_indices_symmetric(store)
    assert store.theme_link(d1, t).confidence == 0.8
    assert store.theme_link(d1, t).context == "intro"
    assert store.get_theme(t).frequency == 2


def test_link_unknown_ids_raise_not_found(store):
    d1 = store.add_document("One", "x")
    with pytest.raises(NotFoundError):
        store.link_document_to_theme(d1, "theme-missing")
    with pytest.raises(NotFoundError):
        store.link_document_to_definition("doc-99", "def-missing")
    # NotFoundError is also a KeyError
    with pytest.raises(KeyError):
        store.get_document("doc-99")


def test_related_documents_solar_scenario(store):
    d1 = store.add_document("Solar Basics", "...")
    d2 = store.add_document("Grid Policy", "...")
    d3 = store.add_document("Bread", "...")
    t1 = store.add_theme("Solar Energy", importance=0.9)
    t2 = store.add_theme("solar energy", importance=0.4)
    store.link_document_to_theme(d1, t1)
    store.link_document_to_theme(d2, t2)
    store.link_document_to_theme(d3, store.add_theme("sourdough"))

    related = store.get_related_documents(d1)
    assert [r.document_id for r in related] == [d2]
    assert related[0].connection_strength == pytest.approx(0.9)
    assert [t.id for t in related[0].shared_themes] == [t1]
    assert store.get_related_documents(d3) == []


def test_related_documents_weight_definitions(store):
    d1 = store.add_document("A", "")
    d2 = store.add_document("B", "")
    definition = store.add_definition("pv", "photovoltaic", importance=0.5)
    store.link_document_to_definition(d1, definition)
    store.link_document_to_definition(d2, definition)

    related = store.get_related_documents(d1)
    assert related[0].connection_strength == pytest.approx(0.6)
    assert store.get_related_documents(d1, include_definitions=False) == []


def test_related_documents_min_shared(store):
    d1 = store.add_document("A", "")
    d2 = store.add_document("B", "")
    t = store.add_theme("solar")
    store.link_document_to_theme(d1, t)
    store.link_document_to_theme(d2, t)
    assert len(store.get_related_documents(d1, min_shared_themes=1)) == 1
    assert store.get_related_documents(d1, min_shared_themes=2) == []


def test_related_documents_monotonic_under_linking(store):
    docs = [store.add_document(f"D{i}", "") for i in range(4)]
    t = store.add_theme("solar")
    counts = []
    for doc_id in docs:
        store.link_document_to_theme(doc_id, t)
        counts.append(len(store.get_related_documents(docs[0])))
    assert counts == sorted(counts)
    assert counts[-1] == 3


def test_related_documents_unknown_id_is_empty(store):
    assert store.get_related_documents("doc-404") == []


def test_connectivity_map_lists_each_pair_once(store):
    docs = [store.add_document(f"D{i}", "") for i in range(3)]
    t = store.add_theme("solar")
    for doc_id in docs:
        store.link_document_to_theme(doc_id, t)

    connections = store.get_document_connectivity_map()
    pairs = {frozenset((c.source, c.target)) for c in connections}
    assert len(connections) == 3
    assert len(pairs) == 3
    assert all(c.shared_themes == ["solar"] for c in connections)


def test_shared_themes(store):
    d1 = store.add_document("A", "")
    d2 = store.add_document("B", "")
    shared = store.add_theme("solar")
    lonely = store.add_theme("bread")
    store.link_document_to_theme(d1, shared)
    store.link_document_to_theme(d2, shared)
    store.link_document_to_theme(d1, lonely)
    assert [t.id for t in store.get_shared_themes(2)] == [shared]


def test_theme_clusters_and_cohesion(store):
    d1 = store.add_document("A", "")
    d2 = store.add_document("B", "")
    a = store.add_theme("solar energy")
    b = store.add_theme("renewable solar energy")
    store.add_theme("sourdough")
    store.link_document_to_theme(d1, a)
    store.link_document_to_theme(d1, b)
    store.link_document_to_theme(d2, a)

    clusters = store.analyze_theme_clusters()
    assert len(clusters) == 1
    assert {t.id for t in clusters[0].themes} == {a, b}
    assert clusters[0].common_documents == {d1}
    assert clusters[0].strength == pytest.approx(0.5)


def test_link_invalidates_connection_cache():
    cache = ConnectionCache()
    store = EntityStore(cache)
    assert store.connection_cache is cache
    d1 = store.add_document("A", "")
    d2 = store.add_document("B", "")
    d3 = store.add_document("C", "")
    cache.set(d1, d2, 0.5)
    cache.set(d2, d3, 0.7)

    store.link_document_to_theme(d1, store.add_theme("solar"))
    assert (d1, d2) not in cache
    assert (d3, d2) in cache


def test_cache_invalidate_matches_exact_ids():
    cache = ConnectionCache()
    cache.set("doc-1", "doc-2", 1)
    cache.set("doc-10", "doc-11", 2)
    assert cache.invalidate("doc-1") == 1
    assert len(cache) == 1
    assert cache.invalidate() == 1
    assert len(cache) == 0


def _populated_store():
    store = EntityStore()
    d1 = store.add_document("Solar Basics", "sun", {"source": "a.md"})
    d2 = store.add_document("Grid Policy", "grid")
    t1 = store.add_theme("Solar Energy", "technological", 0.9, ["pv"])
    t2 = store.add_theme("renewable solar energy")
    definition = store.add_definition("Photovoltaic", "light to electricity", "ctx", 0.7)
    store.link_document_to_theme(d1, t1, 0.95, "opening")
    store.link_document_to_theme(d2, t1)
    store.link_document_to_theme(d2, t2)
    store.link_document_to_definition(d1, definition)
    store.set_summary(d1, "About the sun")
    return store


def test_export_import_round_trip():
    store = _populated_store()
    restored = EntityStore.from_json(store.to_json())

    assert restored.stats() == store.stats()
    assert restored.next_id == store.next_id
    assert restored.get_document("doc-1").summary == "About the sun"
    assert restored.theme_link("doc-1", "theme-solar-energy").context == "opening"
    assert [r.document_id for r in restored.get_related_documents("doc-1")] == ["doc-2"]
    _assert_indices_symmetric(restored)
    # New ids continue after the restored counter
    assert restored.add_document("Third", "") == "doc-3"


def test_import_rebuilds_reverse_index():
    snapshot = _populated_store().export()
    del snapshot["indices"]["documents_by_theme"]
    for theme in snapshot["themes"]:
        theme["document_ids"] = []

    restored = EntityStore()
    restored.import_snapshot(snapshot)
    assert restored.documents_for_theme("theme-solar-energy") == {"doc-1", "doc-2"}
    _assert_indices_symmetric(restored)


def test_import_rejects_dangling_reference():
    store = _populated_store()
    before = store.stats()
    snapshot = json.loads(store.to_json())
    snapshot["indices"]["themes_by_document"]["doc-1"].append("theme-missing")

    with pytest.raises(ValidationError):
        store.import_snapshot(snapshot)
    assert store.stats() == before


def test_clear(store):
    store.add_document("A", "")
    store.connection_cache.set("doc-1", "doc-2", 1)
    store.clear()
    assert store.stats()["documents"] == 0
    assert len(store.connection_cache) == 0
    assert store.add_document("B", "") == "doc-1"
