"""Summaries and rule-based recommendations for a finished analysis."""

from typing import Any, Sequence

from ..graph.builder import GraphPayload
from ..models import Theme
from ..similarity.engine import ThemeSemantics
from ..storage.entity_store import EntityStore

LOW_DENSITY = 0.3
LOW_THEMES_PER_DOCUMENT = 3


def average_themes_per_document(store: EntityStore, doc_ids: Sequence[str]) -> float:
    if not doc_ids:
        return 0.0
    return sum(len(store.themes_for_document(d)) for d in doc_ids) / len(doc_ids)


def find_most_connected_document(store: EntityStore, doc_ids: Sequence[str]) -> dict[str, Any] | None:
    """The document with the most related documents, or None if nothing is connected."""
    best_id, best_count = None, 0
    for doc_id in doc_ids:
        count = len(store.get_related_documents(doc_id))
        if count > best_count:
            best_id, best_count = doc_id, count
    if best_id is None:
        return None
    return {"document_id": best_id, "title": store.get_document(best_id).title, "connection_count": best_count}


def find_isolated_documents(store: EntityStore, doc_ids: Sequence[str]) -> list[dict[str, Any]]:
    """Documents sharing no theme or definition with any other document."""
    return [
        {"document_id": d, "title": store.get_document(d).title}
        for d in doc_ids
        if not store.get_related_documents(d)
    ]


def run_shared_themes(store: EntityStore, doc_ids: Sequence[str]) -> list[tuple[Theme, list[str]]]:
    """Themes shared by at least two of ``doc_ids``, with their sharers, most shared first."""
    doc_set = set(doc_ids)
    shared = []
    for theme in store.themes.values():
        sharers = sorted(theme.document_ids & doc_set)
        if len(sharers) >= 2:
            shared.append((theme, sharers))
    shared.sort(key=lambda item: len(item[1]), reverse=True)
    return shared


def analyze_theme_categories(store: EntityStore) -> dict[str, dict[str, Any]]:
    categories: dict[str, dict[str, Any]] = {}
    for theme in store.themes.values():
        entry = categories.setdefault(theme.category or "general", {"count": 0, "themes": [], "average_importance": 0.0})
        entry["count"] += 1
        entry["themes"].append(theme.label)
        entry["average_importance"] += theme.importance or 0.0

    for entry in categories.values():
        entry["average_importance"] /= entry["count"]
    return categories


def generate_recommendations(store: EntityStore, doc_ids: Sequence[str], graph: GraphPayload) -> list[dict[str, Any]]:
    recommendations = []

    isolated = find_isolated_documents(store, doc_ids)
    if isolated:
        recommendations.append({
            "type": "connectivity",
            "priority": "high",
            "message": f"{len(isolated)} document(s) appear isolated. Consider re-analyzing for missed connections or adding bridging documents.",
            "action": "review_isolation",
            "affected_documents": [d["document_id"] for d in isolated],
        })

    density = graph.metadata.get("graph_density", 0.0)
    if density < LOW_DENSITY:
        recommendations.append({
            "type": "density",
            "priority": "medium",
            "message": "Document collection has low connectivity. Consider adding more related documents or reviewing theme extraction.",
            "action": "improve_density",
            "current_density": density,
        })

    avg_themes = average_themes_per_document(store, doc_ids)
    if avg_themes < LOW_THEMES_PER_DOCUMENT:
        recommendations.append({
            "type": "themes",
            "priority": "medium",
            "message": "Low average themes per document. Consider lowering the confidence threshold or reviewing the extraction prompt.",
            "action": "review_theme_extraction",
            "current_average": avg_themes,
        })

    return recommendations


def generate_analysis_report(
    store: EntityStore,
    doc_ids: Sequence[str],
    graph: GraphPayload,
    theme_semantics: ThemeSemantics | None = None,
) -> dict[str, Any]:
    """Report for one run. ``overview`` covers ``doc_ids`` only; ``session`` covers the whole store."""
    shared = run_shared_themes(store, doc_ids)
    semantics = theme_semantics or ThemeSemantics()
    theme_ids = set().union(*(store.themes_for_document(d) for d in doc_ids))
    definition_ids = set().union(*(store.definitions_for_document(d) for d in doc_ids))

    return {
        "overview": {
            "total_documents": len(doc_ids),
            "total_themes": len(theme_ids),
            "total_definitions": len(definition_ids),
            "shared_themes": len(shared),
            "average_themes_per_document": average_themes_per_document(store, doc_ids),
        },
        "session": {
            "total_documents": len(store.documents),
            "total_themes": len(store.themes),
            "total_definitions": len(store.definitions),
            "shared_themes": len(store.get_shared_themes(2)),
        },
        "connectivity": {
            "average_connection_strength": graph.metadata.get("average_connection_strength", 0.0),
            "graph_density": graph.metadata.get("graph_density", 0.0),
            "most_connected_document": find_most_connected_document(store, doc_ids),
            "isolated_documents": find_isolated_documents(store, doc_ids),
        },
        "theme_analysis": {
            "top_shared_themes": [
                {"id": t.id, "label": t.label, "category": t.category, "shared_by": sharers}
                for t, sharers in shared[:10]
            ],
            "theme_categories": analyze_theme_categories(store),
            "semantic_clusters": [g.to_dict() for g in semantics.semantic_groups],
            "hierarchy": semantics.hierarchy.to_dict(),
            "theme_clusters": [
                {
                    "id": c.cluster_id,
                    "themes": [t.label for t in c.themes],
                    "common_documents": sorted(c.common_documents),
                    "strength": c.strength,
                }
                for c in store.analyze_theme_clusters()
            ],
        },
        "recommendations": generate_recommendations(store, doc_ids, graph),
    }
