"""Blend lexical overlap and semantic signals into one document-pair score."""

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Sequence

from ..models import Connection, Document
from ..similarity.engine import ConceptualConnection, SimilarityEngine
from ..storage.entity_store import EntityStore

logger = logging.getLogger(__name__)

SIGNAL_WEIGHTS = {
    "exact_theme_matches": 2.0,
    "exact_definition_matches": 2.5,
    "semantic_connections": 1.5,
    "average_semantic_similarity": 1.0,
    "content_similarity": 0.8,
    "theme_overlap": 1.2,
    "definition_overlap": 1.3,
}
SCORE_NORMALIZER = 5.0
CONTENT_SNIPPET_CHARS = 1000

STRENGTH_BANDS = (
    (0.8, "strong"),
    (0.6, "medium"),
    (0.4, "weak"),
)


def recommend_link_strength(score: float) -> str:
    for floor, name in STRENGTH_BANDS:
        if score >= floor:
            return name
    return "very-weak"


def combine_signals(signals: dict[str, float]) -> float:
    """Weighted sum of signals, divided by 5 and clamped to [0, 1]."""
    total = sum((signals.get(name) or 0.0) * weight for name, weight in SIGNAL_WEIGHTS.items())
    return max(0.0, min(total / SCORE_NORMALIZER, 1.0))


def _ratio(part: int, whole: int) -> float:
    return part / whole if whole else 0.0


@dataclass
class DocumentRelationship:
    """Outcome of comparing two documents."""
    document_a: str
    document_b: str
    score: float
    exact_theme_matches: list[str] = field(default_factory=list)
    exact_definition_matches: list[str] = field(default_factory=list)
    semantic_connections: list[ConceptualConnection] = field(default_factory=list)
    content_similarity: float = 0.0
    signals: dict[str, float] = field(default_factory=dict)
    semantic: bool = True

    @property
    def recommended_strength(self) -> str:
        return recommend_link_strength(self.score)

    @property
    def connection_types(self) -> dict[str, list[ConceptualConnection]]:
        grouped: dict[str, list[ConceptualConnection]] = {}
        for conn in self.semantic_connections:
            grouped.setdefault(conn.connection_type, []).append(conn)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_a": self.document_a,
            "document_b": self.document_b,
            "score": self.score,
            "recommended_strength": self.recommended_strength,
            "exact_theme_matches": list(self.exact_theme_matches),
            "exact_definition_matches": list(self.exact_definition_matches),
            "semantic_connections": [c.to_dict() for c in self.semantic_connections],
            "content_similarity": self.content_similarity,
            "signals": dict(self.signals),
            "semantic": self.semantic,
        }


class RelationshipSynthesizer:
    """Scores document pairs from the entity store.

    Pair results are cached in the store's connection cache, so linking a
    new theme or definition to either document drops the stale score.
    """

    def __init__(self, store: EntityStore, engine: SimilarityEngine):
        self.store = store
        self.engine = engine
        self.cache = store.connection_cache

    def analyze_document_relationship(self, doc_a_id: str, doc_b_id: str, semantic: bool = True) -> DocumentRelationship:
        """Score two documents. ``semantic=False`` skips the embedding and content signals."""
        cached = self.cache.get(doc_a_id, doc_b_id) or {}
        if semantic in cached:
            return cached[semantic]

        doc_a = self.store.get_document(doc_a_id)
        doc_b = self.store.get_document(doc_b_id)

        themes_a = self._theme_labels(doc_a)
        themes_b = self._theme_labels(doc_b)
        terms_a = self._definition_terms(doc_a)
        terms_b = self._definition_terms(doc_b)

        exact_themes = sorted(themes_a.keys() & themes_b.keys())
        exact_terms = sorted(terms_a.keys() & terms_b.keys())

        connections: list[ConceptualConnection] = []
        content_similarity = 0.0
        if semantic:
            connections = self.engine.find_conceptual_connections(
                [self.store.get_theme(t) for t in sorted(doc_a.theme_ids)],
                [self.store.get_theme(t) for t in sorted(doc_b.theme_ids)],
            )
            if doc_a.content and doc_b.content:
                content_similarity = self.engine.calculate_semantic_similarity(
                    doc_a.content[:CONTENT_SNIPPET_CHARS],
                    doc_b.content[:CONTENT_SNIPPET_CHARS],
                )

        signals = {
            "exact_theme_matches": float(len(exact_themes)),
            "exact_definition_matches": float(len(exact_terms)),
            "semantic_connections": float(len(connections)),
            "average_semantic_similarity": (
                sum(c.similarity for c in connections) / len(connections) if connections else 0.0
            ),
            "content_similarity": content_similarity,
            "theme_overlap": _ratio(len(exact_themes), max(len(themes_a), len(themes_b))),
            "definition_overlap": _ratio(len(exact_terms), max(len(terms_a), len(terms_b))),
        }

        relationship = DocumentRelationship(
            document_a=doc_a_id,
            document_b=doc_b_id,
            score=combine_signals(signals),
            exact_theme_matches=[themes_a[k] for k in exact_themes],
            exact_definition_matches=[terms_a[k] for k in exact_terms],
            semantic_connections=connections,
            content_similarity=content_similarity,
            signals=signals,
            semantic=semantic,
        )
        cached[semantic] = relationship
        self.cache.set(doc_a_id, doc_b_id, cached)
        return relationship

    def analyze_all(self, doc_ids: Sequence[str], semantic: bool = True) -> list[DocumentRelationship]:
        """Analyze every unordered pair, one after another."""
        return [self.analyze_document_relationship(a, b, semantic=semantic) for a, b in combinations(doc_ids, 2)]

    def build_connections(self, doc_ids: Sequence[str], semantic: bool = True) -> list[Connection]:
        """Scored connections for every pair with a non-zero score, strongest first."""
        connections = []
        for rel in self.analyze_all(doc_ids, semantic=semantic):
            if rel.score <= 0:
                continue
            connections.append(Connection(
                source=rel.document_a,
                target=rel.document_b,
                strength=rel.score,
                shared_themes=list(rel.exact_theme_matches),
                shared_definitions=list(rel.exact_definition_matches),
            ))
        connections.sort(key=lambda c: c.strength, reverse=True)
        return connections

    def content_similarity(self, doc_a_id: str, doc_b_id: str) -> float:
        """Cached content similarity for a pair, 0.0 if it was never analyzed semantically."""
        cached = self.cache.get(doc_a_id, doc_b_id) or {}
        rel = cached.get(True)
        return rel.content_similarity if rel else 0.0

    def _theme_labels(self, doc: Document) -> dict[str, str]:
        """normalized label -> display label for the document's themes."""
        themes = (self.store.get_theme(t) for t in doc.theme_ids)
        return {t.normalized_label: t.label for t in themes}

    def _definition_terms(self, doc: Document) -> dict[str, str]:
        definitions = (self.store.get_definition(d) for d in doc.definition_ids)
        return {d.normalized_term: d.term for d in definitions}
