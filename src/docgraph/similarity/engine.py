"""Semantic similarity between theme labels, texts and embedding vectors.

The engine never raises to its caller. Embeddings come from an external
oracle that may be missing or failing; in that case a deterministic
pseudo-embedding (hash-bucketed term frequencies) or a term-frequency
cosine is used instead, so downstream scoring always gets a number.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Iterable, Sequence

import numpy as np

from ..embeddings.embedder import EmbeddingOracle
from ..models import Theme
from .hierarchy import HierarchyStrategy, SubstringGenerality
from .text import content_hash, stable_bucket, term_frequency_vectors, tokenize

logger = logging.getLogger(__name__)

CONNECTION_BANDS = (
    (0.9, "identical"),
    (0.8, "very-similar"),
    (0.7, "similar"),
    (0.6, "related"),
)


def connection_type(similarity: float) -> str:
    """Discrete band for a similarity score."""
    for floor, name in CONNECTION_BANDS:
        if similarity >= floor:
            return name
    return "weakly-related"


def theme_label(theme: Any) -> str:
    """Label of a Theme record, a plain string, or an oracle-style dict."""
    if isinstance(theme, Theme):
        return theme.label
    if isinstance(theme, str):
        return theme
    if isinstance(theme, dict):
        return str(theme.get("label") or theme.get("term") or theme.get("theme") or "")
    return str(theme)


def _theme_category(theme: Any) -> str:
    if isinstance(theme, Theme):
        return theme.category or "general"
    if isinstance(theme, dict):
        return theme.get("category") or "general"
    return "general"


@dataclass
class ConceptualConnection:
    """Two themes from different documents judged semantically close."""
    theme_a: str
    theme_b: str
    similarity: float
    connection_type: str
    category: str = "general"

    def to_dict(self) -> dict[str, Any]:
        return {
            "theme_a": self.theme_a,
            "theme_b": self.theme_b,
            "similarity": self.similarity,
            "connection_type": self.connection_type,
            "category": self.category,
        }


@dataclass
class SemanticCluster:
    """A greedy group of themes with pairwise-close embeddings."""
    themes: list[str]
    average_similarity: float
    category: str = "general"

    def to_dict(self) -> dict[str, Any]:
        return {"themes": self.themes, "average_similarity": self.average_similarity, "category": self.category}


@dataclass
class ThemeHierarchy:
    root: list[str] = field(default_factory=list)
    children: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"root": list(self.root), "children": {k: list(v) for k, v in self.children.items()}}


@dataclass
class ThemeSemantics:
    """Combined result of clustering, hierarchy and categorization for a theme set."""
    semantic_groups: list[SemanticCluster] = field(default_factory=list)
    hierarchy: ThemeHierarchy = field(default_factory=ThemeHierarchy)
    categories: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "semantic_groups": [g.to_dict() for g in self.semantic_groups],
            "hierarchy": self.hierarchy.to_dict(),
            "categories": {k: list(v) for k, v in self.categories.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ThemeSemantics":
        data = data or {}
        hierarchy = data.get("hierarchy") or {}
        return cls(
            semantic_groups=[SemanticCluster(**g) for g in data.get("semantic_groups") or []],
            hierarchy=ThemeHierarchy(
                root=list(hierarchy.get("root") or []),
                children={k: list(v) for k, v in (hierarchy.get("children") or {}).items()},
            ),
            categories={k: list(v) for k, v in (data.get("categories") or {}).items()},
        )


class SimilarityEngine:
    """Computes similarities with an embedding oracle and lexical fallbacks."""

    def __init__(
        self,
        embedding_oracle: EmbeddingOracle | None = None,
        fallback_dimensions: int = 384,
        conceptual_threshold: float = 0.7,
        cluster_threshold: float = 0.6,
        hierarchy_strategy: HierarchyStrategy | None = None,
    ):
        self.embedding_oracle = embedding_oracle
        self.fallback_dimensions = fallback_dimensions
        self.conceptual_threshold = conceptual_threshold
        self.cluster_threshold = cluster_threshold
        self.hierarchy_strategy = hierarchy_strategy or SubstringGenerality()
        self._embeddings_cache: dict[str, list[float]] = {}
        self._similarity_cache: dict[tuple[str, str], float] = {}

    # -- caches -------------------------------------------------------------

    def invalidate(self, scope: str | None = None) -> None:
        """Clear the "embeddings" or "similarity" cache, or both when scope is None."""
        if scope in (None, "embeddings"):
            self._embeddings_cache.clear()
        if scope in (None, "similarity"):
            self._similarity_cache.clear()
        if scope not in (None, "embeddings", "similarity"):
            logger.warning(f"Unknown similarity cache scope: {scope}")

    def clear_cache(self) -> None:
        self.invalidate(None)

    def cache_sizes(self) -> dict[str, int]:
        return {"embeddings": len(self._embeddings_cache), "similarity": len(self._similarity_cache)}

    # -- vectors ------------------------------------------------------------

    @staticmethod
    def cosine_similarity(vec_a: Sequence[float] | None, vec_b: Sequence[float] | None) -> float:
        """Cosine of two vectors; 0.0 for missing, empty, mismatched or zero vectors."""
        if vec_a is None or vec_b is None:
            return 0.0
        try:
            a = np.asarray(vec_a, dtype=float)
            b = np.asarray(vec_b, dtype=float)
        except (TypeError, ValueError):
            return 0.0
        if a.ndim != 1 or a.shape != b.shape or a.size == 0:
            return 0.0
        norm_a = np.linalg.norm(a)
        norm_b = np.linalg.norm(b)
        if not norm_a or not norm_b or not math.isfinite(norm_a * norm_b):
            return 0.0
        sim = float(np.dot(a, b) / (norm_a * norm_b))
        if not math.isfinite(sim):
            return 0.0
        return max(-1.0, min(1.0, sim))

    def fallback_embedding(self, text: str) -> list[float]:
        """Deterministic hash-bucketed term-frequency vector."""
        vector = [0.0] * self.fallback_dimensions
        words = tokenize(text)
        for word in words:
            vector[stable_bucket(word, self.fallback_dimensions)] += 1 / len(words)
        return vector

    def get_embeddings(self, texts: Iterable[str]) -> list[list[float]]:
        """One vector per text, from cache, the oracle, or the fallback."""
        texts = [(t or "").strip() for t in texts]
        results: list[list[float] | None] = [None] * len(texts)
        missing: dict[str, list[int]] = {}

        for i, text in enumerate(texts):
            key = content_hash(text)
            if key in self._embeddings_cache:
                results[i] = self._embeddings_cache[key]
            else:
                missing.setdefault(text, []).append(i)

        if missing:
            to_fetch = list(missing)
            try:
                if self.embedding_oracle is None:
                    raise LookupError("no embedding oracle configured")
                vectors = self.embedding_oracle.embed(to_fetch)
                if len(vectors) != len(to_fetch):
                    raise ValueError(f"oracle returned {len(vectors)} vectors for {len(to_fetch)} texts")
                for text, vector in zip(to_fetch, vectors):
                    vector = [float(v) for v in vector]
                    self._embeddings_cache[content_hash(text)] = vector
                    for i in missing[text]:
                        results[i] = vector
            except Exception as e:
                if self.embedding_oracle is not None:
                    logger.warning(f"Embedding oracle failed, using fallback embeddings: {e}")
                for text in to_fetch:
                    vector = self.fallback_embedding(text)
                    for i in missing[text]:
                        results[i] = vector

        return results  # type: ignore[return-value]

    # -- texts --------------------------------------------------------------

    def term_frequency_similarity(self, text1: str, text2: str) -> float:
        """Cosine over term-frequency vectors of the two texts."""
        vec1, vec2 = term_frequency_vectors(text1, text2)
        return self.cosine_similarity(vec1, vec2)

    def calculate_semantic_similarity(self, text1: str, text2: str) -> float:
        """Similarity in [0, 1]; falls back to term-frequency cosine on any error."""
        key = tuple(sorted((text1 or "", text2 or "")))
        if key in self._similarity_cache:
            return self._similarity_cache[key]

        try:
            emb1, emb2 = self.get_embeddings([text1, text2])
            similarity = self.cosine_similarity(emb1, emb2)
        except Exception as e:
            logger.warning(f"Semantic similarity failed, using term-frequency fallback: {e}")
            similarity = self.term_frequency_similarity(text1 or "", text2 or "")

        similarity = max(0.0, min(1.0, similarity))
        self._similarity_cache[key] = similarity
        return similarity

    # -- themes -------------------------------------------------------------

    def find_conceptual_connections(
        self,
        themes_a: Sequence[Any],
        themes_b: Sequence[Any],
    ) -> list[ConceptualConnection]:
        """Cross-document theme pairs whose embeddings are at least ``conceptual_threshold`` close."""
        labels_a = [theme_label(t) for t in themes_a]
        labels_b = [theme_label(t) for t in themes_b]
        if not labels_a or not labels_b:
            return []

        embeddings = self.get_embeddings(labels_a + labels_b)
        emb_a, emb_b = embeddings[:len(labels_a)], embeddings[len(labels_a):]

        connections = []
        for i, label_a in enumerate(labels_a):
            for j, label_b in enumerate(labels_b):
                similarity = self.cosine_similarity(emb_a[i], emb_b[j])
                if similarity < self.conceptual_threshold:
                    continue
                cat_a, cat_b = _theme_category(themes_a[i]), _theme_category(themes_b[j])
                connections.append(ConceptualConnection(
                    theme_a=label_a,
                    theme_b=label_b,
                    similarity=similarity,
                    connection_type=connection_type(similarity),
                    category=cat_a if cat_a == cat_b else "general",
                ))

        connections.sort(key=lambda c: c.similarity, reverse=True)
        return connections

    def cluster_themes(self, themes: Sequence[Any], embeddings: Sequence[Sequence[float]]) -> list[SemanticCluster]:
        """Greedy non-overlapping clusters: each unassigned theme seeds a cluster
        and absorbs every later unassigned theme within ``cluster_threshold``."""
        clusters = []
        assigned: set[int] = set()

        for i in range(len(themes)):
            if i in assigned:
                continue
            members = [i]
            assigned.add(i)
            for j in range(i + 1, len(themes)):
                if j in assigned:
                    continue
                if self.cosine_similarity(embeddings[i], embeddings[j]) >= self.cluster_threshold:
                    members.append(j)
                    assigned.add(j)

            if len(members) > 1:
                clusters.append(SemanticCluster(
                    themes=[theme_label(themes[m]) for m in members],
                    average_similarity=self._cohesion(members, embeddings),
                    category=self._dominant_category([themes[m] for m in members]),
                ))

        return clusters

    def _cohesion(self, members: list[int], embeddings: Sequence[Sequence[float]]) -> float:
        pairs = list(combinations(members, 2))
        if not pairs:
            return 0.0
        return sum(self.cosine_similarity(embeddings[i], embeddings[j]) for i, j in pairs) / len(pairs)

    @staticmethod
    def _dominant_category(themes: Sequence[Any]) -> str:
        counts = Counter(_theme_category(t) for t in themes)
        return counts.most_common(1)[0][0] if counts else "general"

    def build_theme_hierarchy(self, themes: Sequence[Any], embeddings: Sequence[Sequence[float]]) -> ThemeHierarchy:
        """Attach each theme to its most similar strictly-more-general theme.

        Not guaranteed to be a DAG; themes without a candidate parent go to root.
        """
        hierarchy = ThemeHierarchy()
        labels = [theme_label(t) for t in themes]

        for i, label in enumerate(labels):
            parent = None
            best = 0.0
            for j, other in enumerate(labels):
                if i == j or not self.hierarchy_strategy.is_more_general(other, label):
                    continue
                similarity = self.cosine_similarity(embeddings[i], embeddings[j])
                if similarity > best:
                    best = similarity
                    parent = other

            if parent is None:
                hierarchy.root.append(label)
            else:
                hierarchy.children.setdefault(parent, []).append(label)

        return hierarchy

    @staticmethod
    def categorize_themes(themes: Sequence[Any]) -> dict[str, list[str]]:
        categories: dict[str, list[str]] = {}
        for theme in themes:
            categories.setdefault(_theme_category(theme), []).append(theme_label(theme))
        return categories

    def analyze_theme_semantics(self, themes: Sequence[Any], hierarchical: bool = True) -> ThemeSemantics:
        """Clusters, hierarchy and categories for a set of themes."""
        themes = list(themes or [])
        if not themes:
            return ThemeSemantics()
        try:
            embeddings = self.get_embeddings([theme_label(t) for t in themes])
            return ThemeSemantics(
                semantic_groups=self.cluster_themes(themes, embeddings),
                hierarchy=self.build_theme_hierarchy(themes, embeddings) if hierarchical else ThemeHierarchy(),
                categories=self.categorize_themes(themes),
            )
        except Exception as e:
            logger.warning(f"Theme semantic analysis failed: {e}")
            return ThemeSemantics()
