"""In-memory store of documents, themes and definitions.

Documents link many-to-many to themes and definitions. Four index maps
(doc -> themes, theme -> docs, doc -> definitions, definition -> docs) give
constant-time lookups in both directions and are always updated together
inside one linking call, so a forward entry never exists without its
reverse entry.

Themes are deduplicated fuzzily on insertion: a label whose normalized form
has word-level Jaccard overlap >= 0.8 with an existing theme resolves to
that theme. Definitions are deduplicated on the exact normalized term.
"""

import json
import logging
from collections import deque
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..errors import NotFoundError, ValidationError
from ..models import (
    Connection,
    Definition,
    Document,
    LinkMetadata,
    RelatedDocument,
    Theme,
    ThemeCluster,
)
from ..similarity.text import jaccard_similarity, normalize_text, slugify
from .cache import ConnectionCache, pair_key

logger = logging.getLogger(__name__)

THEME_DEDUP_THRESHOLD = 0.8
RELATED_THEME_THRESHOLD = 0.6
DEFINITION_WEIGHT = 1.2


def _check_unit_interval(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be within [0, 1], got {value}")
    return value


class EntityStore:
    """Normalized storage with bidirectional indices."""

    def __init__(self, connection_cache: ConnectionCache | None = None):
        self.connection_cache = connection_cache if connection_cache is not None else ConnectionCache()
        self._reset_state()

    def _reset_state(self) -> None:
        self._documents: dict[str, Document] = {}
        self._themes: dict[str, Theme] = {}
        self._definitions: dict[str, Definition] = {}

        self._themes_by_document: dict[str, set[str]] = {}
        self._documents_by_theme: dict[str, set[str]] = {}
        self._definitions_by_document: dict[str, set[str]] = {}
        self._documents_by_definition: dict[str, set[str]] = {}

        self._theme_links: dict[tuple[str, str], LinkMetadata] = {}
        self._definition_links: dict[tuple[str, str], LinkMetadata] = {}

        self.next_id = 1

    # -- read access --------------------------------------------------------

    @property
    def documents(self) -> Mapping[str, Document]:
        return MappingProxyType(self._documents)

    @property
    def themes(self) -> Mapping[str, Theme]:
        return MappingProxyType(self._themes)

    @property
    def definitions(self) -> Mapping[str, Definition]:
        return MappingProxyType(self._definitions)

    def get_document(self, doc_id: str) -> Document:
        try:
            return self._documents[doc_id]
        except KeyError:
            raise NotFoundError(f"Document not found: {doc_id}") from None

    def get_theme(self, theme_id: str) -> Theme:
        try:
            return self._themes[theme_id]
        except KeyError:
            raise NotFoundError(f"Theme not found: {theme_id}") from None

    def get_definition(self, definition_id: str) -> Definition:
        try:
            return self._definitions[definition_id]
        except KeyError:
            raise NotFoundError(f"Definition not found: {definition_id}") from None

    def themes_for_document(self, doc_id: str) -> frozenset[str]:
        return frozenset(self._themes_by_document.get(doc_id, ()))

    def documents_for_theme(self, theme_id: str) -> frozenset[str]:
        return frozenset(self._documents_by_theme.get(theme_id, ()))

    def definitions_for_document(self, doc_id: str) -> frozenset[str]:
        return frozenset(self._definitions_by_document.get(doc_id, ()))

    def documents_for_definition(self, definition_id: str) -> frozenset[str]:
        return frozenset(self._documents_by_definition.get(definition_id, ()))

    def theme_link(self, doc_id: str, theme_id: str) -> LinkMetadata | None:
        return self._theme_links.get((doc_id, theme_id))

    def definition_link(self, doc_id: str, definition_id: str) -> LinkMetadata | None:
        return self._definition_links.get((doc_id, definition_id))

    # -- insertion ----------------------------------------------------------

    def add_document(self, title: str, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Create a new document. Documents are never deduplicated."""
        doc_id = f"doc-{self.next_id}"
        self.next_id += 1
        self._documents[doc_id] = Document(
            id=doc_id,
            title=title,
            content=content or "",
            metadata=dict(metadata or {}),
        )
        self._themes_by_document[doc_id] = set()
        self._definitions_by_document[doc_id] = set()
        return doc_id

    def add_theme(
        self,
        label: str,
        category: str = "general",
        importance: float = 1.0,
        tags: Iterable[str] | None = None,
    ) -> str:
        """Add a theme, or resolve to an existing near-duplicate.

        When an existing theme's normalized label overlaps >= 0.8 with this
        one, its id is returned and the new category/importance/tags are
        discarded rather than merged.
        """
        normalized = normalize_text(label)
        if not normalized:
            raise ValidationError(f"Theme label is empty after normalization: {label!r}")
        importance = _check_unit_interval("Theme importance", importance)

        existing = self.find_similar_theme(normalized)
        if existing is not None:
            return existing.id

        theme_id = f"theme-{slugify(normalized)}"
        theme = Theme(
            id=theme_id,
            label=label.strip(),
            normalized_label=normalized,
            category=category or "general",
            importance=importance,
            semantic_tags=list(tags or []),
        )

        for other in self._themes.values():
            if jaccard_similarity(normalized, other.normalized_label) >= RELATED_THEME_THRESHOLD:
                theme.related_theme_ids.add(other.id)
                other.related_theme_ids.add(theme_id)

        self._themes[theme_id] = theme
        self._documents_by_theme[theme_id] = set()
        return theme_id

    def find_similar_theme(self, normalized_label: str) -> Theme | None:
        """Return the first theme whose normalized label overlaps >= 0.8, if any."""
        for theme in self._themes.values():
            if jaccard_similarity(normalized_label, theme.normalized_label) >= THEME_DEDUP_THRESHOLD:
                return theme
        return None

    def add_definition(
        self,
        term: str,
        definition: str,
        context: str = "",
        importance: float = 1.0,
    ) -> str:
        """Add a definition, returning the existing id on an exact normalized-term match."""
        normalized = normalize_text(term)
        if not normalized:
            raise ValidationError(f"Definition term is empty after normalization: {term!r}")
        importance = _check_unit_interval("Definition importance", importance)

        definition_id = f"def-{slugify(normalized)}"
        if definition_id in self._definitions:
            return definition_id

        self._definitions[definition_id] = Definition(
            id=definition_id,
            term=term.strip(),
            normalized_term=normalized,
            definition=(definition or "").strip(),
            context=context or "",
            importance=importance,
        )
        self._documents_by_definition[definition_id] = set()
        return definition_id

    # -- linking ------------------------------------------------------------

    def link_document_to_theme(
        self,
        doc_id: str,
        theme_id: str,
        confidence: float = 1.0,
        context: str = "",
    ) -> None:
        doc = self.get_document(doc_id)
        theme = self.get_theme(theme_id)
        confidence = _check_unit_interval("Link confidence", confidence)

        self._themes_by_document[doc_id].add(theme_id)
        self._documents_by_theme[theme_id].add(doc_id)
        doc.theme_ids.add(theme_id)
        theme.document_ids.add(doc_id)
        theme.frequency += 1
        self._theme_links[(doc_id, theme_id)] = LinkMetadata(confidence=confidence, context=context or "")

        self.connection_cache.invalidate(doc_id)

    def link_document_to_definition(self, doc_id: str, definition_id: str, confidence: float = 1.0) -> None:
        doc = self.get_document(doc_id)
        definition = self.get_definition(definition_id)
        confidence = _check_unit_interval("Link confidence", confidence)

        self._definitions_by_document[doc_id].add(definition_id)
        self._documents_by_definition[definition_id].add(doc_id)
        doc.definition_ids.add(definition_id)
        definition.document_ids.add(doc_id)
        definition.frequency += 1
        self._definition_links[(doc_id, definition_id)] = LinkMetadata(confidence=confidence)

        self.connection_cache.invalidate(doc_id)

    def set_summary(self, doc_id: str, summary: str) -> None:
        self.get_document(doc_id).summary = summary or ""

    # -- queries ------------------------------------------------------------

    def get_related_documents(
        self,
        doc_id: str,
        min_shared_themes: int = 1,
        include_definitions: bool = True,
    ) -> list[RelatedDocument]:
        """Documents sharing themes or definitions with ``doc_id``, strongest first.

        Score is the sum of shared theme importances plus 1.2x the sum of
        shared definition importances. Candidates with fewer than
        ``min_shared_themes`` shared items (themes + definitions) are dropped.
        """
        if doc_id not in self._documents:
            return []

        shared_themes: dict[str, list[str]] = {}
        shared_defs: dict[str, list[str]] = {}
        scores: dict[str, float] = {}

        for theme_id in sorted(self._themes_by_document[doc_id]):
            importance = self._themes[theme_id].importance
            for other_id in sorted(self._documents_by_theme[theme_id]):
                if other_id == doc_id:
                    continue
                shared_themes.setdefault(other_id, []).append(theme_id)
                scores[other_id] = scores.get(other_id, 0.0) + importance

        if include_definitions:
            for definition_id in sorted(self._definitions_by_document[doc_id]):
                importance = self._definitions[definition_id].importance
                for other_id in sorted(self._documents_by_definition[definition_id]):
                    if other_id == doc_id:
                        continue
                    shared_defs.setdefault(other_id, []).append(definition_id)
                    scores[other_id] = scores.get(other_id, 0.0) + importance * DEFINITION_WEIGHT

        results = []
        for other_id, score in scores.items():
            theme_ids = shared_themes.get(other_id, [])
            definition_ids = shared_defs.get(other_id, [])
            if len(theme_ids) + len(definition_ids) < min_shared_themes:
                continue
            results.append(RelatedDocument(
                document_id=other_id,
                document=self._documents[other_id],
                shared_themes=[self._themes[t] for t in theme_ids],
                shared_definitions=[self._definitions[d] for d in definition_ids],
                connection_strength=score,
            ))

        results.sort(key=lambda r: r.connection_strength, reverse=True)
        return results

    def get_shared_themes(self, min_documents: int = 2) -> list[Theme]:
        """Themes linked to at least ``min_documents`` documents, most shared first."""
        shared = [t for t in self._themes.values() if len(t.document_ids) >= min_documents]
        shared.sort(key=lambda t: len(t.document_ids), reverse=True)
        return shared

    def get_document_connectivity_map(self) -> list[Connection]:
        """Every connected document pair once, strongest first."""
        connections = []
        seen: set[tuple[str, str]] = set()

        for doc_id in self._documents:
            for related in self.get_related_documents(doc_id, 1, True):
                key = pair_key(doc_id, related.document_id)
                if key in seen:
                    continue
                seen.add(key)
                connections.append(Connection(
                    source=doc_id,
                    target=related.document_id,
                    strength=related.connection_strength,
                    shared_themes=[t.label for t in related.shared_themes],
                    shared_definitions=[d.term for d in related.shared_definitions],
                ))

        connections.sort(key=lambda c: c.strength, reverse=True)
        return connections

    def analyze_theme_clusters(self) -> list[ThemeCluster]:
        """Connected components of the related-theme graph, excluding singletons."""
        clusters = []
        visited: set[str] = set()

        for theme_id in self._themes:
            if theme_id in visited:
                continue
            members = self._collect_component(theme_id, visited)
            if len(members) < 2:
                continue
            clusters.append(ThemeCluster(
                cluster_id=f"cluster-{len(clusters) + 1}",
                themes=[self._themes[t] for t in members],
                common_documents=self.find_common_documents(members),
                strength=self.cluster_cohesion(members),
            ))

        clusters.sort(key=lambda c: c.strength, reverse=True)
        return clusters

    def _collect_component(self, start: str, visited: set[str]) -> list[str]:
        members = [start]
        seen = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            visited.add(current)
            for related_id in sorted(self._themes[current].related_theme_ids):
                if related_id not in seen:
                    seen.add(related_id)
                    members.append(related_id)
                    queue.append(related_id)
        return members

    def find_common_documents(self, theme_ids: Iterable[str]) -> set[str]:
        """Documents linked to every one of the given themes."""
        doc_sets = [self._documents_by_theme.get(t, set()) for t in theme_ids]
        if not doc_sets:
            return set()
        return set.intersection(*doc_sets)

    def cluster_cohesion(self, theme_ids: Iterable[str]) -> float:
        """|documents common to all themes| / |documents touched by any theme|."""
        theme_ids = list(theme_ids)
        touched: set[str] = set()
        for theme_id in theme_ids:
            touched |= self._documents_by_theme.get(theme_id, set())
        if not touched:
            return 0.0
        return len(self.find_common_documents(theme_ids)) / len(touched)

    def stats(self) -> dict[str, int]:
        return {
            "documents": len(self._documents),
            "themes": len(self._themes),
            "definitions": len(self._definitions),
            "shared_themes": len(self.get_shared_themes(2)),
            "theme_links": len(self._theme_links),
            "definition_links": len(self._definition_links),
        }

    # -- lifecycle ----------------------------------------------------------

    def clear(self) -> None:
        """Destroy all entities and drop every cached connection."""
        self._reset_state()
        self.connection_cache.clear()

    def export(self) -> dict[str, Any]:
        """Full snapshot: flattened entities, link metadata and index arrays."""
        def _index(mapping: dict[str, set[str]]) -> dict[str, list[str]]:
            return {key: sorted(values) for key, values in mapping.items()}

        def _links(kind: str, links: dict[tuple[str, str], LinkMetadata]) -> list[dict[str, Any]]:
            return [
                {
                    "kind": kind,
                    "document_id": doc_id,
                    "target_id": target_id,
                    "confidence": meta.confidence,
                    "context": meta.context,
                    "created_at": meta.created_at,
                }
                for (doc_id, target_id), meta in links.items()
            ]

        return {
            "documents": [d.to_dict() for d in self._documents.values()],
            "themes": [t.to_dict() for t in self._themes.values()],
            "definitions": [d.to_dict() for d in self._definitions.values()],
            "link_metadata": _links("theme", self._theme_links) + _links("definition", self._definition_links),
            "indices": {
                "themes_by_document": _index(self._themes_by_document),
                "documents_by_theme": _index(self._documents_by_theme),
                "definitions_by_document": _index(self._definitions_by_document),
                "documents_by_definition": _index(self._documents_by_definition),
            },
            "metadata": {
                "next_id": self.next_id,
                "exported_at": datetime.now().isoformat(),
            },
        }

    def import_snapshot(self, data: dict[str, Any]) -> None:
        """Replace all state with a snapshot produced by :meth:`export`.

        Reverse indices and entity set fields are rebuilt from the union of
        the forward and reverse arrays, so the bidirectional invariant holds
        even when a snapshot only carries one direction. References to ids
        that are not in the snapshot raise ``ValidationError`` and leave the
        current state untouched.
        """
        documents = {d["id"]: Document.from_dict(d) for d in data.get("documents", [])}
        themes = {t["id"]: Theme.from_dict(t) for t in data.get("themes", [])}
        definitions = {d["id"]: Definition.from_dict(d) for d in data.get("definitions", [])}
        indices = data.get("indices", {})

        theme_pairs = self._collect_pairs(
            indices.get("themes_by_document", {}),
            indices.get("documents_by_theme", {}),
            documents, themes, "theme",
        )
        definition_pairs = self._collect_pairs(
            indices.get("definitions_by_document", {}),
            indices.get("documents_by_definition", {}),
            documents, definitions, "definition",
        )

        for theme in themes.values():
            dangling = theme.related_theme_ids - themes.keys()
            if dangling:
                raise ValidationError(f"Theme {theme.id} relates to unknown themes: {sorted(dangling)}")

        self._reset_state()
        self.connection_cache.clear()
        self._documents = documents
        self._themes = themes
        self._definitions = definitions
        self._themes_by_document = {doc_id: set() for doc_id in documents}
        self._definitions_by_document = {doc_id: set() for doc_id in documents}
        self._documents_by_theme = {theme_id: set() for theme_id in themes}
        self._documents_by_definition = {def_id: set() for def_id in definitions}

        for doc in documents.values():
            doc.theme_ids = set()
            doc.definition_ids = set()
        for theme in themes.values():
            theme.document_ids = set()
        for definition in definitions.values():
            definition.document_ids = set()

        for doc_id, theme_id in theme_pairs:
            self._themes_by_document[doc_id].add(theme_id)
            self._documents_by_theme[theme_id].add(doc_id)
            documents[doc_id].theme_ids.add(theme_id)
            themes[theme_id].document_ids.add(doc_id)
        for doc_id, def_id in definition_pairs:
            self._definitions_by_document[doc_id].add(def_id)
            self._documents_by_definition[def_id].add(doc_id)
            documents[doc_id].definition_ids.add(def_id)
            definitions[def_id].document_ids.add(doc_id)

        # Related-theme edges are undirected.
        for theme in themes.values():
            for related_id in theme.related_theme_ids:
                themes[related_id].related_theme_ids.add(theme.id)

        for entry in data.get("link_metadata", []):
            key = (entry.get("document_id"), entry.get("target_id"))
            meta = LinkMetadata(
                confidence=float(entry.get("confidence", 1.0)),
                context=entry.get("context", ""),
                created_at=entry.get("created_at") or datetime.now().isoformat(),
            )
            if entry.get("kind") == "definition" and key in definition_pairs:
                self._definition_links[key] = meta
            elif entry.get("kind") == "theme" and key in theme_pairs:
                self._theme_links[key] = meta

        self.next_id = int(data.get("metadata", {}).get("next_id") or len(documents) + 1)
        logger.debug(f"Imported snapshot with {len(documents)} documents and {len(themes)} themes")

    @staticmethod
    def _collect_pairs(
        forward: dict[str, Iterable[str]],
        reverse: dict[str, Iterable[str]],
        documents: dict[str, Document],
        targets: dict[str, Any],
        kind: str,
    ) -> set[tuple[str, str]]:
        pairs: set[tuple[str, str]] = set()
        for doc_id, target_ids in forward.items():
            pairs.update((doc_id, t) for t in target_ids)
        for target_id, doc_ids in reverse.items():
            pairs.update((d, target_id) for d in doc_ids)
        for doc in documents.values():
            field_ids = doc.theme_ids if kind == "theme" else doc.definition_ids
            pairs.update((doc.id, t) for t in field_ids)

        for doc_id, target_id in pairs:
            if doc_id not in documents:
                raise ValidationError(f"Snapshot index references unknown document: {doc_id}")
            if target_id not in targets:
                raise ValidationError(f"Snapshot index references unknown {kind}: {target_id}")
        return pairs

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.export(), **kwargs)

    @classmethod
    def from_json(cls, text: str) -> "EntityStore":
        store = cls()
        store.import_snapshot(json.loads(text))
        return store
