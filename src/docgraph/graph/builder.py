"""Turn the entity store and synthesized connections into a positioned graph."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Sequence

from ..errors import ValidationError
from ..models import Connection, Theme
from ..storage.entity_store import EntityStore
from .layout import (
    Position,
    clamp,
    document_positions,
    edge_color,
    node_color,
    shared_theme_positions,
    unique_theme_position,
)

logger = logging.getLogger(__name__)

UNIQUE_THEME_EDGE_STRENGTH = 0.8


@dataclass
class GraphNode:
    id: str
    type: str  # "document", "shared-theme" or "unique-theme"
    label: str
    size: float
    position: Position
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "size": self.size,
            "position": self.position.to_dict(),
            "metadata": self.metadata,
        }


@dataclass
class GraphEdge:
    source: str
    target: str
    type: str  # "theme-connection", "unique-theme-connection" or "document-connection"
    strength: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "strength": self.strength,
            "metadata": self.metadata,
        }


@dataclass
class GraphPayload:
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    metadata: dict[str, Any]

    def nodes_of_type(self, node_type: str) -> list[GraphNode]:
        return [n for n in self.nodes if n.type == node_type]

    def edges_of_type(self, edge_type: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.type == edge_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "metadata": self.metadata,
        }


def graph_density(document_count: int, document_edges: int) -> float:
    """Document-document edges over the n(n-1)/2 possible pairs."""
    if document_count < 2:
        return 0.0
    return document_edges / (document_count * (document_count - 1) / 2)


class GraphBuilder:
    """Builds the node/edge payload consumed by the renderer.

    Document ids are expected to exist in the store; missing optional
    fields on entities fall back to defaults.
    """

    def __init__(self, store: EntityStore, connection_threshold: float = 0.4):
        if not 0.0 <= connection_threshold <= 1.0:
            raise ValidationError(f"connection_threshold must be within [0, 1], got {connection_threshold}")
        self.store = store
        self.connection_threshold = connection_threshold

    def build(
        self,
        doc_ids: Sequence[str],
        connections: Sequence[Connection],
        semantic_similarity: Callable[[str, str], float] | None = None,
    ) -> GraphPayload:
        doc_ids = list(doc_ids)
        doc_set = set(doc_ids)
        documents = [self.store.get_document(d) for d in doc_ids]

        nodes: list[GraphNode] = []
        edges: list[GraphEdge] = []
        anchors: dict[str, Position] = {}

        for doc, position in zip(documents, document_positions(len(documents))):
            anchors[doc.id] = position
            nodes.append(GraphNode(
                id=doc.id,
                type="document",
                label=doc.title or doc.id,
                size=clamp(len(doc.theme_ids) * 2, 8, 20),
                position=position,
                metadata={
                    "theme_count": len(doc.theme_ids),
                    "definition_count": len(doc.definition_ids),
                    "importance": self.document_importance(doc.id),
                    "summary": doc.summary,
                    "color": node_color("document"),
                },
            ))

        shared, unique = self._partition_themes(doc_set)

        sharer_counts = [len(sharers) for _, sharers in shared]
        for (theme, sharers), position in zip(shared, shared_theme_positions(len(documents), sharer_counts)):
            nodes.append(GraphNode(
                id=theme.id,
                type="shared-theme",
                label=theme.label,
                size=clamp(len(sharers) * 3, 6, 15),
                position=position,
                metadata={
                    "shared_by": sharers,
                    "frequency": theme.frequency,
                    "category": theme.category,
                    "importance": theme.importance,
                    "color": node_color("shared-theme", theme.category),
                },
            ))
            for doc_id in sharers:
                strength = self.theme_link_strength(doc_id, theme)
                edges.append(GraphEdge(
                    source=doc_id,
                    target=theme.id,
                    type="theme-connection",
                    strength=strength,
                    metadata={"color": edge_color(strength)},
                ))

        document_edges = 0
        for conn in connections:
            if conn.strength < self.connection_threshold:
                continue
            if conn.source not in doc_set or conn.target not in doc_set:
                continue
            document_edges += 1
            edges.append(GraphEdge(
                source=conn.source,
                target=conn.target,
                type="document-connection",
                strength=conn.strength,
                metadata={
                    "shared_themes": list(conn.shared_themes),
                    "shared_definitions": list(conn.shared_definitions),
                    "total_shared": conn.total_shared,
                    "semantic_similarity": semantic_similarity(conn.source, conn.target) if semantic_similarity else 0.0,
                    "color": edge_color(conn.strength),
                },
            ))

        for doc_id in doc_ids:
            for index, theme in enumerate(unique.get(doc_id, [])):
                nodes.append(GraphNode(
                    id=theme.id,
                    type="unique-theme",
                    label=theme.label,
                    size=4 + theme.importance * 3,
                    position=unique_theme_position(anchors[doc_id], index),
                    metadata={
                        "parent": doc_id,
                        "category": theme.category,
                        "importance": theme.importance,
                        "color": node_color("unique-theme"),
                    },
                ))
                edges.append(GraphEdge(
                    source=doc_id,
                    target=theme.id,
                    type="unique-theme-connection",
                    strength=UNIQUE_THEME_EDGE_STRENGTH,
                    metadata={"color": edge_color(UNIQUE_THEME_EDGE_STRENGTH, 0.6)},
                ))

        metadata = {
            "document_count": len(documents),
            "shared_theme_count": len(shared),
            "unique_theme_count": sum(len(v) for v in unique.values()),
            "document_connection_count": document_edges,
            "total_connections": len(edges),
            "average_connection_strength": (sum(e.strength for e in edges) / len(edges)) if edges else 0.0,
            "graph_density": graph_density(len(documents), document_edges),
            "connection_threshold": self.connection_threshold,
            "created_at": datetime.now().isoformat(),
        }
        logger.debug(f"Built graph with {len(nodes)} nodes and {len(edges)} edges")
        return GraphPayload(nodes=nodes, edges=edges, metadata=metadata)

    def _partition_themes(self, doc_set: set[str]) -> tuple[list[tuple[Theme, list[str]]], dict[str, list[Theme]]]:
        """Split themes touching the graph's documents into shared (>= 2) and unique (1)."""
        shared: list[tuple[Theme, list[str]]] = []
        unique: dict[str, list[Theme]] = {}
        for theme in self.store.get_shared_themes(min_documents=1):
            sharers = sorted(theme.document_ids & doc_set)
            if len(sharers) >= 2:
                shared.append((theme, sharers))
            elif len(sharers) == 1:
                unique.setdefault(sharers[0], []).append(theme)
        shared.sort(key=lambda item: len(item[1]), reverse=True)
        for themes in unique.values():
            themes.sort(key=lambda t: t.id)
        return shared, unique

    def theme_link_strength(self, doc_id: str, theme: Theme) -> float:
        """Recorded link confidence, else the theme's importance, else 0.5."""
        link = self.store.theme_link(doc_id, theme.id)
        if link is not None:
            return link.confidence
        if theme.importance is not None:
            return min(theme.importance, 1.0)
        return 0.5

    def document_importance(self, doc_id: str) -> float:
        related = len(self.store.get_related_documents(doc_id))
        themes = len(self.store.themes_for_document(doc_id))
        definitions = len(self.store.definitions_for_document(doc_id))
        return related * 0.4 + themes * 0.3 + definitions * 0.3
