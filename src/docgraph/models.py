"""Data models used throughout docgraph."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _now() -> str:
    return datetime.now().isoformat()


@dataclass
class Document:
    """An ingested document. Content never changes after creation."""
    id: str
    title: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    theme_ids: set[str] = field(default_factory=set)
    definition_ids: set[str] = field(default_factory=set)
    summary: str = ""
    added_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "metadata": self.metadata,
            "theme_ids": sorted(self.theme_ids),
            "definition_ids": sorted(self.definition_ids),
            "summary": self.summary,
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            metadata=dict(data.get("metadata") or {}),
            theme_ids=set(data.get("theme_ids") or ()),
            definition_ids=set(data.get("definition_ids") or ()),
            summary=data.get("summary", ""),
            added_at=data.get("added_at") or _now(),
        )


@dataclass
class Theme:
    """A normalized topical label shared by zero or more documents."""
    id: str
    label: str
    normalized_label: str
    category: str = "general"
    importance: float = 1.0
    semantic_tags: list[str] = field(default_factory=list)
    document_ids: set[str] = field(default_factory=set)
    related_theme_ids: set[str] = field(default_factory=set)
    frequency: int = 0
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "normalized_label": self.normalized_label,
            "category": self.category,
            "importance": self.importance,
            "semantic_tags": list(self.semantic_tags),
            "document_ids": sorted(self.document_ids),
            "related_theme_ids": sorted(self.related_theme_ids),
            "frequency": self.frequency,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Theme":
        return cls(
            id=data["id"],
            label=data.get("label", ""),
            normalized_label=data.get("normalized_label", ""),
            category=data.get("category", "general"),
            importance=float(data.get("importance", 1.0)),
            semantic_tags=list(data.get("semantic_tags") or ()),
            document_ids=set(data.get("document_ids") or ()),
            related_theme_ids=set(data.get("related_theme_ids") or ()),
            frequency=int(data.get("frequency", 0)),
            created_at=data.get("created_at") or _now(),
        )


@dataclass
class Definition:
    """A term and its definition, deduplicated by exact normalized term."""
    id: str
    term: str
    normalized_term: str
    definition: str
    context: str = ""
    importance: float = 1.0
    document_ids: set[str] = field(default_factory=set)
    frequency: int = 0
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "term": self.term,
            "normalized_term": self.normalized_term,
            "definition": self.definition,
            "context": self.context,
            "importance": self.importance,
            "document_ids": sorted(self.document_ids),
            "frequency": self.frequency,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Definition":
        return cls(
            id=data["id"],
            term=data.get("term", ""),
            normalized_term=data.get("normalized_term", ""),
            definition=data.get("definition", ""),
            context=data.get("context", ""),
            importance=float(data.get("importance", 1.0)),
            document_ids=set(data.get("document_ids") or ()),
            frequency=int(data.get("frequency", 0)),
            created_at=data.get("created_at") or _now(),
        )


@dataclass
class LinkMetadata:
    """Metadata on a document-theme or document-definition link."""
    confidence: float = 1.0
    context: str = ""
    created_at: str = field(default_factory=_now)


@dataclass
class RelatedDocument:
    """A document that shares themes or definitions with a queried document."""
    document_id: str
    document: Document
    shared_themes: list[Theme]
    shared_definitions: list[Definition]
    connection_strength: float

    @property
    def total_shared(self) -> int:
        return len(self.shared_themes) + len(self.shared_definitions)


@dataclass
class Connection:
    """A scored, undirected link between two documents. Derived, never stored."""
    source: str
    target: str
    strength: float
    shared_themes: list[str] = field(default_factory=list)
    shared_definitions: list[str] = field(default_factory=list)

    @property
    def total_shared(self) -> int:
        return len(self.shared_themes) + len(self.shared_definitions)


@dataclass
class ThemeCluster:
    """A connected component of related themes."""
    cluster_id: str
    themes: list[Theme]
    common_documents: set[str]
    strength: float
