"""Typed records for extraction oracle output.

The oracle returns loosely structured JSON. ``parse_extraction`` applies
every default and coercion once, so the rest of the pipeline works with
fully populated records and never re-checks shapes.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from ..errors import ExtractionFormatError
from ..similarity.text import normalize_text

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list:
    """Coerce list-like input (list, tuple, set) to a list; a scalar becomes a 1-item list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return [value]


def _as_unit(value: Any, default: float) -> float:
    """A float clamped to [0, 1], or ``default`` when missing or not numeric."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, min(1.0, number))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class ExtractedTheme:
    theme: str
    category: str = "general"
    importance: float = 1.0
    confidence: float = 1.0
    subthemes: list[str] = field(default_factory=list)
    context: str = ""


@dataclass
class ExtractedDefinition:
    term: str
    definition: str = ""
    type: str = ""
    context: str = ""
    importance: float = 1.0


@dataclass
class SharedConcept:
    concept: str
    category: str = "shared"
    appears_in: list[int] = field(default_factory=list)  # 1-based document numbers
    relationship_strength: float = 1.0
    importance: float = 1.0


@dataclass
class ExtractedDocument:
    title: str = ""
    main_themes: list[ExtractedTheme] = field(default_factory=list)
    definitions: list[ExtractedDefinition] = field(default_factory=list)
    summary: str = ""
    thematic_focus: list[str] = field(default_factory=list)


@dataclass
class ExtractionResult:
    documents: list[ExtractedDocument] = field(default_factory=list)
    shared_concepts: list[SharedConcept] = field(default_factory=list)

    def document(self, index: int) -> ExtractedDocument | None:
        """Extracted record for the 0-based input position, if the oracle returned one."""
        if 0 <= index < len(self.documents):
            return self.documents[index]
        return None


def _parse_theme(raw: Any) -> ExtractedTheme | None:
    if isinstance(raw, str):
        raw = {"theme": raw}
    if not isinstance(raw, dict):
        return None
    label = _as_text(raw.get("theme") or raw.get("label"))
    if not normalize_text(label):
        return None
    return ExtractedTheme(
        theme=label,
        category=_as_text(raw.get("category")) or "general",
        importance=_as_unit(raw.get("importance"), 1.0),
        confidence=_as_unit(raw.get("confidence"), 1.0),
        subthemes=[_as_text(s) for s in _as_list(raw.get("subthemes")) if _as_text(s)],
        context=_as_text(raw.get("context")),
    )


def _parse_definition(raw: Any) -> ExtractedDefinition | None:
    if not isinstance(raw, dict):
        return None
    term = _as_text(raw.get("term"))
    if not normalize_text(term):
        return None
    return ExtractedDefinition(
        term=term,
        definition=_as_text(raw.get("definition")),
        type=_as_text(raw.get("type")),
        context=_as_text(raw.get("context")),
        importance=_as_unit(raw.get("importance"), 1.0),
    )


def _parse_shared_concept(raw: Any) -> SharedConcept | None:
    if not isinstance(raw, dict):
        return None
    concept = _as_text(raw.get("concept"))
    if not normalize_text(concept):
        return None
    appears_in = []
    for value in _as_list(raw.get("appears_in")):
        try:
            appears_in.append(int(value))
        except (TypeError, ValueError):
            continue
    return SharedConcept(
        concept=concept,
        category=_as_text(raw.get("category")) or "shared",
        appears_in=appears_in,
        relationship_strength=_as_unit(raw.get("relationship_strength"), 1.0),
        importance=_as_unit(raw.get("importance"), 1.0),
    )


def _parse_document(raw: Any) -> ExtractedDocument:
    if not isinstance(raw, dict):
        return ExtractedDocument()
    themes = [t for t in map(_parse_theme, _as_list(raw.get("main_themes"))) if t]
    definitions = [d for d in map(_parse_definition, _as_list(raw.get("definitions"))) if d]
    return ExtractedDocument(
        title=_as_text(raw.get("title")),
        main_themes=themes,
        definitions=definitions,
        summary=_as_text(raw.get("summary")),
        thematic_focus=[_as_text(f) for f in _as_list(raw.get("thematic_focus")) if _as_text(f)],
    )


def parse_extraction(payload: Any) -> ExtractionResult:
    """Convert raw oracle JSON into an ``ExtractionResult``.

    Raises ExtractionFormatError when the payload is not a JSON object.
    Missing or malformed fields fall back to empty lists and neutral weights.
    """
    if not isinstance(payload, dict):
        raise ExtractionFormatError(f"Expected a JSON object from the extraction oracle, got {type(payload).__name__}")

    documents = [_parse_document(d) for d in _as_list(payload.get("documents"))]
    shared = [c for c in map(_parse_shared_concept, _as_list(payload.get("shared_concepts"))) if c]
    logger.debug(f"Parsed extraction: {len(documents)} documents, {len(shared)} shared concepts")
    return ExtractionResult(documents=documents, shared_concepts=shared)
