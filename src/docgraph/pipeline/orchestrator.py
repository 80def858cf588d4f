"""End-to-end analysis: extract, store, relate, lay out, report."""

import copy
import logging
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..config import DEFAULT_CONFIG, analysis_options
from ..embeddings.embedder import EmbeddingOracle, get_embedding_oracle
from ..errors import (
    AnalysisError,
    ExtractionFormatError,
    OracleUnavailableError,
    ValidationError,
)
from ..extraction.oracle import ClaudeExtractionOracle, ExtractionOracle
from ..extraction.schema import ExtractionResult, parse_extraction
from ..graph.builder import GraphBuilder, GraphPayload
from ..relationships.synthesizer import RelationshipSynthesizer
from ..similarity.engine import SimilarityEngine, ThemeSemantics
from ..storage.entity_store import EntityStore
from .report import generate_analysis_report

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything a successful run produced."""
    processing_id: str
    document_ids: list[str]
    graph: GraphPayload
    report: dict[str, Any]
    processing_time: float
    semantic_analysis: bool = False
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processing_id": self.processing_id,
            "document_ids": list(self.document_ids),
            "graph": self.graph.to_dict(),
            "report": self.report,
            "processing_time": self.processing_time,
            "semantic_analysis": self.semantic_analysis,
            "stats": self.stats,
        }


class AnalysisOrchestrator:
    """Runs the document analysis pipeline against one entity store.

    The store, the similarity caches and the connection cache persist
    across calls on the same instance; use :meth:`reset` to start a fresh
    session. A failed run leaves whatever it already stored in place.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        extraction_oracle: ExtractionOracle | None = None,
        embedding_oracle: EmbeddingOracle | None = None,
    ):
        self.config = config if config is not None else copy.deepcopy(DEFAULT_CONFIG)
        self._extraction_oracle = extraction_oracle

        options = analysis_options(self.config)
        emb_cfg = self.config.get("embedding", {})
        self.store = EntityStore()
        self.engine = SimilarityEngine(
            embedding_oracle=embedding_oracle if embedding_oracle is not None else get_embedding_oracle(self.config),
            fallback_dimensions=emb_cfg.get("fallback_dimensions", 384),
            conceptual_threshold=options["semantic_similarity_threshold"],
        )
        self.synthesizer = RelationshipSynthesizer(self.store, self.engine)

        self.document_relationships: list[dict[str, Any]] = []
        self.theme_semantics = ThemeSemantics()
        self.processing_cache: dict[str, AnalysisResult] = {}
        self.analysis_history: list[dict[str, Any]] = []

    @property
    def extraction_oracle(self) -> ExtractionOracle:
        """Lazily create the Claude oracle so runs without an API key fail inside the pipeline."""
        if self._extraction_oracle is None:
            self._extraction_oracle = ClaudeExtractionOracle(self.config)
        return self._extraction_oracle

    # -- pipeline -----------------------------------------------------------

    def process_documents(self, documents: Sequence[Mapping[str, Any]], **overrides) -> AnalysisResult:
        """Analyze ``{title, content}`` documents and build the graph.

        Raises AnalysisError wrapping the first fatal failure. No partial
        result is returned.
        """
        start = time.perf_counter()
        processing_id = f"analysis-{uuid.uuid4().hex[:12]}"
        options = analysis_options(self.config, overrides)

        try:
            self.validate_documents(documents)

            logger.info(f"Extracting themes and definitions from {len(documents)} document(s)")
            extraction = self.extract_document_data(documents, options)

            logger.info("Populating entity store")
            doc_ids = self.store_documents(documents, extraction)
            if not doc_ids:
                raise ExtractionFormatError("Extraction oracle returned no document records")

            semantic = False
            if options["enable_semantic_analysis"]:
                logger.info("Running semantic analysis")
                semantic = self.perform_semantic_analysis(doc_ids, options)

            logger.info("Building document graph")
            connections = self.synthesizer.build_connections(doc_ids, semantic=semantic)
            builder = GraphBuilder(self.store, options["connection_strength_threshold"])
            graph = builder.build(doc_ids, connections, self.synthesizer.content_similarity)

            report = generate_analysis_report(self.store, doc_ids, graph, self.theme_semantics)
        except Exception as e:
            context = {
                "processing_id": processing_id,
                "document_count": len(documents) if isinstance(documents, Sequence) else 0,
                "config": options,
            }
            logger.error(f"Document processing failed: {e}")
            raise AnalysisError(self._failure_message(e), original_error=e, context=context) from e

        elapsed = time.perf_counter() - start
        result = AnalysisResult(
            processing_id=processing_id,
            document_ids=doc_ids,
            graph=graph,
            report=report,
            processing_time=elapsed,
            semantic_analysis=semantic,
        )
        result.stats = self.get_system_stats()

        if options["cache_results"]:
            self.processing_cache[processing_id] = result
        self.analysis_history.append({
            "id": processing_id,
            "document_count": len(documents),
            "timestamp": datetime.now().isoformat(),
            "processing_time": elapsed,
            "config": dict(options),
        })
        logger.info(f"Analysis {processing_id} completed in {elapsed:.2f}s")
        return result

    @staticmethod
    def _failure_message(error: Exception) -> str:
        if isinstance(error, ValidationError):
            return f"Invalid input documents: {error}"
        if isinstance(error, OracleUnavailableError):
            return f"Extraction service unavailable: {error}"
        if isinstance(error, ExtractionFormatError):
            return f"Could not parse extraction output: {error}"
        return f"Document processing failed: {error}"

    @staticmethod
    def validate_documents(documents: Any) -> None:
        if documents is None or isinstance(documents, (str, bytes)) or not isinstance(documents, Sequence):
            raise ValidationError("Documents must be provided as a list")
        if len(documents) == 0:
            raise ValidationError("No documents provided for analysis")

        for i, doc in enumerate(documents, 1):
            if not isinstance(doc, Mapping):
                raise ValidationError(f"Document {i} is invalid - must be a mapping with title and content")
            title, content = doc.get("title"), doc.get("content")
            if content is not None and not isinstance(content, str):
                raise ValidationError(f"Document {i} content must be text")
            if not content and not title:
                raise ValidationError(f"Document {i} is missing both title and content")

    def extract_document_data(self, documents: Sequence[Mapping[str, Any]], options: dict[str, Any]) -> ExtractionResult:
        payload = self.extraction_oracle.extract(
            [{"title": d.get("title") or d.get("filename") or "", "content": d.get("content") or ""} for d in documents],
            {
                "max_themes_per_document": options["max_themes_per_document"],
                "min_theme_confidence": options["min_theme_confidence"],
                "include_definitions": options["include_definitions"],
                "detect_relationships": options["detect_relationships"],
            },
        )
        return parse_extraction(payload)

    def store_documents(self, documents: Sequence[Mapping[str, Any]], extraction: ExtractionResult) -> list[str]:
        """Add documents, themes and definitions to the store; returns new document ids."""
        doc_ids = []
        by_position: dict[int, str] = {}

        for i, original in enumerate(documents):
            extracted = extraction.document(i)
            if extracted is None:
                logger.warning(f"No extraction record for document {i + 1}, skipping")
                continue

            content = original.get("content") or ""
            metadata = dict(original.get("metadata") or {})
            metadata.update({
                "original_filename": original.get("filename"),
                "file_size": len(content),
                "extracted_at": datetime.now().isoformat(),
                "thematic_focus": extracted.thematic_focus,
            })
            doc_id = self.store.add_document(
                original.get("title") or original.get("filename") or f"Document {i + 1}",
                content,
                metadata,
            )
            doc_ids.append(doc_id)
            by_position[i] = doc_id

            for theme in extracted.main_themes:
                theme_id = self.store.add_theme(theme.theme, theme.category, theme.importance, theme.subthemes)
                self.store.link_document_to_theme(doc_id, theme_id, theme.confidence, theme.context)

            for definition in extracted.definitions:
                def_id = self.store.add_definition(
                    definition.term, definition.definition, definition.context, definition.importance,
                )
                self.store.link_document_to_definition(doc_id, def_id)

            self.store.set_summary(doc_id, extracted.summary)

        for concept in extraction.shared_concepts:
            theme_id = self.store.add_theme(concept.concept, concept.category, concept.importance)
            for number in concept.appears_in:
                doc_id = by_position.get(number - 1)
                if doc_id is not None:
                    self.store.link_document_to_theme(doc_id, theme_id, concept.relationship_strength)

        return doc_ids

    def perform_semantic_analysis(self, doc_ids: Sequence[str], options: dict[str, Any]) -> bool:
        """Pairwise relationship analysis plus theme semantics.

        Failures degrade to empty semantic data; returns whether the stage succeeded.
        """
        try:
            relationships = self.synthesizer.analyze_all(doc_ids, semantic=True)
            self.document_relationships = [r.to_dict() for r in relationships]
            self.theme_semantics = self.engine.analyze_theme_semantics(
                list(self.store.themes.values()),
                hierarchical=options["enable_hierarchical_themes"],
            )
            return True
        except Exception as e:
            logger.warning(f"Semantic analysis failed, continuing without it: {e}")
            self.document_relationships = []
            self.theme_semantics = ThemeSemantics()
            return False

    # -- session state ------------------------------------------------------

    def get_system_stats(self) -> dict[str, Any]:
        store_stats = self.store.stats()
        return {
            "documents_processed": store_stats["documents"],
            "themes_extracted": store_stats["themes"],
            "definitions_found": store_stats["definitions"],
            "total_connections": len(self.store.get_document_connectivity_map()),
            "similarity_cache": self.engine.cache_sizes(),
            "connection_cache": len(self.store.connection_cache),
            "cached_results": len(self.processing_cache),
            "analysis_history": len(self.analysis_history),
            "last_analysis": self.analysis_history[-1] if self.analysis_history else None,
        }

    def export_system_state(self) -> dict[str, Any]:
        config = copy.deepcopy(self.config)
        config.pop("claude_api_key", None)
        return {
            "entity_store": self.store.export(),
            "config": config,
            "analysis_history": list(self.analysis_history),
            "document_relationships": list(self.document_relationships),
            "theme_semantics": self.theme_semantics.to_dict(),
            "exported_at": datetime.now().isoformat(),
        }

    def import_system_state(self, state: dict[str, Any]) -> None:
        self.store.import_snapshot(state["entity_store"])
        self.engine.clear_cache()
        for key, value in (state.get("config") or {}).items():
            self.config[key] = value
        self.engine.conceptual_threshold = analysis_options(self.config)["semantic_similarity_threshold"]
        self.analysis_history = list(state.get("analysis_history") or [])
        self.document_relationships = list(state.get("document_relationships") or [])
        self.theme_semantics = ThemeSemantics.from_dict(state.get("theme_semantics"))

    def reset(self) -> None:
        """Start a fresh session: clear the store and every cache."""
        self.store.clear()
        self.engine.clear_cache()
        self.document_relationships = []
        self.theme_semantics = ThemeSemantics()
        self.processing_cache.clear()
