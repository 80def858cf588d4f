"""docgraph - thematic analysis and knowledge graphs for document collections."""

__version__ = "0.1.0"

from .errors import AnalysisError, DocgraphError
from .pipeline import AnalysisOrchestrator, AnalysisResult
from .storage import EntityStore

__all__ = ["AnalysisError", "AnalysisOrchestrator", "AnalysisResult", "DocgraphError", "EntityStore", "__version__"]
