"""Text and vector similarity."""

from .engine import SimilarityEngine, ThemeSemantics, connection_type
from .hierarchy import HierarchyStrategy, SubstringGenerality

__all__ = ["SimilarityEngine", "ThemeSemantics", "connection_type", "HierarchyStrategy", "SubstringGenerality"]
