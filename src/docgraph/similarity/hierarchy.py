"""Strategies deciding whether one theme label is more general than another.

Hierarchy inference is a heuristic. Keeping it behind ``HierarchyStrategy``
lets an ontology-backed implementation replace it without touching the
clustering or storage code.
"""

from abc import ABC, abstractmethod

from .text import normalize_text


class HierarchyStrategy(ABC):
    """Decides parent candidacy between two theme labels."""

    @abstractmethod
    def is_more_general(self, candidate: str, other: str) -> bool:
        """Return True if ``candidate`` could be a parent of ``other``."""


class SubstringGenerality(HierarchyStrategy):
    """A label is more general if it has fewer words and the other label contains it.

    "energy" is more general than "renewable energy"; "solar" is not more
    general than "wind energy".
    """

    def is_more_general(self, candidate: str, other: str) -> bool:
        general = normalize_text(candidate)
        specific = normalize_text(other)
        if not general or not specific:
            return False
        return len(general.split()) < len(specific.split()) and general in specific
