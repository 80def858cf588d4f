"""Document relationship synthesis."""

from .synthesizer import DocumentRelationship, RelationshipSynthesizer, combine_signals, recommend_link_strength

__all__ = ["DocumentRelationship", "RelationshipSynthesizer", "combine_signals", "recommend_link_strength"]
