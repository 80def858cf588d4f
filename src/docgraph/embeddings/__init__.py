"""Embedding oracle backends."""

from .embedder import EmbeddingOracle, SentenceTransformerOracle, get_embedding_oracle

__all__ = ["EmbeddingOracle", "SentenceTransformerOracle", "get_embedding_oracle"]
