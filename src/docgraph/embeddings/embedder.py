"""Embedding oracles: turn a list of texts into one vector per text."""

from abc import ABC, abstractmethod
from typing import Any

from ..errors import OracleUnavailableError


class EmbeddingOracle(ABC):
    """Common interface for embedding backends."""

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed ``texts`` in one batch, preserving input order.

        Raises OracleUnavailableError when the backend cannot be reached.
        """


class SentenceTransformerOracle(EmbeddingOracle):
    """Embeds texts locally with sentence-transformers."""

    def __init__(self, model_name: str = "intfloat/e5-large-v2", prefix: str = "query: ", batch_size: int = 32):
        self.model_name = model_name
        self.prefix = prefix
        self.batch_size = batch_size
        self._model = None

    @property
    def model(self):
        """Lazy-load the embedding model."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            try:
                self._model = SentenceTransformer(self.model_name)
            except OSError as e:
                raise OracleUnavailableError(f"Could not load embedding model {self.model_name}: {e}") from e
        return self._model

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        # e5 models expect a "query: " prefix for symmetric similarity tasks
        prefixed = [f"{self.prefix}{t}" for t in texts]
        vectors = self.model.encode(prefixed, batch_size=self.batch_size)
        return vectors.tolist()


def get_embedding_oracle(config: dict[str, Any]) -> EmbeddingOracle | None:
    """Factory: return the embedding oracle configured, or None for fallback-only mode."""
    emb_cfg = config.get("embedding", {})
    backend = emb_cfg.get("backend", "sentence-transformers")

    if backend == "sentence-transformers":
        return SentenceTransformerOracle(
            model_name=config.get("embedding_model", "intfloat/e5-large-v2"),
            prefix=emb_cfg.get("prefix", "query: "),
            batch_size=emb_cfg.get("batch_size", 32),
        )
    elif backend == "none":
        return None
    else:
        raise ValueError(f"Unknown embedding backend: {backend}")
