"""Shared fixtures: in-process oracles so no test touches the network."""

import pytest

from docgraph.embeddings.embedder import EmbeddingOracle
from docgraph.errors import OracleUnavailableError
from docgraph.extraction.oracle import ExtractionOracle
from docgraph.storage import EntityStore


class FakeExtractionOracle(ExtractionOracle):
    """Returns a canned payload and records every call."""

    def __init__(self, payload=None, error=None):
        self.payload = payload or {}
        self.error = error
        self.calls = []

    def extract(self, documents, options):
        self.calls.append((documents, options))
        if self.error is not None:
            raise self.error
        return self.payload


class KeywordEmbeddingOracle(EmbeddingOracle):
    """One dimension per keyword; texts sharing keywords point the same way."""

    KEYWORDS = ("solar", "wind", "energy", "grid", "storage", "policy", "battery", "climate")

    def __init__(self):
        self.calls = 0

    def embed(self, texts):
        self.calls += 1
        vectors = []
        for text in texts:
            lowered = text.lower()
            vectors.append([float(lowered.count(k)) for k in self.KEYWORDS])
        return vectors


class FailingEmbeddingOracle(EmbeddingOracle):
    def embed(self, texts):
        raise OracleUnavailableError("embedding service down")


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def energy_payload():
    return {
        "documents": [
            {
                "title": "Solar Basics",
                "main_themes": [
                    {"theme": "Solar Energy", "category": "technological", "importance": 0.9, "confidence": 0.95},
                    {"theme": "Energy Storage", "category": "technological", "importance": 0.6},
                ],
                "definitions": [{"term": "Photovoltaic", "definition": "Converting light to electricity"}],
                "summary": "An introduction to solar power.",
            },
            {
                "title": "Grid Policy",
                "main_themes": [
                    {"theme": "solar energy", "category": "economic", "importance": 0.4},
                    {"theme": "Grid Regulation", "category": "regulatory", "importance": 0.8},
                ],
                "definitions": [{"term": "photovoltaic", "definition": "PV"}],
                "summary": "How grids absorb solar.",
            },
            {
                "title": "Baking Bread",
                "main_themes": [{"theme": "Sourdough Fermentation", "category": "culinary", "importance": 0.7}],
                "definitions": [],
                "summary": "Bread.",
            },
        ],
        "shared_concepts": [
            {"concept": "Renewable Transition", "appears_in": [1, 2], "relationship_strength": 0.7},
        ],
    }


@pytest.fixture
def energy_documents():
    return [
        {"title": "Solar Basics", "content": "Solar energy panels convert sunlight. Solar storage with batteries."},
        {"title": "Grid Policy", "content": "Grid policy decides how solar energy reaches the grid."},
        {"title": "Baking Bread", "content": "Sourdough needs flour, water and patience."},
    ]
