"""Lexical helpers: normalization, tokenization and overlap measures."""

import hashlib
import re
from collections import Counter

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})


def normalize_text(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    text = re.sub(r"[^\w\s]", " ", (text or "").lower())
    return re.sub(r"\s+", " ", text).strip()


def slugify(normalized: str) -> str:
    return normalized.replace(" ", "-")


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens, dropping stop words."""
    return [w for w in normalize_text(text).split() if w not in STOP_WORDS]


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set Jaccard overlap of two already-normalized labels."""
    set_a = set(a.split())
    set_b = set(b.split())
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def content_hash(text: str) -> str:
    """SHA256 of stripped text, used as an embedding cache key."""
    return hashlib.sha256(text.strip().encode("utf-8")).hexdigest()


def stable_bucket(token: str, buckets: int) -> int:
    """Deterministic bucket for a token, independent of PYTHONHASHSEED."""
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % buckets


def term_frequency_vectors(text1: str, text2: str) -> tuple[list[int], list[int]]:
    """Aligned term-frequency vectors over the joint vocabulary of two texts."""
    counts1 = Counter(tokenize(text1))
    counts2 = Counter(tokenize(text2))
    vocab = sorted(set(counts1) | set(counts2))
    return [counts1[w] for w in vocab], [counts2[w] for w in vocab]
