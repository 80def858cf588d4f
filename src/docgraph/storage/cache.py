"""Cache of synthesized document-pair results with explicit invalidation."""

from typing import Any


def pair_key(doc_a: str, doc_b: str) -> tuple[str, str]:
    """Order-independent key for a document pair."""
    return (doc_a, doc_b) if doc_a <= doc_b else (doc_b, doc_a)


class ConnectionCache:
    """Holds per-pair values (connection strengths, relationship analyses).

    Owned by one EntityStore; the store invalidates entries for a document
    whenever that document's theme or definition set changes. Anything that
    caches pair results (the relationship synthesizer) shares this instance.
    """

    def __init__(self):
        self._entries: dict[tuple[str, str], Any] = {}

    def get(self, doc_a: str, doc_b: str) -> Any | None:
        return self._entries.get(pair_key(doc_a, doc_b))

    def set(self, doc_a: str, doc_b: str, value: Any) -> None:
        self._entries[pair_key(doc_a, doc_b)] = value

    def invalidate(self, scope: str | None = None) -> int:
        """Drop entries mentioning document ``scope``, or everything if None.

        Returns the number of entries removed.
        """
        if scope is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed
        stale = [key for key in self._entries if scope in key]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def items(self):
        return self._entries.items()

    def __contains__(self, pair: tuple[str, str]) -> bool:
        return pair_key(*pair) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
