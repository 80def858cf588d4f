"""Node placement and colors for the 3D graph."""

import math
from dataclasses import dataclass

UNIQUE_THEME_RADIUS = 25.0
UNIQUE_THEME_SLOTS = 5  # siblings spread evenly before angles start to repeat

DOCUMENT_COLOR = "#4F46E5"
UNIQUE_THEME_COLOR = "#94A3B8"
DEFAULT_COLOR = "#6B7280"
SHARED_THEME_COLORS = {
    "conceptual": "#EF4444",
    "methodological": "#F59E0B",
    "technological": "#10B981",
    "environmental": "#059669",
    "economic": "#DC2626",
    "social": "#7C3AED",
    "regulatory": "#B45309",
    "general": DEFAULT_COLOR,
}


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


def circle_positions(count: int, radius: float, z: float | list[float] = 0.0) -> list[Position]:
    """``count`` points evenly spaced on a circle in the xy-plane."""
    positions = []
    for i in range(count):
        angle = (i / count) * math.pi * 2
        depth = z[i] if isinstance(z, list) else z
        positions.append(Position(math.cos(angle) * radius, math.sin(angle) * radius, depth))
    return positions


def document_positions(doc_count: int) -> list[Position]:
    return circle_positions(doc_count, max(30.0, doc_count * 5.0))


def shared_theme_positions(doc_count: int, sharer_counts: list[int]) -> list[Position]:
    """Inner circle; themes shared by more documents float higher."""
    depths = [8.0 + count * 2.0 for count in sharer_counts]
    return circle_positions(len(sharer_counts), max(15.0, doc_count * 2.0), depths)


def unique_theme_position(anchor: Position, index: int) -> Position:
    angle = (index / UNIQUE_THEME_SLOTS) * math.pi * 2
    return Position(
        anchor.x + math.cos(angle) * UNIQUE_THEME_RADIUS,
        anchor.y + math.sin(angle) * UNIQUE_THEME_RADIUS,
        anchor.z - 5.0,
    )


def node_color(node_type: str, category: str = "general") -> str:
    if node_type == "document":
        return DOCUMENT_COLOR
    if node_type == "shared-theme":
        return SHARED_THEME_COLORS.get(category, DEFAULT_COLOR)
    if node_type == "unique-theme":
        return UNIQUE_THEME_COLOR
    return DEFAULT_COLOR


def edge_color(strength: float, opacity: float = 1.0) -> str:
    if strength >= 0.8:
        return f"rgba(239, 68, 68, {opacity})"
    if strength >= 0.6:
        return f"rgba(245, 158, 11, {opacity})"
    if strength >= 0.4:
        return f"rgba(16, 185, 129, {opacity})"
    return f"rgba(156, 163, 175, {opacity})"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
