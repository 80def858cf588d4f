"""Graph payload construction for the 3D renderer."""

from .builder import GraphBuilder, GraphEdge, GraphNode, GraphPayload, graph_density

__all__ = ["GraphBuilder", "GraphEdge", "GraphNode", "GraphPayload", "graph_density"]
