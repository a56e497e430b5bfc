"""
Support tree container.

A support tree is a forest of directed segments. Every segment runs from a
higher point to the point it was resolved onto; roots are the sampled
overhang points and leaves rest on the build plate or on the model.
"""

from typing import Any, Dict, Iterator, List, Optional
import json
import networkx as nx

from .types import PointType, SupportPoint, TreeSegment


class SupportTree:
    """
    Ordered list of support segments plus the plate height they route to.

    Parameters
    ----------
    segments : list of TreeSegment, optional
        Segments in the order they were produced
    plate_height : float, optional
        Height of the build plate, None for an empty tree
    """

    def __init__(
        self,
        segments: Optional[List[TreeSegment]] = None,
        plate_height: Optional[float] = None,
    ):
        self.segments: List[TreeSegment] = list(segments or [])
        self.plate_height = plate_height

    def add(self, source: SupportPoint, target: SupportPoint) -> TreeSegment:
        segment = TreeSegment(source, target)
        self.segments.append(segment)
        return segment

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[TreeSegment]:
        return iter(self.segments)

    def to_networkx(self) -> nx.DiGraph:
        """
        Build a directed graph keyed by point location.

        Node attributes hold the last seen ``type`` and ``normal`` of the
        point; edges carry their ``length``.
        """
        graph = nx.DiGraph()
        for segment in self.segments:
            for point in (segment.source, segment.target):
                if point.location not in graph:
                    graph.add_node(point.location, type=point.type, normal=point.normal)
            graph.add_edge(
                segment.source.location,
                segment.target.location,
                length=segment.length,
            )
        return graph

    def validate(self) -> List[str]:
        """
        Check the forest invariants.

        Returns
        -------
        List[str]
            Violations found (empty if the tree is well formed)
        """
        errors = []
        outgoing: Dict[Any, int] = {}
        terminal_locations = set()

        for index, segment in enumerate(self.segments):
            if segment.is_degenerate:
                errors.append(f"Segment {index} has equal endpoints {segment.source.location}")
            outgoing[segment.source.location] = outgoing.get(segment.source.location, 0) + 1
            if segment.target.type in (PointType.MODEL, PointType.PLATE):
                terminal_locations.add(segment.target.location)

        for location in terminal_locations:
            if outgoing.get(location, 0) > 1:
                errors.append(f"Terminal point {location} is the source of more than one segment")

        graph = self.to_networkx()
        if graph.number_of_nodes() and not nx.is_directed_acyclic_graph(graph):
            errors.append("Support tree contains a cycle")

        return errors

    def summary(self) -> Dict[str, Any]:
        """Statistics describing the tree shape."""
        graph = self.to_networkx()
        roots = [n for n in graph.nodes if graph.in_degree(n) == 0]
        plate_terminals = sum(1 for s in self.segments if s.target.type == PointType.PLATE)
        model_terminals = sum(
            1 for s in self.segments
            if s.target.type == PointType.MODEL and graph.out_degree(s.target.location) == 0
        )
        if graph.number_of_nodes() and nx.is_directed_acyclic_graph(graph):
            max_depth = nx.dag_longest_path_length(graph, weight=None)
        else:
            max_depth = 0

        return {
            "segment_count": len(self.segments),
            "node_count": graph.number_of_nodes(),
            "root_count": len(roots),
            "plate_terminals": plate_terminals,
            "model_terminals": model_terminals,
            "total_length": float(sum(s.length for s in self.segments)),
            "max_depth": int(max_depth),
            "plate_height": self.plate_height,
        }

    def to_dict(self) -> dict:
        return {
            "plate_height": self.plate_height,
            "segments": [s.to_dict() for s in self.segments],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SupportTree":
        return cls(
            segments=[TreeSegment.from_dict(s) for s in d.get("segments", [])],
            plate_height=d.get("plate_height"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


__all__ = ["SupportTree"]
