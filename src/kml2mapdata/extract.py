"""
Polyline extraction: join edges with identical attribution into maximal runs.
"""

from dataclasses import dataclass, field
from typing import Optional

from .alignment_graph import AlignmentGraph, Edge, Node
from .geometry import Coordinate, Segment, points_equal, segment_key


@dataclass(frozen=True)
class Polyline:
    """A merged run of edges and the source ids shared by all of them."""

    points: list[Coordinate] = field(default_factory=list)
    ids: list[str] = field(default_factory=list)


def _has_matching_incoming(node: Node, source_edge: Edge) -> bool:
    """True if another edge at ``node`` continues into ``source_edge``.

    A sibling whose forward list is the reverse of ``source_edge``'s list is
    the same run arriving from the other side, so ``source_edge`` is not the
    start of its chain.
    """
    reversed_ids = source_edge.ids[::-1]
    for edge in node.edges.values():
        if edge is source_edge:
            continue
        if edge.ids == reversed_ids:
            return True
    return False


def _walk_chain(
    graph: AlignmentGraph,
    start: Coordinate,
    first: Coordinate,
    ids: list[str],
    visited: set[Segment],
) -> list[Coordinate]:
    """Follow edges carrying exactly ``ids`` from ``start`` through ``first``."""
    points = [start, first]
    visited.add(segment_key(start, first))
    previous, current = start, first

    while True:
        next_point: Optional[Coordinate] = None
        for neighbour, edge in graph.nodes[current].edges.items():
            if edge.ids != ids or points_equal(neighbour, previous):
                continue
            key = segment_key(current, neighbour)
            if key in visited:
                continue
            visited.add(key)
            next_point = neighbour
            break
        if next_point is None:
            return points
        points.append(next_point)
        previous, current = current, next_point


def extract_polylines(graph: AlignmentGraph) -> list[Polyline]:
    """Extract maximal polylines sharing an identical attribution list.

    Each undirected edge appears in at most one polyline. Runs that close on
    themselves have no chain head and are left out; they show up as a
    mismatch in the edge-count diagnostic.
    """
    polylines = []
    visited: set[Segment] = set()
    directional_count = 0

    for point, node in graph.nodes.items():
        for neighbour, edge in node.edges.items():
            directional_count += 1
            if segment_key(point, neighbour) in visited:
                continue
            if _has_matching_incoming(node, edge):
                continue
            ids = list(edge.ids)
            points = _walk_chain(graph, point, neighbour, edge.ids, visited)
            polylines.append(Polyline(points=points, ids=ids))

    expected = directional_count // 2
    if expected != len(visited):
        print(
            f"Diagnostic: extraction visited {len(visited)} of {expected} edges; "
            f"{expected - len(visited)} edges were not part of any polyline",
            flush=True,
        )

    return polylines
