"""
Alignment graph: snap traced polylines onto shared nodes and edges.

Every undirected edge is stored as two directional ``Edge`` views, one on
each endpoint node. The attribution list of the A->B view is always the
exact reverse of the B->A view.
"""

from typing import Iterator, Optional

from .constants import ToleranceConfig
from .geometry import (
    Coordinate,
    Segment,
    closest_point_on_segment,
    distance,
    is_clear_of_endpoints,
    points_equal,
    segment_intersection,
    segment_key,
)


class InvalidGeometryError(ValueError):
    """Raised for geometry the graph cannot insert (self-loops, degenerate segments)."""


class Edge:
    """One directional view of an edge and its ordered source ids."""

    def __init__(self, ids: Optional[list[str]] = None):
        self.ids: list[str] = list(ids) if ids else []

    def __repr__(self) -> str:
        return f"Edge(ids={self.ids!r})"


class Node:
    """A graph vertex: neighbouring coordinate -> outgoing directional edge."""

    def __init__(self):
        self.edges: dict[Coordinate, Edge] = {}


class AlignmentGraph:
    """Graph of polyline nodes and edges that merges overlapping tracings."""

    def __init__(
        self,
        node_snap: float = ToleranceConfig.NODE_SNAP,
        edge_snap: float = ToleranceConfig.EDGE_SNAP,
    ):
        self.node_snap = node_snap
        self.edge_snap = edge_snap
        self.nodes: dict[Coordinate, Node] = {}
        self.split_count = 0

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        """Number of undirected edges."""
        return self.directional_edge_count() // 2

    def directional_edge_count(self) -> int:
        return sum(len(node.edges) for node in self.nodes.values())

    def get_edge(self, from_: Coordinate, to: Coordinate) -> Optional[Edge]:
        """Directional edge ``from_ -> to`` or ``None``."""
        node = self.nodes.get(from_)
        if node is None:
            return None
        return node.edges.get(to)

    def iter_segments(self) -> Iterator[Segment]:
        """Yield each undirected edge once as its canonical segment key."""
        for point, node in self.nodes.items():
            for neighbour in node.edges:
                key = segment_key(point, neighbour)
                if key[0] == point:
                    yield key

    def is_consistent(self) -> bool:
        """Check that every directional view has a mirrored, reversed partner."""
        for point, node in self.nodes.items():
            for neighbour, edge in node.edges.items():
                other = self.get_edge(neighbour, point)
                if other is None or other is edge:
                    return False
                if other.ids != edge.ids[::-1]:
                    return False
        return True

    # Snapping

    def snap_to_graph(
        self, point: Coordinate, previous: Optional[Coordinate] = None
    ) -> Coordinate:
        """Snap ``point`` onto an existing node or edge, or register it as a node.

        ``previous`` is the point the current line just came from; it is never
        a snap target, so a line cannot fold back onto itself.
        """
        point = (float(point[0]), float(point[1]))

        node = self._snap_to_node(point, previous)
        if node is not None:
            return node

        node = self._snap_to_edge(point, previous)
        if node is not None:
            return node

        self.nodes.setdefault(point, Node())
        return point

    def _snap_to_node(
        self, point: Coordinate, previous: Optional[Coordinate]
    ) -> Optional[Coordinate]:
        best_key = None
        best = None
        for node_point in self.nodes:
            if points_equal(node_point, previous):
                continue
            d = distance(point, node_point)
            if d >= self.node_snap:
                continue
            key = (d, node_point)
            if best_key is None or key < best_key:
                best_key = key
                best = node_point
        return best

    def _snap_to_edge(
        self, point: Coordinate, previous: Optional[Coordinate]
    ) -> Optional[Coordinate]:
        best_key = None
        best_segment = None
        for a, b in self.iter_segments():
            snapped = closest_point_on_segment(point, a, b)
            if points_equal(snapped, previous):
                continue
            d = distance(point, snapped)
            if d >= self.node_snap:
                continue
            key = (d, snapped, (a, b))
            if best_key is None or key < best_key:
                best_key = key
                best_segment = (a, b)

        if best_segment is None:
            return None

        snapped = best_key[1]
        if snapped not in self.nodes:
            self.split_edge(best_segment[0], best_segment[1], snapped)
        return snapped

    # Insertion and splitting

    def add_edge(self, from_: Coordinate, to: Coordinate, source_id: str) -> None:
        """Record that ``source_id`` traverses ``from_ -> to``.

        Where the segment passes an existing node, or crosses an existing
        edge away from its endpoints, it is split and the pieces are inserted
        instead. Pending pieces are processed depth first, so a line's pieces
        are inserted in traversal order.
        """
        for point in (from_, to):
            if point not in self.nodes:
                raise InvalidGeometryError(f"Edge endpoint is not a graph node: {point}")
        if points_equal(from_, to):
            raise InvalidGeometryError(f"Self-loop edge: from={from_} to={to}")

        pending = [(from_, to)]
        expanded: set[Segment] = set()
        steps = 0

        while pending:
            steps += 1
            if steps > ToleranceConfig.MAX_SPLIT_STEPS:
                raise InvalidGeometryError(
                    f"Edge {from_} -> {to} did not settle after {steps - 1} splits"
                )
            a, b = pending.pop()
            if points_equal(a, b):
                raise InvalidGeometryError(f"Self-loop edge: from={a} to={b}")

            if b not in self.nodes[a].edges and (a, b) not in expanded:
                if distance(a, b) <= ToleranceConfig.MIN_SEGMENT_LENGTH:
                    raise InvalidGeometryError(f"Degenerate segment: {a} -> {b}")

                mid = self._find_intermediate_node(a, b)
                if mid is None:
                    crossing = self._find_intersecting_edge(a, b)
                    if crossing is not None:
                        (ea, eb), mid = crossing
                        self.split_edge(ea, eb, mid)

                if mid is not None:
                    expanded.add((a, b))
                    pending.append((mid, b))
                    pending.append((a, mid))
                    continue

            self._insert_edge(a, b, source_id)

    def _find_intermediate_node(
        self, from_: Coordinate, to: Coordinate
    ) -> Optional[Coordinate]:
        """Nearest node lying within the edge-snap distance of the segment interior."""
        best_key = None
        best = None
        for node_point in self.nodes:
            closest = closest_point_on_segment(node_point, from_, to)
            if points_equal(closest, from_) or points_equal(closest, to):
                continue
            d = distance(closest, node_point)
            if d >= self.edge_snap:
                continue
            key = (d, node_point)
            if best_key is None or key < best_key:
                best_key = key
                best = node_point
        return best

    def _find_intersecting_edge(
        self, from_: Coordinate, to: Coordinate
    ) -> Optional[tuple[Segment, Coordinate]]:
        """Existing edge crossing ``from_-to`` away from all four endpoints.

        Among several crossings the one nearest ``from_`` wins.
        """
        best_key = None
        best = None
        for a, b in self.iter_segments():
            point = segment_intersection(from_, to, a, b)
            if point is None:
                continue
            if not is_clear_of_endpoints(point, a, b, self.edge_snap):
                continue
            if not is_clear_of_endpoints(point, from_, to, self.edge_snap):
                continue
            key = (distance(from_, point), point, (a, b))
            if best_key is None or key < best_key:
                best_key = key
                best = ((a, b), point)
        return best

    def _insert_edge(self, from_: Coordinate, to: Coordinate, source_id: str) -> None:
        forward = self.nodes[from_].edges.get(to)
        reverse = self.nodes[to].edges.get(from_)
        if forward is None or reverse is None:
            forward = Edge()
            reverse = Edge()
        forward.ids.append(source_id)
        reverse.ids.insert(0, source_id)
        self.nodes[from_].edges[to] = forward
        self.nodes[to].edges[from_] = reverse

    def split_edge(self, from_: Coordinate, to: Coordinate, mid: Coordinate) -> None:
        """Replace ``from_<->to`` with ``from_<->mid`` and ``mid<->to``.

        Both halves keep the full attribution lists of the original edge.
        """
        if mid in self.nodes:
            raise InvalidGeometryError(f"Split point is already a node: {mid}")
        from_node = self.nodes[from_]
        to_node = self.nodes[to]
        forward = from_node.edges.get(to)
        reverse = to_node.edges.get(from_)
        if forward is None or reverse is None:
            raise InvalidGeometryError(f"No edge to split: {from_} -> {to}")

        mid_node = Node()
        mid_node.edges[from_] = Edge(reverse.ids)
        mid_node.edges[to] = Edge(forward.ids)

        del from_node.edges[to]
        from_node.edges[mid] = forward
        del to_node.edges[from_]
        to_node.edges[mid] = reverse
        self.nodes[mid] = mid_node
        self.split_count += 1
