"""
Planar geometry primitives: distance, closest point, segment intersection.

Coordinates are plain ``(x, y)`` tuples in a metric CRS. Equality is exact;
snapping upstream guarantees shared vertices carry identical values.
"""

import math
from typing import Optional

from shapely.geometry import LineString, Point
from shapely.ops import nearest_points

Coordinate = tuple[float, float]
Segment = tuple[Coordinate, Coordinate]


def distance(a: Coordinate, b: Coordinate) -> float:
    """Euclidean distance between two coordinates."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def points_equal(a: Optional[Coordinate], b: Optional[Coordinate]) -> bool:
    """Exact 2D equality; ``None`` never equals a coordinate."""
    if a is None or b is None:
        return False
    return a[0] == b[0] and a[1] == b[1]


def closest_point_on_segment(
    point: Coordinate, p0: Coordinate, p1: Coordinate
) -> Coordinate:
    """Return the point on segment ``p0-p1`` nearest to ``point``.

    Projections falling before ``p0`` or past ``p1`` return that endpoint's
    exact value, so callers can compare the result to the endpoints.
    """
    if points_equal(p0, p1):
        return p0
    nearest = nearest_points(Point(point), LineString([p0, p1]))[1]
    return (nearest.x, nearest.y)


def distance_to_segment(point: Coordinate, p0: Coordinate, p1: Coordinate) -> float:
    """Distance from ``point`` to segment ``p0-p1``."""
    return distance(point, closest_point_on_segment(point, p0, p1))


def segment_intersection(
    p0: Coordinate, p1: Coordinate, q0: Coordinate, q1: Coordinate
) -> Optional[Coordinate]:
    """Single intersection point of segments ``p0-p1`` and ``q0-q1``.

    Collinear overlaps return ``None``; overlaps are handled by node
    snapping, not by intersection.
    """
    if points_equal(p0, p1) or points_equal(q0, q1):
        return None
    intersection = LineString([p0, p1]).intersection(LineString([q0, q1]))
    if not isinstance(intersection, Point) or intersection.is_empty:
        return None
    return (intersection.x, intersection.y)


def segment_key(a: Coordinate, b: Coordinate) -> Segment:
    """Canonical undirected key for the segment ``a-b``."""
    return (a, b) if a <= b else (b, a)


def is_clear_of_endpoints(
    point: Coordinate, p0: Coordinate, p1: Coordinate, threshold: float
) -> bool:
    """True when ``point`` is farther than ``threshold`` from both endpoints."""
    return distance(p0, point) > threshold and distance(p1, point) > threshold


def heading(a: Coordinate, b: Coordinate) -> float:
    """Angle in radians of the direction from ``a`` to ``b``."""
    return math.atan2(b[1] - a[1], b[0] - a[0])
