"""
Snap-to alignment of point placemarks with similar locations.
"""

from dataclasses import dataclass, field

from .constants import ToleranceConfig
from .geometry import Coordinate, distance


@dataclass
class PointCluster:
    """Placemarks grouped around the first point added to the cluster."""

    representative: Coordinate
    ids: list[str] = field(default_factory=list)


class PlacemarkClusterer:
    """Greedy first-fit clustering of point placemarks.

    Membership is tested against each cluster's fixed representative, so the
    grouping depends on insertion order and is not transitive.
    """

    def __init__(self, threshold: float = ToleranceConfig.POINT_SNAP):
        self.threshold = threshold
        self.clusters: list[PointCluster] = []

    def add_placemark(self, point: Coordinate, id_: str) -> PointCluster:
        point = (float(point[0]), float(point[1]))
        for cluster in self.clusters:
            if distance(cluster.representative, point) < self.threshold:
                cluster.ids.append(id_)
                return cluster
        cluster = PointCluster(representative=point, ids=[id_])
        self.clusters.append(cluster)
        return cluster
