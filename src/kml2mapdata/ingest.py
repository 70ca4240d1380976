"""
Ingestion driver: feed parsed features through the alignment graph and
placemark clusterer, then collect merged segments and clusters.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .alignment_graph import AlignmentGraph, InvalidGeometryError
from .constants import ToleranceConfig
from .extract import extract_polylines
from .geometry import Coordinate, heading
from .kml_parse import Feature, LineFeature, PointFeature, UnknownFeature
from .placemarks import PlacemarkClusterer
from .projection import Projector


@dataclass
class MapSegment:
    """A merged polyline in (lng, lat) and the placemark names tracing it."""

    ids: list[str]
    points: list[Coordinate]


@dataclass
class MapPlacemark:
    lat: float
    lng: float
    ids: list[str]


@dataclass
class MapData:
    segments: list[MapSegment] = field(default_factory=list)
    placemarks: list[MapPlacemark] = field(default_factory=list)
    features: list[str] = field(default_factory=list)


def drop_repeated_points(coords: list[Coordinate]) -> list[Coordinate]:
    """Collapse consecutive identical coordinates."""
    result: list[Coordinate] = []
    for c in coords:
        if result and result[-1] == c:
            continue
        result.append(c)
    return result


def normalize_direction(coords: list[Coordinate]) -> list[Coordinate]:
    """Orient a line so its end lies at a non-negative heading from its start.

    Tracings of the same path drawn in opposite directions then share an
    attribution order.
    """
    if len(coords) < 2:
        return coords
    if heading(coords[0], coords[-1]) < 0:
        return coords[::-1]
    return coords


class MapDataExtractor:
    """Runs one ingestion pass over features in source order."""

    def __init__(
        self,
        projector: Projector,
        node_snap: float = ToleranceConfig.NODE_SNAP,
        point_snap: float = ToleranceConfig.POINT_SNAP,
    ):
        self.projector = projector
        self.graph = AlignmentGraph(node_snap=node_snap, edge_snap=node_snap)
        self.clusterer = PlacemarkClusterer(threshold=point_snap)
        self.feature_ids: list[str] = []
        self.abandoned: list[str] = []

    def add_feature(self, feature: Feature) -> None:
        """Ingest a single feature; invalid geometry abandons only this feature."""
        if isinstance(feature, LineFeature):
            try:
                self._add_line(feature)
            except InvalidGeometryError as e:
                print(f"Warning: Abandoned line '{feature.id}': {e}", flush=True)
                self.abandoned.append(feature.id)
        elif isinstance(feature, PointFeature):
            point = self.projector.project(*feature.coordinate)
            self.clusterer.add_placemark(point, feature.id)
        elif isinstance(feature, UnknownFeature):
            print(
                f"Warning: Placemark '{feature.id}' has unsupported geometry "
                f"({feature.kind}); recorded without geometry",
                flush=True,
            )
        else:
            raise TypeError(f"Unexpected feature type: {type(feature).__name__}")
        self.feature_ids.append(feature.id)

    def _add_line(self, feature: LineFeature) -> None:
        coords = drop_repeated_points(feature.coordinates)
        points = normalize_direction(self.projector.project_many(coords))

        previous: Optional[Coordinate] = None
        for point in points:
            snapped = self.graph.snap_to_graph(point, previous)
            if previous is not None:
                self.graph.add_edge(previous, snapped, feature.id)
            previous = snapped

    def ingest(self, features: Iterable[Feature]) -> "MapDataExtractor":
        for feature in features:
            self.add_feature(feature)
        return self

    def build(self) -> MapData:
        """Extract merged segments and placemark clusters back in (lng, lat)."""
        data = MapData(features=list(self.feature_ids))

        for polyline in extract_polylines(self.graph):
            data.segments.append(
                MapSegment(
                    ids=list(polyline.ids),
                    points=self.projector.unproject_many(polyline.points),
                )
            )

        for cluster in self.clusterer.clusters:
            lng, lat = self.projector.unproject(*cluster.representative)
            data.placemarks.append(MapPlacemark(lat=lat, lng=lng, ids=list(cluster.ids)))

        return data


def extract_map_data(
    features: Iterable[Feature],
    projector: Projector,
    node_snap: float = ToleranceConfig.NODE_SNAP,
    point_snap: float = ToleranceConfig.POINT_SNAP,
) -> MapData:
    """Align line features and cluster point features into MapData."""
    extractor = MapDataExtractor(projector, node_snap=node_snap, point_snap=point_snap)
    return extractor.ingest(features).build()
