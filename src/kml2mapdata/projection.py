"""
Reprojection between WGS84 lon/lat and a planar metric CRS via pyproj.
"""

import math

from pyproj import CRS, Transformer

from .constants import SOURCE_EPSG
from .geometry import Coordinate


def choose_utm_epsg(lng: float, lat: float) -> int:
    """EPSG code of the UTM zone containing ``(lng, lat)``."""
    zone = int(math.floor((lng + 180.0) / 6.0) + 1)
    zone = min(max(zone, 1), 60)
    return (32700 + zone) if lat < 0 else (32600 + zone)


class Projector:
    """Pair of pure transforms: ``project(lng, lat)`` and ``unproject(x, y)``."""

    def __init__(self, target_epsg: int):
        self.target_epsg = target_epsg
        source = CRS.from_epsg(SOURCE_EPSG)
        target = CRS.from_epsg(target_epsg)
        self._forward = Transformer.from_crs(source, target, always_xy=True)
        self._inverse = Transformer.from_crs(target, source, always_xy=True)

    def project(self, lng: float, lat: float) -> Coordinate:
        x, y = self._forward.transform(lng, lat)
        return float(x), float(y)

    def unproject(self, x: float, y: float) -> Coordinate:
        """Planar ``(x, y)`` back to ``(lng, lat)``."""
        lng, lat = self._inverse.transform(x, y)
        return float(lng), float(lat)

    def project_many(self, coords: list[Coordinate]) -> list[Coordinate]:
        if not coords:
            return []
        xs, ys = self._forward.transform(
            [c[0] for c in coords], [c[1] for c in coords]
        )
        return [(float(x), float(y)) for x, y in zip(xs, ys)]

    def unproject_many(self, coords: list[Coordinate]) -> list[Coordinate]:
        if not coords:
            return []
        lngs, lats = self._inverse.transform(
            [c[0] for c in coords], [c[1] for c in coords]
        )
        return [(float(lng), float(lat)) for lng, lat in zip(lngs, lats)]


def build_projector(target_epsg, first_coordinate=None) -> Projector:
    """Build a Projector; ``target_epsg="auto"`` picks the UTM zone of ``first_coordinate``."""
    if target_epsg == "auto":
        if first_coordinate is None:
            raise ValueError("target_epsg=auto needs a coordinate to choose a UTM zone")
        target_epsg = choose_utm_epsg(first_coordinate[0], first_coordinate[1])
    return Projector(int(target_epsg))
