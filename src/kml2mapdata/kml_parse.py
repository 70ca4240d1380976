"""
KML parsing: extract line and point placemarks in document order.
"""

import re
import sys
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Union

from pykml import parser

from .config import is_remote_location
from .constants import DEFAULT_PLACEMARK_NAME, KML_FETCH_TIMEOUT
from .geometry import Coordinate

KML_NS = "{http://www.opengis.net/kml/2.2}"

_CONTAINER_TAGS = {f"{KML_NS}Document", f"{KML_NS}Folder"}
_OTHER_FEATURE_TAGS = {
    f"{KML_NS}NetworkLink",
    f"{KML_NS}GroundOverlay",
    f"{KML_NS}ScreenOverlay",
    f"{KML_NS}PhotoOverlay",
}
_GEOMETRY_TAGS = (
    "Point",
    "LineString",
    "LinearRing",
    "Polygon",
    "MultiGeometry",
    "Model",
)


@dataclass
class LineFeature:
    """A LineString placemark; coordinates are (lng, lat)."""

    id: str
    coordinates: list[Coordinate] = field(default_factory=list)


@dataclass
class PointFeature:
    """A Point placemark at (lng, lat)."""

    id: str
    coordinate: Coordinate


@dataclass
class UnknownFeature:
    """A placemark whose geometry is neither a line nor a point."""

    id: str
    kind: str


Feature = Union[LineFeature, PointFeature, UnknownFeature]


def parse_coordinates(text: str) -> list[Coordinate]:
    """Parse a KML ``coordinates`` string into (lng, lat) tuples, dropping altitude."""
    coordinates = []
    for token in (text or "").split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        coordinates.append((float(parts[0]), float(parts[1])))
    return coordinates


def _is_placemark_ignored(name: str, ignore_patterns: list[str]) -> bool:
    """Check if a placemark name matches any ignore pattern."""
    for pattern in ignore_patterns:
        if re.search(rf"{pattern}", name):
            return True
    return False


def _placemark_feature(placemark) -> Feature:
    """Convert one Placemark element into a tagged feature."""
    name = placemark.findtext(f"{KML_NS}name") or DEFAULT_PLACEMARK_NAME

    for tag in _GEOMETRY_TAGS:
        geometry = placemark.find(f"{KML_NS}{tag}")
        if geometry is None:
            continue
        if tag == "LineString":
            coords_text = geometry.findtext(f"{KML_NS}coordinates")
            return LineFeature(id=name, coordinates=parse_coordinates(coords_text))
        if tag == "Point":
            coords = parse_coordinates(geometry.findtext(f"{KML_NS}coordinates"))
            if len(coords) != 1:
                return UnknownFeature(id=name, kind=f"Point with {len(coords)} coordinates")
            return PointFeature(id=name, coordinate=coords[0])
        return UnknownFeature(id=name, kind=tag)

    return UnknownFeature(id=name, kind="none")


def _collect_features(element, ignore_patterns: list[str], features: list) -> None:
    """Visit Documents and Folders recursively, appending placemark features in order."""
    for child in element.iterchildren():
        tag = child.tag
        if tag in _CONTAINER_TAGS:
            _collect_features(child, ignore_patterns, features)
        elif tag == f"{KML_NS}Placemark":
            feature = _placemark_feature(child)
            if _is_placemark_ignored(feature.id, ignore_patterns):
                continue
            features.append(feature)
        elif tag in _OTHER_FEATURE_TAGS:
            print(f"Warning: Unknown feature skipped: {tag.replace(KML_NS, '')}")


def parse_kml_root(root, ignore_patterns: list[str] = ()) -> list[Feature]:
    """Extract features from a parsed KML root element."""
    features: list[Feature] = []
    _collect_features(root, list(ignore_patterns), features)
    return features


def _read_kml_root(path: str):
    if is_remote_location(path):
        with urllib.request.urlopen(path, timeout=KML_FETCH_TIMEOUT) as response:
            return parser.parse(response).getroot()
    with open(path, "rb") as f:
        return parser.parse(f).getroot()


def parse_kml_features(path: str, ignore_patterns: list[str] = ()) -> list[Feature]:
    """Parse a KML file or http(s) URL into features in document order."""
    try:
        kml_root = _read_kml_root(path)
    except FileNotFoundError:
        print(f"\nERROR: KML file not found: {path}")
        sys.exit(1)
    except PermissionError:
        print(f"\nERROR: Permission denied when trying to read KML file: {path}")
        sys.exit(1)
    except urllib.error.URLError as e:
        print(f"\nERROR: Could not download KML from {path}: {e.reason}")
        sys.exit(1)
    except Exception as e:
        print(f"\nERROR: Failed to read or parse KML file: {path}")
        print(f"  Error: {type(e).__name__}: {str(e)}")
        sys.exit(1)

    return parse_kml_root(kml_root, ignore_patterns)
