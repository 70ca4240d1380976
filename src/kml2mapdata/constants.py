"""
Constants for kml2mapdata: tolerances, projections, and feature types.
"""

# Source CRS for KML coordinates (WGS84 lon/lat)
SOURCE_EPSG = 4326

# Default planar CRS: UTM zone 10N (Washington State)
DEFAULT_TARGET_EPSG = 32610

# Feature type strings for GeoJSON output
FEATURE_TYPE_SEGMENT = "segment"
FEATURE_TYPE_PLACEMARK = "placemark"

DEFAULT_PLACEMARK_NAME = "Default Name"

# Seconds to wait when the KML source is an http(s) URL
KML_FETCH_TIMEOUT = 60


class ToleranceConfig:
    """Tolerance values for snapping, splitting and clustering (metres)."""

    # Node snap: a new point within this distance merges onto an existing node
    NODE_SNAP = 15.0

    # Edge snap: a node or intersection within this distance splits a segment
    EDGE_SNAP = 15.0

    # Point snap: placemarks within this distance share a cluster
    POINT_SNAP = 20.0

    # Segments this short are degenerate and never split
    MIN_SEGMENT_LENGTH = 1e-9

    # Upper bound on worklist steps for a single edge insertion
    MAX_SPLIT_STEPS = 10000
