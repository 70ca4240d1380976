"""
Map data export: write the map-data JSON document and GeoJSON layers.
"""

import json
from typing import TYPE_CHECKING

import geopandas as gpd
import polyline
from shapely.geometry import LineString, Point

from .constants import FEATURE_TYPE_PLACEMARK, FEATURE_TYPE_SEGMENT

if TYPE_CHECKING:
    from .config import OutputPaths
    from .ingest import MapData, MapSegment


def encode_segment_line(segment: "MapSegment") -> str:
    """Google encoded polyline for a segment's (lng, lat) points."""
    return polyline.encode([(lat, lng) for lng, lat in segment.points], 5)


def map_data_to_dict(data: "MapData", encode_polylines: bool = True) -> dict:
    """Convert MapData to the JSON document layout."""
    segments = []
    for segment in data.segments:
        if encode_polylines:
            line = encode_segment_line(segment)
        else:
            line = [[lng, lat] for lng, lat in segment.points]
        segments.append({"ids": list(segment.ids), "line": line})

    return {
        "segments": segments,
        "placemarks": [
            {"lat": p.lat, "lng": p.lng, "ids": list(p.ids)} for p in data.placemarks
        ],
        "features": [{"id": feature_id} for feature_id in data.features],
    }


def render_map_json(
    data: "MapData", encode_polylines: bool = True, jsonp_template: str = ""
) -> str:
    """Serialize MapData, wrapped in ``jsonp_template`` when one is given."""
    text = json.dumps(map_data_to_dict(data, encode_polylines), ensure_ascii=False)
    if jsonp_template:
        text = jsonp_template.replace("%s", text, 1)
    return text


def segments_to_geodataframe(data: "MapData") -> gpd.GeoDataFrame:
    rows = [
        {
            "ids": list(segment.ids),
            "featureType": FEATURE_TYPE_SEGMENT,
            "geometry": LineString(segment.points),
        }
        for segment in data.segments
        if len(segment.points) >= 2
    ]
    return gpd.GeoDataFrame(
        rows, columns=["ids", "featureType", "geometry"], geometry="geometry", crs="EPSG:4326"
    )


def placemarks_to_geodataframe(data: "MapData") -> gpd.GeoDataFrame:
    rows = [
        {
            "ids": list(p.ids),
            "featureType": FEATURE_TYPE_PLACEMARK,
            "geometry": Point(p.lng, p.lat),
        }
        for p in data.placemarks
    ]
    return gpd.GeoDataFrame(
        rows, columns=["ids", "featureType", "geometry"], geometry="geometry", crs="EPSG:4326"
    )


def export_map_data(
    data: "MapData",
    paths: "OutputPaths",
    encode_polylines: bool = True,
    jsonp_template: str = "",
    write_geojson: bool = True,
) -> None:
    """Write the map-data JSON document and, optionally, GeoJSON layers."""
    with open(paths.map_json, "w", encoding="utf-8") as f:
        f.write(render_map_json(data, encode_polylines, jsonp_template))
    print(f"  Map data written: {paths.map_json}", flush=True)

    if not write_geojson:
        return

    # to_json() keeps list-valued properties intact, unlike to_file()
    with open(paths.segments_geojson, "w", encoding="utf-8") as f:
        f.write(segments_to_geodataframe(data).to_json())
    with open(paths.placemarks_geojson, "w", encoding="utf-8") as f:
        f.write(placemarks_to_geodataframe(data).to_json())
    print("  GeoJSON files written.", flush=True)
