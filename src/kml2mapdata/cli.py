"""
CLI entry point and pipeline orchestration for kml2mapdata.
"""

import os
import sys
import click

from .config import load_config, Config

TOTAL_STAGES = 5


def _stage(n: int, msg: str) -> None:
    """Print a stage label."""
    print(f"\n[{n}/{TOTAL_STAGES}] {msg}", flush=True)


def _first_coordinate(features):
    """First (lng, lat) found in the features, used to pick an automatic UTM zone."""
    from .kml_parse import LineFeature, PointFeature

    for feature in features:
        if isinstance(feature, LineFeature) and feature.coordinates:
            return feature.coordinates[0]
        if isinstance(feature, PointFeature):
            return feature.coordinate
    return None


def _run_pipeline(config: Config) -> None:
    """Run the full KML-to-map-data pipeline."""
    print(f"Running pipeline for: {config.kml_file_name}")

    from .kml_parse import LineFeature, PointFeature, parse_kml_features
    from .projection import build_projector
    from .ingest import MapDataExtractor
    from .map_export import export_map_data

    paths = config.output_paths()

    # 1. Parse KML
    _stage(1, "Parsing KML...")
    features = parse_kml_features(config.kml_path(), config.ignore_placemarks)
    n_lines = sum(1 for f in features if isinstance(f, LineFeature))
    n_points = sum(1 for f in features if isinstance(f, PointFeature))
    print(
        f"  Found {len(features)} placemarks: {n_lines} lines, {n_points} points, "
        f"{len(features) - n_lines - n_points} other"
    )

    # 2. Project and ingest
    _stage(2, "Aligning lines and points...")
    try:
        projector = build_projector(config.target_epsg, _first_coordinate(features))
    except ValueError as e:
        print(f"\nERROR: {e}")
        sys.exit(1)
    print(f"  Planar CRS: EPSG:{projector.target_epsg}")
    print(
        f"  Node snap: {config.node_snap_meters:g} m, "
        f"point snap: {config.point_snap_meters:g} m"
    )

    extractor = MapDataExtractor(
        projector,
        node_snap=config.node_snap_meters,
        point_snap=config.point_snap_meters,
    )
    extractor.ingest(features)
    graph = extractor.graph
    print(
        f"  Graph: {graph.node_count()} nodes, {graph.edge_count()} edges, "
        f"{graph.split_count} splits"
    )
    if extractor.abandoned:
        print(f"  Abandoned {len(extractor.abandoned)} lines with invalid geometry")

    # 3. Extract polylines
    _stage(3, "Extracting merged segments...")
    data = extractor.build()
    shared = sum(1 for s in data.segments if len(s.ids) > 1)
    print(f"  {len(data.segments)} segments ({shared} shared by more than one line)")

    # 4. Cluster placemarks
    _stage(4, "Clustering placemarks...")
    print(f"  {n_points} points -> {len(data.placemarks)} clusters")

    # 5. Export
    _stage(5, "Exporting...")
    export_map_data(
        data,
        paths,
        encode_polylines=config.encode_polylines,
        jsonp_template=config.jsonp_template,
        write_geojson=config.write_geojson,
    )

    print("\nComplete")


def _ensure_directories(config: Config) -> None:
    """Make sure the profile's input and output directories exist."""
    for directory in (config.input_directory, config.output_directory):
        os.makedirs(directory, exist_ok=True)


def _validate_kml_exists(config: Config) -> None:
    """Stop before any work when a local KML source is missing."""
    if config.kml_is_remote():
        return
    kml_path = config.kml_path()
    if os.path.isfile(kml_path):
        return

    print(f"\nERROR: no KML at {kml_path}")
    print(f"  kml_file_name = {config.kml_file_name}")
    print(f"  input_directory = {config.input_directory} (relative to {os.getcwd()})")
    input_dir = os.path.dirname(kml_path)
    try:
        candidates = sorted(
            name for name in os.listdir(input_dir) if name.lower().endswith(".kml")
        )
    except OSError as e:
        print(f"  Cannot list {input_dir}: {e.strerror}")
    else:
        if candidates:
            print(f"  KML files found there: {', '.join(candidates[:10])}")
        else:
            print("  No .kml files found there")
    sys.exit(1)


@click.command(help="Merge overlapping KML line tracings into shared map segments.")
@click.option(
    "--network-profile",
    required=True,
    help="Path to the network profile configuration file (required).",
    type=click.Path(exists=True),
)
def main(network_profile: str) -> None:
    """Merge overlapping KML line tracings into shared map segments."""
    print(f"Profile: {network_profile}")
    config = load_config(network_profile)
    _ensure_directories(config)
    _validate_kml_exists(config)
    _run_pipeline(config)
