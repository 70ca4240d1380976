"""
Configuration loading and path resolution for kml2mapdata.
"""

import configparser
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .constants import DEFAULT_TARGET_EPSG, ToleranceConfig


@dataclass
class OutputPaths:
    """Resolved output file paths."""

    map_json: str
    segments_geojson: str
    placemarks_geojson: str


@dataclass
class Config:
    """Run configuration for kml2mapdata."""

    kml_file_name: str
    input_directory: str
    output_directory: str
    output_name_prefix: str
    target_epsg: Union[int, str]
    node_snap_meters: float
    point_snap_meters: float
    ignore_placemarks: list[str]
    encode_polylines: bool
    jsonp_template: str
    write_geojson: bool = True

    def kml_is_remote(self) -> bool:
        return is_remote_location(self.kml_file_name)

    def kml_path(self) -> str:
        """Where to read the KML from: the URL as given, or a file under the input directory."""
        if self.kml_is_remote():
            return self.kml_file_name
        return os.path.join(os.getcwd(), self.input_directory, self.kml_file_name)

    def output_paths(self) -> OutputPaths:
        """Output files named PREFIX_<kind>_<ddmonyyyy>."""
        stamp = datetime.today().strftime("%d%b%Y").lower()

        def named(kind: str, extension: str) -> str:
            return os.path.join(
                self.output_directory,
                f"{self.output_name_prefix}_{kind}_{stamp}.{extension}",
            )

        return OutputPaths(
            map_json=named("map-data", "json"),
            segments_geojson=named("segments", "geojson"),
            placemarks_geojson=named("placemarks", "geojson"),
        )


class _ProfileParser(configparser.ConfigParser):
    """Profile parser that keeps option names as written and ignores ``%``."""

    def __init__(self):
        super().__init__(interpolation=None)

    def optionxform(self, optionstr: str) -> str:
        return optionstr


def is_remote_location(location: str) -> bool:
    """True for http: and https: locations."""
    return location.lower().startswith(("http:", "https:"))


def parse_bool(s: Optional[str], default: bool = False) -> bool:
    if s is None or s == "":
        return default
    return str(s).lower() in ("true", "1", "yes", "on")


def _parse_float(parsed: dict[str, str], key: str, default: float) -> float:
    value = parsed.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        print(f"Warning: Invalid {key} value '{value}'. Using default {default:g}.")
        return default


def _parse_epsg(value: Optional[str]) -> Union[int, str]:
    if not value:
        return DEFAULT_TARGET_EPSG
    value = value.strip()
    if value.lower() == "auto":
        return "auto"
    if value.upper().startswith("EPSG:"):
        value = value[5:]
    try:
        return int(value)
    except ValueError:
        print(
            f"Warning: Invalid target_epsg value '{value}'. "
            f"Using default {DEFAULT_TARGET_EPSG}."
        )
        return DEFAULT_TARGET_EPSG


def load_config(config_file: str) -> Config:
    """Load and validate configuration from an INI file."""

    profile = _ProfileParser()
    profile.read(config_file)

    # Section names only group settings; later sections win on repeated keys.
    parsed: dict[str, str] = dict(profile.defaults())
    for section in profile.sections():
        parsed.update(profile.items(section))

    # Required
    kml_file_name = parsed.get("kml_file_name") or None
    if not kml_file_name:
        print(f"ERROR: {config_file} has no kml_file_name (a file name or http(s) URL).")
        sys.exit(1)

    # Ignore placemarks
    ignore_str = parsed.get("ignore_placemarks", "")
    ignore_placemarks = [p for p in ignore_str.split(";") if p] if ignore_str else []

    # Directories
    input_directory = parsed.get("input_directory", "input/")
    output_directory = parsed.get("output_directory", "output/")

    # Output prefix
    stem = os.path.splitext(os.path.basename(kml_file_name))[0]
    output_name_prefix = parsed.get("output_name_prefix") or stem.replace(" ", "_").upper()

    # Projection and thresholds
    target_epsg = _parse_epsg(parsed.get("target_epsg"))
    node_snap_meters = _parse_float(parsed, "node_snap_meters", ToleranceConfig.NODE_SNAP)
    point_snap_meters = _parse_float(
        parsed, "point_snap_meters", ToleranceConfig.POINT_SNAP
    )

    # Output options
    encode_polylines = parse_bool(parsed.get("encode_polylines"), True)
    write_geojson = parse_bool(parsed.get("write_geojson"), True)
    jsonp_template = parsed.get("jsonp_template", "")
    if jsonp_template and "%s" not in jsonp_template:
        print(
            f"Warning: jsonp_template '{jsonp_template}' has no %s placeholder. "
            "Writing plain JSON."
        )
        jsonp_template = ""

    return Config(
        kml_file_name=kml_file_name,
        input_directory=input_directory,
        output_directory=output_directory,
        output_name_prefix=output_name_prefix,
        target_epsg=target_epsg,
        node_snap_meters=node_snap_meters,
        point_snap_meters=point_snap_meters,
        ignore_placemarks=ignore_placemarks,
        encode_polylines=encode_polylines,
        jsonp_template=jsonp_template,
        write_geojson=write_geojson,
    )
