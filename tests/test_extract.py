"""
Tests for polyline extraction and placemark clustering.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from kml2mapdata.alignment_graph import AlignmentGraph  # noqa: E402
from kml2mapdata.extract import extract_polylines  # noqa: E402
from kml2mapdata.geometry import segment_key  # noqa: E402


def add_line(graph, points, source_id):
    previous = None
    for point in points:
        snapped = graph.snap_to_graph(point, previous)
        if previous is not None:
            graph.add_edge(previous, snapped, source_id)
        previous = snapped


def covered_segments(polylines):
    keys = []
    for p in polylines:
        for a, b in zip(p.points, p.points[1:]):
            keys.append(segment_key(a, b))
    return keys


P1 = (0.0, 0.0)
P2 = (100.0, 0.0)
P3 = (200.0, 0.0)
P4 = (300.0, 0.0)
P5 = (300.0, 100.0)


class TestExtractPolylines:
    """Tests for extract.extract_polylines."""

    def test_single_line_is_one_polyline(self):
        graph = AlignmentGraph()
        points = [(0.0, 0.0), (100.0, 0.0), (200.0, 50.0), (300.0, 0.0)]
        add_line(graph, points, "A")

        polylines = extract_polylines(graph)

        assert len(polylines) == 1
        assert polylines[0].points == points
        assert polylines[0].ids == ["A"]

    def test_shared_stretch_splits_into_runs(self):
        graph = AlignmentGraph()
        add_line(graph, [P1, P2, P3, P4], "A")
        add_line(graph, [P2, P3, P5], "B")

        polylines = extract_polylines(graph)
        by_points = {tuple(p.points): p.ids for p in polylines}

        assert len(polylines) == 4
        assert by_points[(P1, P2)] == ["A"]
        assert by_points[(P2, P3)] == ["A", "B"]
        assert by_points[(P3, P4)] == ["A"]
        assert by_points[(P3, P5)] == ["B"]

    def test_no_edge_is_emitted_twice(self):
        graph = AlignmentGraph()
        add_line(graph, [P1, P2, P3, P4], "A")
        add_line(graph, [P2, P3, P5], "B")
        add_line(graph, [(50.0, -50.0), (50.0, 50.0)], "C")

        keys = covered_segments(extract_polylines(graph))

        assert len(keys) == len(set(keys))
        assert len(keys) == graph.edge_count()

    def test_chain_continues_through_junction(self):
        graph = AlignmentGraph()
        add_line(graph, [P1, P2, P3], "A")
        add_line(graph, [P2, (100.0, 100.0)], "B")

        polylines = extract_polylines(graph)
        by_ids = {tuple(p.ids): p.points for p in polylines}

        assert len(polylines) == 2
        assert by_ids[("A",)] == [P1, P2, P3]
        assert by_ids[("B",)] == [P2, (100.0, 100.0)]

    def test_crossing_keeps_original_attribution(self):
        graph = AlignmentGraph()
        add_line(graph, [(0.0, 0.0), (100.0, 0.0)], "A")
        add_line(graph, [(50.0, -50.0), (50.0, 50.0)], "B")

        polylines = extract_polylines(graph)

        assert sorted(tuple(p.ids) for p in polylines) == [("A",), ("B",)]
        for p in polylines:
            assert (50.0, 0.0) in p.points

    def test_empty_graph(self, capsys):
        assert extract_polylines(AlignmentGraph()) == []
        assert "Diagnostic" not in capsys.readouterr().out

    def test_closed_loop_reports_diagnostic(self, capsys):
        graph = AlignmentGraph()
        a = graph.snap_to_graph((0, 0))
        b = graph.snap_to_graph((100, 0), previous=a)
        c = graph.snap_to_graph((50, 100), previous=b)
        graph.add_edge(a, b, "R")
        graph.add_edge(b, c, "R")
        graph.add_edge(c, a, "R")

        polylines = extract_polylines(graph)

        assert polylines == []
        out = capsys.readouterr().out
        assert "Diagnostic" in out
        assert "0 of 3" in out


class TestPlacemarkClusterer:
    """Tests for placemarks.PlacemarkClusterer."""

    def test_first_fit_against_representative(self):
        from kml2mapdata.placemarks import PlacemarkClusterer

        clusterer = PlacemarkClusterer()
        clusterer.add_placemark((0, 0), "P1")
        clusterer.add_placemark((15, 0), "P2")
        clusterer.add_placemark((25, 0), "P3")

        assert [c.ids for c in clusterer.clusters] == [["P1", "P2"], ["P3"]]
        assert clusterer.clusters[0].representative == (0.0, 0.0)
        assert clusterer.clusters[1].representative == (25.0, 0.0)

    def test_threshold_is_exclusive(self):
        from kml2mapdata.placemarks import PlacemarkClusterer

        clusterer = PlacemarkClusterer()
        clusterer.add_placemark((0, 0), "P1")
        clusterer.add_placemark((20, 0), "P2")

        assert len(clusterer.clusters) == 2

    def test_joins_first_matching_cluster(self):
        from kml2mapdata.placemarks import PlacemarkClusterer

        clusterer = PlacemarkClusterer()
        clusterer.add_placemark((0, 0), "P1")
        clusterer.add_placemark((30, 0), "P2")
        cluster = clusterer.add_placemark((15, 0), "P3")

        assert cluster.ids == ["P1", "P3"]
        assert clusterer.clusters[1].ids == ["P2"]

    def test_custom_threshold(self):
        from kml2mapdata.placemarks import PlacemarkClusterer

        clusterer = PlacemarkClusterer(threshold=50.0)
        clusterer.add_placemark((0, 0), "P1")
        clusterer.add_placemark((40, 0), "P2")

        assert [c.ids for c in clusterer.clusters] == [["P1", "P2"]]
