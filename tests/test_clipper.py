from __future__ import annotations

from geojsonrender.clipper import intersects, position_inside_envelope, segment_intersects_envelope
from geojsonrender.envelope import Envelope
from geojsonrender.geometry import (
    GeometryCollection,
    MultiPoint,
    MultiPolygon,
    Point,
    Position,
    line,
    polygon,
)
from geojsonrender.layers import Feature

BOX = Envelope(0.0, 0.0, 10.0, 10.0)


def test_segment_far_outside_is_rejected():
    assert not segment_intersects_envelope(Position(100, 100), Position(110, 110), BOX)


def test_segment_crossing_box_is_accepted():
    assert segment_intersects_envelope(Position(-5, 5), Position(15, 5), BOX)
    assert segment_intersects_envelope(Position(-5, -5), Position(15, 15), BOX)


def test_segment_with_endpoint_inside_is_accepted():
    assert segment_intersects_envelope(Position(5, 5), Position(50, 50), BOX)


def test_segment_passing_beside_box_is_rejected():
    assert not segment_intersects_envelope(Position(-5, 12), Position(15, 20), BOX)
    assert not segment_intersects_envelope(Position(-5, -1), Position(-1, 20), BOX)


def test_segment_along_edge_counts_as_intersecting():
    assert segment_intersects_envelope(Position(0, 0), Position(10, 0), BOX)


def test_points_on_boundary_are_outside():
    assert not position_inside_envelope(Position(0, 5), BOX)
    assert not intersects(Point(Position(10, 10)), BOX)
    assert intersects(Point(Position(5, 5)), BOX)


def test_multipoint_matches_any_member():
    assert intersects(MultiPoint((Position(50, 50), Position(1, 1))), BOX)
    assert not intersects(MultiPoint((Position(50, 50), Position(-1, 1))), BOX)


def test_nested_geometries_recurse():
    far = polygon([(20, 20), (30, 20), (30, 30), (20, 20)])
    near = polygon([(5, 5), (30, 5), (30, 30), (5, 5)])
    assert not intersects(MultiPolygon((far,)), BOX)
    assert intersects(MultiPolygon((far, near)), BOX)
    assert intersects(GeometryCollection((far, line((-1, 5), (11, 5)))), BOX)


def test_enclosing_polygon_without_crossing_edges_does_not_intersect():
    around = polygon([(-10, -10), (20, -10), (20, 20), (-10, 20), (-10, -10)])
    assert not intersects(around, BOX)


def test_missing_geometry_or_empty_envelope():
    assert not intersects(None, BOX)
    assert not intersects(Point(Position(5, 5)), Envelope.empty())


def test_feature_is_tested_by_its_geometry():
    assert intersects(Feature(geometry=Point(Position(5, 5))), BOX)
    assert not intersects(Feature(geometry=Point(Position(50, 50))), BOX)
    assert not intersects(Feature(geometry=None), BOX)
