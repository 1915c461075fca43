from __future__ import annotations

import math

import pytest

from geojsonrender.envelope import find_extents
from geojsonrender.geometry import LineString, Point, Position
from geojsonrender.layers import Feature, Layer
from geojsonrender.layout import GeoJsonRenderer
from geojsonrender.transform import reproject, reproject_layer

EARTH_RADIUS = 6378137.0


def _web_mercator(lon: float, lat: float) -> tuple[float, float]:
    x = EARTH_RADIUS * math.radians(lon)
    y = EARTH_RADIUS * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
    return (x, y)


def test_reproject_point_to_web_mercator_metres():
    projected = reproject(Point(Position(10.0, 60.0, 42.0)), "EPSG:4326", "EPSG:3857")
    assert isinstance(projected, Point)
    expected_x, expected_y = _web_mercator(10.0, 60.0)
    assert projected.coordinates.x == pytest.approx(expected_x, rel=1e-6)
    assert projected.coordinates.y == pytest.approx(expected_y, rel=1e-6)
    assert projected.coordinates.z == 42.0


def test_reproject_keeps_empty_geometry():
    assert reproject(None, "EPSG:4326", "EPSG:3857") is None


def _cached_layer() -> Layer:
    geometry = LineString((Position(10.0, 60.0), Position(20.0, 70.0)), bbox=(10.0, 60.0, 20.0, 70.0))
    feature = Feature(geometry=geometry, properties={"name": "ridge"}, bbox=(10.0, 60.0, 20.0, 70.0))
    return Layer(features=[feature], name="ridges", bbox=(10.0, 60.0, 20.0, 70.0))


def test_reproject_layer_drops_cached_bboxes():
    projected = reproject_layer(_cached_layer(), "EPSG:4326", "EPSG:3857")
    feature = projected.features[0]
    assert projected.bbox is None
    assert feature.bbox is None
    assert feature.geometry.bbox is None
    assert feature.properties == {"name": "ridge"}
    assert projected.name == "ridges"

    min_x, min_y = _web_mercator(10.0, 60.0)
    max_x, max_y = _web_mercator(20.0, 70.0)
    extents = find_extents(projected)
    assert extents.min_x == pytest.approx(min_x, rel=1e-6)
    assert extents.min_y == pytest.approx(min_y, rel=1e-6)
    assert extents.max_x == pytest.approx(max_x, rel=1e-6)
    assert extents.max_y == pytest.approx(max_y, rel=1e-6)


def test_renderer_reprojects_every_layer(renderer: GeoJsonRenderer):
    renderer.add_layer(_cached_layer())
    renderer.add_layer(Layer.from_features([Feature(geometry=Point(Position(0.0, 0.0)))]))
    renderer.reproject_layers("EPSG:4326", "EPSG:3857")
    assert renderer.layers[0].bbox is None
    assert find_extents(renderer.layers[0]).max_y == pytest.approx(_web_mercator(20.0, 70.0)[1], rel=1e-6)
    origin = renderer.layers[1].features[0].geometry.coordinates
    assert origin.x == pytest.approx(0.0, abs=1e-6)
    assert origin.y == pytest.approx(0.0, abs=1e-6)
