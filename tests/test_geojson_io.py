from __future__ import annotations

import json
from pathlib import Path

import pytest

from geojsonrender.geojson_io import (
    geometry_from_mapping,
    layer_from_mapping,
    layer_to_mapping,
    load_layer,
    load_layer_file,
)
from geojsonrender.geometry import LineString, MultiPolygon, Point, Polygon, Position

FEATURE_COLLECTION = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "id": "room-1",
            "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [4, 0], [4, 3], [0, 0]]]},
            "properties": {"FLOOR": "1"},
        },
        {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": [[0, 0, 5], [1, 1, 6]]},
            "properties": None,
        },
    ],
}


def test_container_key_with_sibling_properties():
    layer = load_layer(json.dumps({"name": "floors", "level": 2, "GeoJson": FEATURE_COLLECTION}))
    assert layer.name == "floors"
    assert layer.properties == {"name": "floors", "level": 2}
    assert len(layer) == 2
    assert isinstance(layer.features[0].geometry, Polygon)
    assert layer.features[0].id == "room-1"
    assert layer.features[0].properties == {"FLOOR": "1"}
    assert layer.features[1].properties == {}
    assert layer.features[1].geometry.coordinates[0] == Position(0.0, 0.0, 5.0)


def test_container_key_lookup_ignores_case():
    layer = layer_from_mapping({"geojson": FEATURE_COLLECTION, "color": "blue"})
    assert layer.properties == {"color": "blue"}
    assert len(layer) == 2


def test_custom_container_key():
    layer = layer_from_mapping({"Shapes": FEATURE_COLLECTION}, container_key="Shapes")
    assert len(layer) == 2


def test_plain_feature_collection_has_no_properties():
    layer = layer_from_mapping(FEATURE_COLLECTION)
    assert layer.properties == {}
    assert len(layer) == 2


def test_bare_feature_and_bare_geometry():
    layer = layer_from_mapping(FEATURE_COLLECTION["features"][0])
    assert len(layer) == 1
    layer = layer_from_mapping({"type": "Point", "coordinates": [1, 2]})
    assert layer.features[0].geometry == Point(Position(1.0, 2.0))


def test_unsupported_geometry_decodes_to_none():
    assert geometry_from_mapping({"type": "Circle", "coordinates": [0, 0], "radius": 3}) is None
    assert geometry_from_mapping({"type": "Point", "coordinates": "nope"}) is None
    layer = layer_from_mapping(
        {
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "geometry": {"type": "Circle"}, "properties": {}}],
        }
    )
    assert len(layer) == 1
    assert layer.features[0].geometry is None


def test_multipolygon_and_collection_decode():
    geometry = geometry_from_mapping(
        {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "MultiPolygon", "coordinates": [[[[0, 0], [1, 0], [1, 1], [0, 0]]]]},
                {"type": "Unknown"},
                {"type": "LineString", "coordinates": [[0, 0], [2, 2]]},
            ],
        }
    )
    assert len(geometry.geometries) == 2
    assert isinstance(geometry.geometries[0], MultiPolygon)
    assert isinstance(geometry.geometries[1], LineString)


def test_bbox_is_kept():
    geometry = geometry_from_mapping({"type": "Point", "coordinates": [1, 2], "bbox": [0, 0, 5, 5]})
    assert geometry.bbox == (0.0, 0.0, 5.0, 5.0)


def test_invalid_json_raises_value_error():
    with pytest.raises(ValueError):
        load_layer("{not json")


def test_unknown_document_type_raises_value_error():
    with pytest.raises(ValueError):
        layer_from_mapping({"type": "Topology"})


def test_load_layer_file(tmp_path: Path):
    path = tmp_path / "layer.geojson"
    path.write_text(json.dumps(FEATURE_COLLECTION), encoding="utf-8")
    assert len(load_layer_file(path)) == 2
    with pytest.raises(FileNotFoundError):
        load_layer_file(tmp_path / "missing.geojson")


def test_layer_to_mapping_rewraps_under_container_key():
    layer = layer_from_mapping({"name": "floors", "GeoJson": FEATURE_COLLECTION})
    out = layer_to_mapping(layer)
    assert out["name"] == "floors"
    body = out["GeoJson"]
    assert body["type"] == "FeatureCollection"
    assert body["features"][0]["id"] == "room-1"
    assert body["features"][0]["geometry"]["coordinates"] == [[[0.0, 0.0], [4.0, 0.0], [4.0, 3.0], [0.0, 0.0]]]
    assert body["features"][1]["geometry"]["coordinates"] == [[0.0, 0.0, 5.0], [1.0, 1.0, 6.0]]
    assert "GeoJson" not in layer_to_mapping(layer_from_mapping(FEATURE_COLLECTION))
