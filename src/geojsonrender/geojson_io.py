"""GeoJSON decoding into the geometry/feature/layer tree, and back."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from .geometry import (
    BBox,
    Geometry,
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
    Position,
)
from .layers import Feature, Layer


DEFAULT_CONTAINER_KEY = "GeoJson"

_GEOMETRY_TYPES = {
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
}

_LOGGER = logging.getLogger("geojsonrender.geojson_io")


def _position(raw: Any) -> Position:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        raise ValueError(f"Expected coordinate array of 2 or 3 numbers, got {raw!r}")
    values: list[float] = []
    for item in raw[:3]:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise ValueError(f"Expected numeric ordinate, got {item!r}")
        values.append(float(item))
    return Position(*values)


def _positions(raw: Any) -> tuple[Position, ...]:
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Expected coordinate list, got {type(raw).__name__}")
    return tuple(_position(item) for item in raw)


def _line_strings(raw: Any) -> tuple[LineString, ...]:
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Expected list of coordinate lists, got {type(raw).__name__}")
    return tuple(LineString(_positions(item)) for item in raw)


def _bbox(raw: Any) -> BBox | None:
    if not isinstance(raw, (list, tuple)) or len(raw) not in (4, 6):
        return None
    if not all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in raw):
        return None
    return tuple(float(item) for item in raw)


def _parse_geometry(raw: Mapping[str, Any]) -> Geometry | None:
    geom_type = raw.get("type")
    bbox = _bbox(raw.get("bbox"))
    if geom_type == "GeometryCollection":
        parts_raw = raw.get("geometries")
        if not isinstance(parts_raw, list):
            raise ValueError("GeometryCollection requires a 'geometries' list")
        parts = (geometry_from_mapping(part) for part in parts_raw)
        return GeometryCollection(tuple(part for part in parts if part is not None), bbox=bbox)

    coords = raw.get("coordinates")
    if geom_type == "Point":
        return Point(_position(coords), bbox=bbox)
    if geom_type == "MultiPoint":
        return MultiPoint(_positions(coords), bbox=bbox)
    if geom_type == "LineString":
        return LineString(_positions(coords), bbox=bbox)
    if geom_type == "MultiLineString":
        return MultiLineString(_line_strings(coords), bbox=bbox)
    if geom_type == "Polygon":
        return Polygon(_line_strings(coords), bbox=bbox)
    if geom_type == "MultiPolygon":
        if not isinstance(coords, (list, tuple)):
            raise ValueError("MultiPolygon requires a list of polygons")
        return MultiPolygon(tuple(Polygon(_line_strings(item)) for item in coords), bbox=bbox)
    return None


def geometry_from_mapping(raw: Any) -> Geometry | None:
    """Decode a GeoJSON geometry object.

    Unsupported or malformed geometries decode to `None` and are logged, so a
    single bad node never aborts a whole document.
    """
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        _LOGGER.warning("Ignoring non-object geometry: %r", type(raw).__name__)
        return None
    geom_type = raw.get("type")
    if geom_type not in _GEOMETRY_TYPES:
        _LOGGER.warning("Ignoring unsupported geometry type: %r", geom_type)
        return None
    try:
        return _parse_geometry(raw)
    except ValueError as exc:
        _LOGGER.warning("Ignoring malformed %s geometry: %s", geom_type, exc)
        return None


def feature_from_mapping(raw: Mapping[str, Any]) -> Feature:
    properties_raw = raw.get("properties")
    properties = dict(properties_raw) if isinstance(properties_raw, Mapping) else {}
    feature_id = raw.get("id")
    if feature_id is not None and not isinstance(feature_id, (str, int)):
        feature_id = str(feature_id)
    return Feature(
        geometry=geometry_from_mapping(raw.get("geometry")),
        properties=properties,
        id=feature_id,
        bbox=_bbox(raw.get("bbox")),
    )


def _features_from_document(raw: Mapping[str, Any]) -> tuple[list[Feature], BBox | None]:
    doc_type = raw.get("type")
    if doc_type == "FeatureCollection":
        features_raw = raw.get("features")
        if not isinstance(features_raw, list):
            raise ValueError("FeatureCollection requires a 'features' list")
        features: list[Feature] = []
        for idx, item in enumerate(features_raw):
            if not isinstance(item, Mapping):
                raise ValueError(f"Expected feature object at features[{idx}]")
            features.append(feature_from_mapping(item))
        return (features, _bbox(raw.get("bbox")))
    if doc_type == "Feature":
        return ([feature_from_mapping(raw)], None)
    if doc_type in _GEOMETRY_TYPES:
        return ([Feature(geometry=geometry_from_mapping(raw))], None)
    raise ValueError(f"Unsupported GeoJSON document type: {doc_type!r}")


def _find_container_key(raw: Mapping[str, Any], container_key: str) -> str | None:
    wanted = container_key.casefold()
    for key in raw:
        if isinstance(key, str) and key.casefold() == wanted:
            return key
    return None


def layer_from_mapping(raw: Any, *, container_key: str = DEFAULT_CONTAINER_KEY) -> Layer:
    """Decode a layer document.

    The GeoJSON body may sit under `container_key` next to arbitrary sibling
    fields, which become the layer's properties. Otherwise the whole document
    is the body.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level GeoJSON document must be an object")
    key = _find_container_key(raw, container_key)
    if key is None:
        features, bbox = _features_from_document(raw)
        name = raw.get("name")
        return Layer(features=features, name=name if isinstance(name, str) else None, bbox=bbox)

    body = raw[key]
    if not isinstance(body, Mapping):
        raise ValueError(f"Expected object under '{key}'")
    features, bbox = _features_from_document(body)
    properties = {k: v for k, v in raw.items() if k != key}
    name = properties.get("name")
    return Layer(
        features=features,
        properties=properties,
        name=name if isinstance(name, str) else None,
        bbox=bbox,
    )


def load_layer(text: str, *, container_key: str = DEFAULT_CONTAINER_KEY) -> Layer:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid GeoJSON text: {exc}") from exc
    return layer_from_mapping(raw, container_key=container_key)


def load_layers(texts: Sequence[str], *, container_key: str = DEFAULT_CONTAINER_KEY) -> list[Layer]:
    return [load_layer(text, container_key=container_key) for text in texts]


def load_layer_file(path: Path, *, container_key: str = DEFAULT_CONTAINER_KEY) -> Layer:
    if not path.exists():
        raise FileNotFoundError(f"GeoJSON file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        text = fh.read()
    try:
        return load_layer(text, container_key=container_key)
    except ValueError as exc:
        raise ValueError(f"Failed decoding {path}: {exc}") from exc


def geometry_to_mapping(geometry: Geometry) -> dict[str, Any]:
    if isinstance(geometry, Point):
        return {"type": "Point", "coordinates": list(geometry.coordinates.as_tuple())}
    if isinstance(geometry, (MultiPoint, LineString)):
        return {
            "type": type(geometry).__name__,
            "coordinates": [list(position.as_tuple()) for position in geometry.coordinates],
        }
    if isinstance(geometry, (MultiLineString, Polygon)):
        return {
            "type": type(geometry).__name__,
            "coordinates": [
                [list(position.as_tuple()) for position in ring.coordinates]
                for ring in geometry.coordinates
            ],
        }
    if isinstance(geometry, MultiPolygon):
        return {
            "type": "MultiPolygon",
            "coordinates": [geometry_to_mapping(part)["coordinates"] for part in geometry.coordinates],
        }
    if isinstance(geometry, GeometryCollection):
        return {
            "type": "GeometryCollection",
            "geometries": [geometry_to_mapping(part) for part in geometry.geometries],
        }
    raise ValueError(f"Unsupported geometry: {type(geometry).__name__}")


def feature_to_mapping(feature: Feature) -> dict[str, Any]:
    out: dict[str, Any] = {
        "type": "Feature",
        "geometry": geometry_to_mapping(feature.geometry) if feature.geometry is not None else None,
        "properties": dict(feature.properties),
    }
    if feature.id is not None:
        out["id"] = feature.id
    return out


def layer_to_mapping(layer: Layer, *, container_key: str = DEFAULT_CONTAINER_KEY) -> dict[str, Any]:
    """Encode a layer; layers with properties are wrapped under `container_key`."""
    body = {
        "type": "FeatureCollection",
        "features": [feature_to_mapping(feature) for feature in layer.features],
    }
    if not layer.properties:
        return body
    return {**layer.properties, container_key: body}
