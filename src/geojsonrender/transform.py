"""Pure rotate/scale/translate passes over geometry trees and layers."""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any, Callable

from .envelope import Envelope, find_extents
from .geometry import (
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


# 270 degrees, the historical default for aspect-correcting rotation.
DEFAULT_ROTATE_RADIANS = 3.0 * math.pi / 2.0

_LOGGER = logging.getLogger("geojsonrender.transform")

PositionFn = Callable[[Position], Position]


def rotate_position(position: Position, theta: float) -> Position:
    """Rotate about (0, 0) by `theta` radians; altitude passes through."""
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    return Position(
        cos_t * position.x - sin_t * position.y,
        sin_t * position.x + cos_t * position.y,
        position.z,
    )


def scale_position(position: Position, scale_factor: float) -> Position:
    z = position.z * scale_factor if position.z is not None else None
    return Position(position.x * scale_factor, position.y * scale_factor, z)


def translate_position(position: Position, dx: float, dy: float) -> Position:
    return Position(position.x + dx, position.y + dy, position.z)


def map_positions(geometry: Geometry | Feature | None, fn: PositionFn) -> Geometry | None:
    """Rebuild `geometry` with `fn` applied to every position.

    The result has the same shape as the input. A Feature is unwrapped to its
    geometry; other unknown nodes map to `None`.
    """
    if geometry is None:
        return None
    if isinstance(geometry, Feature):
        return map_positions(geometry.geometry, fn)
    if isinstance(geometry, Point):
        return Point(fn(geometry.coordinates))
    if isinstance(geometry, MultiPoint):
        return MultiPoint(tuple(fn(position) for position in geometry.coordinates))
    if isinstance(geometry, LineString):
        return LineString(tuple(fn(position) for position in geometry.coordinates))
    if isinstance(geometry, MultiLineString):
        return MultiLineString(tuple(map_positions(part, fn) for part in geometry.coordinates))
    if isinstance(geometry, Polygon):
        return Polygon(tuple(map_positions(ring, fn) for ring in geometry.coordinates))
    if isinstance(geometry, MultiPolygon):
        return MultiPolygon(tuple(map_positions(part, fn) for part in geometry.coordinates))
    if isinstance(geometry, GeometryCollection):
        parts = (map_positions(part, fn) for part in geometry.geometries)
        return GeometryCollection(tuple(part for part in parts if part is not None))
    _LOGGER.debug("Skipping unsupported geometry node %r", type(geometry).__name__)
    return None


def rotate_and_scale(
    geometry: Geometry | None,
    scale_factor: float = 1.0,
    rotate_radians: float = 0.0,
) -> Geometry | None:
    """Rotate about the origin, then scale. Never the other way round."""

    def _apply(position: Position) -> Position:
        if rotate_radians != 0.0:
            position = rotate_position(position, rotate_radians)
        return scale_position(position, scale_factor)

    return map_positions(geometry, _apply)


def offset(geometry: Geometry | None, dx: float, dy: float) -> Geometry | None:
    return map_positions(geometry, lambda position: translate_position(position, dx, dy))


def translate(geometry: Geometry | None, envelope: Envelope) -> Geometry | None:
    """Rebase `geometry` so that the envelope's minimum becomes (0, 0)."""
    if envelope.is_empty:
        return geometry
    return offset(geometry, -float(envelope.min_x), -float(envelope.min_y))


def should_rotate(
    extents: Envelope,
    width: float,
    height: float,
    rotate: bool | None = None,
) -> bool:
    """Decide whether content must turn 90 degrees to match the output box.

    An explicit `rotate` wins. Otherwise rotate when exactly one of the source
    and the target is wider than tall. Degenerate extents never rotate.
    """
    if rotate is not None:
        return rotate
    source_aspect = extents.aspect_ratio
    if not math.isfinite(source_aspect) or height <= 0:
        return False
    target_aspect = width / height
    return (source_aspect > 1) != (target_aspect > 1)


def fit_scale_factor(extents: Envelope, width: float, height: float) -> float:
    """Largest uniform scale that keeps `extents` inside `width` x `height`."""
    ratios: list[float] = []
    if extents.width > 0:
        ratios.append(width / extents.width)
    if extents.height > 0:
        ratios.append(height / extents.height)
    if not ratios:
        return 1.0
    return min(ratios)


def rotated_extents(extents: Envelope, rotate_radians: float) -> Envelope:
    """Extents of the box corners after rotation about the origin."""
    if extents.is_empty or rotate_radians == 0.0:
        return extents
    corners = (
        Position(extents.min_x, extents.min_y),
        Position(extents.min_x, extents.max_y),
        Position(extents.max_x, extents.min_y),
        Position(extents.max_x, extents.max_y),
    )
    out = Envelope.empty()
    for corner in corners:
        rotated = rotate_position(corner, rotate_radians)
        out = out.expand(rotated.x, rotated.y)
    return out


def resolve_fit(
    extents: Envelope,
    width: float,
    height: float,
    *,
    rotate_radians: float = DEFAULT_ROTATE_RADIANS,
    rotate: bool | None = None,
) -> tuple[float, float]:
    """Return the (scale_factor, rotate_radians) pair fitting `extents` in a box.

    The scale factor is derived from the rotated extents.
    """
    if not should_rotate(extents, width, height, rotate):
        rotate_radians = 0.0
    effective = rotated_extents(extents, rotate_radians)
    return (fit_scale_factor(effective, width, height), rotate_radians)


def map_layer(layer: Layer, fn: Callable[[Geometry | None], Geometry | None]) -> Layer:
    return layer.with_features(feature.with_geometry(fn(feature.geometry)) for feature in layer.features)


def rotate_and_scale_layer(
    layer: Layer,
    width: float,
    height: float,
    *,
    rotate_radians: float = DEFAULT_ROTATE_RADIANS,
    rotate: bool | None = None,
    extents: Envelope | None = None,
) -> Layer:
    """Rotate and scale every feature of `layer` to fit a `width` x `height` box.

    Pass shared `extents` when several layers must scale identically.
    """
    effective_extents = extents if extents is not None else find_extents(layer)
    scale_factor, theta = resolve_fit(
        effective_extents,
        width,
        height,
        rotate_radians=rotate_radians,
        rotate=rotate,
    )
    return map_layer(layer, lambda geometry: rotate_and_scale(geometry, scale_factor, theta))


def translate_layer(layer: Layer, envelope: Envelope) -> Layer:
    return map_layer(layer, lambda geometry: translate(geometry, envelope))


def offset_layer(layer: Layer, dx: float, dy: float) -> Layer:
    return map_layer(layer, lambda geometry: offset(geometry, dx, dy))


def reproject(geometry: Geometry | None, source_crs: str, target_crs: str) -> Geometry | None:
    """Project every position from `source_crs` to `target_crs` (x/y order)."""
    transformer = _require_pyproj_transformer(source_crs, target_crs)

    def _apply(position: Position) -> Position:
        x, y = transformer.transform(position.x, position.y)
        return Position(float(x), float(y), position.z)

    return map_positions(geometry, _apply)


def reproject_layer(layer: Layer, source_crs: str, target_crs: str) -> Layer:
    return map_layer(layer, lambda geometry: reproject(geometry, source_crs, target_crs))


@lru_cache(maxsize=8)
def _require_pyproj_transformer(source_crs: str, target_crs: str) -> Any:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for coordinate reprojection") from exc
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)
