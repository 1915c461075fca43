"""Geometry-versus-envelope intersection tests (modified Liang-Barsky)."""

from __future__ import annotations

from .envelope import Envelope
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
from .layers import Feature


def position_inside_envelope(position: Position, envelope: Envelope) -> bool:
    """Strict interior test: a position lying on an edge is outside."""
    return envelope.contains(position.x, position.y)


def segment_intersects_envelope(start: Position, end: Position, envelope: Envelope) -> bool:
    """Return True if the segment start-end crosses or lies inside `envelope`."""
    if envelope.is_empty:
        return False
    # Trivial acceptance when either endpoint is inside.
    if position_inside_envelope(start, envelope) or position_inside_envelope(end, envelope):
        return True

    dx = end.x - start.x
    dy = end.y - start.y
    t0 = 0.0
    t1 = 1.0
    # Left, right, bottom, top.
    edges = (
        (-dx, start.x - envelope.min_x),
        (dx, envelope.max_x - start.x),
        (-dy, start.y - envelope.min_y),
        (dy, envelope.max_y - start.y),
    )
    for p, q in edges:
        if p == 0:
            if q < 0:
                return False
            continue
        r = q / p
        if p < 0:
            if r > t1:
                return False
            if r > t0:
                t0 = r
        else:
            if r < t0:
                return False
            if r < t1:
                t1 = r
    return True


def intersects(geometry: Geometry | Feature | None, envelope: Envelope) -> bool:
    """True if any part of `geometry` (or a Feature's geometry) intersects `envelope`."""
    if geometry is None or envelope.is_empty:
        return False
    if isinstance(geometry, Feature):
        return intersects(geometry.geometry, envelope)
    if isinstance(geometry, Point):
        return position_inside_envelope(geometry.coordinates, envelope)
    if isinstance(geometry, MultiPoint):
        return any(position_inside_envelope(position, envelope) for position in geometry.coordinates)
    if isinstance(geometry, LineString):
        coords = geometry.coordinates
        return any(
            segment_intersects_envelope(coords[idx], coords[idx + 1], envelope)
            for idx in range(len(coords) - 1)
        )
    if isinstance(geometry, (MultiLineString, Polygon, MultiPolygon)):
        return any(intersects(part, envelope) for part in geometry.coordinates)
    if isinstance(geometry, GeometryCollection):
        return any(intersects(part, envelope) for part in geometry.geometries)
    return False
