"""Immutable GeoJSON geometry model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union


BBox = tuple[float, ...]


@dataclass(frozen=True, slots=True)
class Position:
    """Coordinate tuple: X/longitude, Y/latitude and optional Z/altitude."""

    x: float
    y: float
    z: float | None = None

    def as_tuple(self) -> tuple[float, ...]:
        if self.z is None:
            return (self.x, self.y)
        return (self.x, self.y, self.z)


@dataclass(frozen=True, slots=True)
class Point:
    coordinates: Position
    bbox: BBox | None = None


@dataclass(frozen=True, slots=True)
class MultiPoint:
    coordinates: tuple[Position, ...] = ()
    bbox: BBox | None = None


@dataclass(frozen=True, slots=True)
class LineString:
    coordinates: tuple[Position, ...] = ()
    bbox: BBox | None = None


@dataclass(frozen=True, slots=True)
class MultiLineString:
    coordinates: tuple[LineString, ...] = ()
    bbox: BBox | None = None


@dataclass(frozen=True, slots=True)
class Polygon:
    """Outer ring first, holes after. Rings are not forced closed."""

    coordinates: tuple[LineString, ...] = ()
    bbox: BBox | None = None


@dataclass(frozen=True, slots=True)
class MultiPolygon:
    coordinates: tuple[Polygon, ...] = ()
    bbox: BBox | None = None


@dataclass(frozen=True, slots=True)
class GeometryCollection:
    geometries: tuple[Geometry, ...] = ()
    bbox: BBox | None = None


Geometry = Union[
    Point,
    MultiPoint,
    LineString,
    MultiLineString,
    Polygon,
    MultiPolygon,
    GeometryCollection,
]


def line(*points: tuple[float, ...]) -> LineString:
    """Build a LineString from plain coordinate tuples."""
    return LineString(tuple(Position(*point) for point in points))


def polygon(*rings: tuple[tuple[float, ...], ...] | list[tuple[float, ...]]) -> Polygon:
    """Build a Polygon from rings of plain coordinate tuples."""
    return Polygon(tuple(line(*ring) for ring in rings))


def iter_positions(geometry: Geometry | None) -> Iterator[Position]:
    """Yield every position of a geometry tree in document order."""
    if geometry is None:
        return
    if isinstance(geometry, Point):
        yield geometry.coordinates
    elif isinstance(geometry, (MultiPoint, LineString)):
        yield from geometry.coordinates
    elif isinstance(geometry, (MultiLineString, Polygon, MultiPolygon)):
        for part in geometry.coordinates:
            yield from iter_positions(part)
    elif isinstance(geometry, GeometryCollection):
        for part in geometry.geometries:
            yield from iter_positions(part)
