"""Axis-aligned bounding boxes and extent computation over geometry trees."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .geometry import (
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


_LOGGER = logging.getLogger("geojsonrender.envelope")


@dataclass(frozen=True, slots=True)
class Envelope:
    """Bounding box whose fields stay `None` until a coordinate is seen.

    A real coordinate of 0 is therefore never confused with "no extent yet".
    """

    min_x: float | None = None
    min_y: float | None = None
    max_x: float | None = None
    max_y: float | None = None

    @classmethod
    def empty(cls) -> Envelope:
        return cls()

    @classmethod
    def from_bbox(cls, bbox: Sequence[float]) -> Envelope:
        """Build from a GeoJSON bbox: [minX, minY, maxX, maxY] or the 3D form
        [minX, minY, minZ, maxX, maxY, maxZ]. Z components are ignored."""
        if len(bbox) == 4:
            return cls(float(bbox[0]), float(bbox[1]), float(bbox[2]), float(bbox[3]))
        if len(bbox) == 6:
            return cls(float(bbox[0]), float(bbox[1]), float(bbox[3]), float(bbox[4]))
        raise ValueError(f"bbox must have 4 or 6 elements, got {len(bbox)}")

    @property
    def is_empty(self) -> bool:
        return (
            self.min_x is None
            or self.min_y is None
            or self.max_x is None
            or self.max_y is None
        )

    @property
    def width(self) -> float:
        if self.is_empty:
            return 0.0
        return float(self.max_x) - float(self.min_x)

    @property
    def height(self) -> float:
        if self.is_empty:
            return 0.0
        return float(self.max_y) - float(self.min_y)

    @property
    def aspect_ratio(self) -> float:
        """Width over height; `inf` or `nan` when the height is zero."""
        width = self.width
        height = self.height
        if height == 0.0:
            return math.inf if width > 0.0 else math.nan
        return width / height

    def expand(self, x: float, y: float) -> Envelope:
        if self.is_empty:
            return Envelope(x, y, x, y)
        return Envelope(
            min(self.min_x, x),
            min(self.min_y, y),
            max(self.max_x, x),
            max(self.max_y, y),
        )

    def union(self, other: Envelope) -> Envelope:
        if other.is_empty:
            return self
        if self.is_empty:
            return other
        return self.expand(other.min_x, other.min_y).expand(other.max_x, other.max_y)

    def offset(self, dx: float, dy: float) -> Envelope:
        if self.is_empty:
            return self
        return Envelope(self.min_x + dx, self.min_y + dy, self.max_x + dx, self.max_y + dy)

    def contains(self, x: float, y: float) -> bool:
        """Strict interior test; points on an edge are outside."""
        if self.is_empty:
            return False
        return self.min_x < x < self.max_x and self.min_y < y < self.max_y

    def as_tuple(self) -> tuple[float, float, float, float]:
        if self.is_empty:
            raise ValueError("Envelope is empty")
        return (float(self.min_x), float(self.min_y), float(self.max_x), float(self.max_y))


def find_extents(obj: Any, extents: Envelope | None = None) -> Envelope:
    """Fold the extents of `obj` into `extents`.

    `obj` may be a Position, any geometry variant, a Feature, a Layer, or an
    iterable of those (e.g. a list of layers). Features without geometry and
    unrecognized nodes contribute nothing.
    """
    running = extents if extents is not None else Envelope.empty()

    if obj is None:
        return running
    if isinstance(obj, Position):
        return running.expand(obj.x, obj.y)

    cached = getattr(obj, "bbox", None)
    if cached is not None and len(cached) in (4, 6):
        return running.union(Envelope.from_bbox(cached))

    if isinstance(obj, Point):
        return running.expand(obj.coordinates.x, obj.coordinates.y)
    if isinstance(obj, (MultiPoint, LineString)):
        for position in obj.coordinates:
            running = running.expand(position.x, position.y)
        return running
    if isinstance(obj, (MultiLineString, Polygon, MultiPolygon)):
        for part in obj.coordinates:
            running = find_extents(part, running)
        return running
    if isinstance(obj, GeometryCollection):
        for part in obj.geometries:
            running = find_extents(part, running)
        return running
    if isinstance(obj, Feature):
        return find_extents(obj.geometry, running)
    if isinstance(obj, Layer):
        for feature in obj.features:
            running = find_extents(feature, running)
        return running
    if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
        for item in obj:
            running = find_extents(item, running)
        return running

    _LOGGER.debug("Ignoring unsupported object in extent computation: %r", type(obj).__name__)
    return running
