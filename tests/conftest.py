from __future__ import annotations

from pathlib import Path

import pytest

from geojsonrender.geometry import polygon
from geojsonrender.layers import Feature, Layer
from geojsonrender.layout import GeoJsonRenderer


class RecordingCanvas:
    """In-memory canvas that records draw calls instead of rasterizing."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.calls: list[tuple] = []
        self.closed = False

    def draw_point(self, point, style) -> None:
        self.calls.append(("point", point, style))

    def draw_polyline(self, points, style) -> None:
        self.calls.append(("polyline", list(points), style))

    def draw_polygon(self, rings, style) -> None:
        self.calls.append(("polygon", [list(ring) for ring in rings], style))

    def save(self, path: Path) -> None:
        Path(path).write_bytes(self.to_bytes())

    def to_bytes(self) -> bytes:
        return f"{self.width}x{self.height}:{len(self.calls)}".encode("ascii")

    def close(self) -> None:
        self.closed = True


class RecordingFactory:
    def __init__(self) -> None:
        self.canvases: list[RecordingCanvas] = []

    def __call__(self, width: int, height: int) -> RecordingCanvas:
        canvas = RecordingCanvas(width, height)
        self.canvases.append(canvas)
        return canvas


def square(size: float, *, x: float = 0.0, y: float = 0.0) -> Feature:
    return Feature(
        geometry=polygon([(x, y), (x + size, y), (x + size, y + size), (x, y + size), (x, y)])
    )


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def renderer(factory: RecordingFactory) -> GeoJsonRenderer:
    return GeoJsonRenderer(canvas_factory=factory)


@pytest.fixture
def square_layer() -> Layer:
    return Layer.from_features([square(1000.0)])
