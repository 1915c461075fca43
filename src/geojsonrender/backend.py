"""Rasterization backend: a matplotlib Agg canvas addressed in pixels."""

from __future__ import annotations

import io
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence

from .geometry import Position
from .style import DrawingStyle


PixelPoint = tuple[float, float]


class Canvas(Protocol):
    """Drawing surface for one output image.

    Coordinates are canvas pixels with y pointing up: (0, 0) is the bottom-left
    corner of the written image.
    """

    width: int
    height: int

    def draw_point(self, point: PixelPoint, style: DrawingStyle) -> None: ...

    def draw_polyline(self, points: Sequence[PixelPoint], style: DrawingStyle) -> None: ...

    def draw_polygon(self, rings: Sequence[Sequence[PixelPoint]], style: DrawingStyle) -> None: ...

    def save(self, path: Path) -> None: ...

    def to_bytes(self) -> bytes: ...

    def close(self) -> None: ...


CanvasFactory = Callable[[int, int], Canvas]


def to_pixels(positions: Sequence[Position]) -> list[PixelPoint]:
    return [(float(position.x), float(position.y)) for position in positions]


def _signed_area(ring: Sequence[PixelPoint]) -> float:
    area = 0.0
    for idx in range(len(ring)):
        x0, y0 = ring[idx]
        x1, y1 = ring[(idx + 1) % len(ring)]
        area += x0 * y1 - x1 * y0
    return area / 2.0


def orient_rings(rings: Sequence[Sequence[PixelPoint]]) -> list[list[PixelPoint]]:
    """Wind holes opposite to the outer ring so a single path fills correctly."""
    out: list[list[PixelPoint]] = []
    outer_sign = 0.0
    for idx, ring in enumerate(rings):
        points = list(ring)
        if len(points) < 2:
            continue
        area = _signed_area(points)
        if idx == 0:
            outer_sign = area
        elif area != 0.0 and outer_sign != 0.0 and (area > 0) == (outer_sign > 0):
            points.reverse()
        out.append(points)
    return out


class MatplotlibCanvas:
    """Pixel-addressed matplotlib figure with the axes spanning the whole image.

    The y axis runs upward so map north ends up at the top of the image.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        background: str = "white",
        dpi: int = 100,
        image_format: str = "png",
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        plt, path_cls, patch_cls = _require_matplotlib()
        self.width = int(width)
        self.height = int(height)
        self.dpi = dpi
        self.image_format = image_format
        self._transparent = background.casefold() == "transparent"
        self._path_cls = path_cls
        self._patch_cls = patch_cls
        self._plt = plt
        self.fig = plt.figure(figsize=(self.width / dpi, self.height / dpi), dpi=dpi)
        self.ax = self.fig.add_axes((0.0, 0.0, 1.0, 1.0))
        self.ax.set_xlim(0, self.width)
        self.ax.set_ylim(0, self.height)
        self.ax.set_autoscale_on(False)
        self.ax.axis("off")
        _apply_background(fig=self.fig, ax=self.ax, background=background)
        self._closed = False

    def __enter__(self) -> MatplotlibCanvas:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _line_width_pt(self, style: DrawingStyle) -> float:
        return style.line.width * 72.0 / self.dpi

    def draw_point(self, point: PixelPoint, style: DrawingStyle) -> None:
        self.ax.plot(
            [point[0]],
            [point[1]],
            marker="o",
            markersize=self._line_width_pt(style),
            color=style.line.color,
            linestyle="none",
        )

    def draw_polyline(self, points: Sequence[PixelPoint], style: DrawingStyle) -> None:
        if len(points) < 2:
            return
        self.ax.plot(
            [point[0] for point in points],
            [point[1] for point in points],
            color=style.line.color,
            linewidth=self._line_width_pt(style),
            solid_joinstyle="round",
            solid_capstyle="round",
        )

    def draw_polygon(self, rings: Sequence[Sequence[PixelPoint]], style: DrawingStyle) -> None:
        oriented = orient_rings(rings)
        if not oriented:
            return
        vertices: list[PixelPoint] = []
        codes: list[int] = []
        for ring in oriented:
            vertices.extend(ring)
            vertices.append(ring[0])
            codes.append(self._path_cls.MOVETO)
            codes.extend([self._path_cls.LINETO] * (len(ring) - 1))
            codes.append(self._path_cls.CLOSEPOLY)
        patch = self._patch_cls(
            self._path_cls(vertices, codes),
            facecolor=style.fill.color if style.fill is not None else "none",
            edgecolor=style.line.color,
            linewidth=self._line_width_pt(style),
            joinstyle="round",
        )
        self.ax.add_patch(patch)

    def save(self, path: Path) -> None:
        self.fig.savefig(path, dpi=self.dpi, format=self.image_format, transparent=self._transparent)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.fig.savefig(buffer, dpi=self.dpi, format=self.image_format, transparent=self._transparent)
        return buffer.getvalue()

    def close(self) -> None:
        if not self._closed:
            self._plt.close(self.fig)
            self._closed = True


def matplotlib_canvas_factory(
    *,
    background: str = "white",
    dpi: int = 100,
    image_format: str = "png",
) -> CanvasFactory:
    def _factory(width: int, height: int) -> Canvas:
        return MatplotlibCanvas(width, height, background=background, dpi=dpi, image_format=image_format)

    return _factory


def open_image(data: bytes) -> Any:
    """Decode an encoded image buffer into a Pillow image."""
    image_cls = _require_pillow_image()
    image = image_cls.open(io.BytesIO(data))
    image.load()
    return image


def _apply_background(*, fig: Any, ax: Any, background: str) -> None:
    if background.casefold() == "transparent":
        fig.patch.set_facecolor("white")
        fig.patch.set_alpha(0.0)
        ax.set_facecolor((1.0, 1.0, 1.0, 0.0))
    else:
        fig.patch.set_facecolor(background)
        ax.set_facecolor(background)


@lru_cache(maxsize=1)
def _require_matplotlib() -> tuple[Any, Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
        from matplotlib.patches import PathPatch
        from matplotlib.path import Path as MplPath
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for rendering") from exc
    return (plt, MplPath, PathPatch)


@lru_cache(maxsize=1)
def _require_pillow_image() -> Any:
    try:
        from PIL import Image
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("Pillow is required for decoding rendered images") from exc
    return Image
