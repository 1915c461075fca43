"""Fit, paginate and crop layouts, and segment-by-segment rendering."""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence

from .backend import Canvas, CanvasFactory, matplotlib_canvas_factory, open_image, to_pixels
from .clipper import intersects
from .envelope import Envelope, find_extents
from .geojson_io import DEFAULT_CONTAINER_KEY, load_layers
from .geometry import (
    Geometry,
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
    iter_positions,
)
from .layers import Layer, clone_layers
from .style import (
    DEFAULT_STYLE,
    OPTIONAL_STYLE,
    DrawingStyle,
    FeatureFilter,
    FeaturePredicate,
    StyleCallback,
    alternative_style,
    passes_filter,
    resolve_style,
)
from .transform import (
    DEFAULT_ROTATE_RADIANS,
    map_layer,
    offset_layer,
    reproject_layer,
    resolve_fit,
    rotate_and_scale,
    rotate_and_scale_layer,
    translate_layer,
)


MODE_SINGLE = "single"
MODE_PAGINATED = "paginated"
MODE_CROPPED = "cropped"

# Canvas sizes are compared against whole segments with this slack so that
# float noise from rotation does not spawn an empty trailing row or column.
_SIZE_EPSILON = 1e-6

_LOGGER = logging.getLogger("geojsonrender.layout")


@dataclass(slots=True)
class LayoutState:
    mode: str = MODE_SINGLE
    canvas_width: float = 0.0
    canvas_height: float = 0.0
    page_width: int = 0
    page_height: int = 0
    border: int = 0
    overlap: int = 0
    origin: tuple[float, float] = (0.0, 0.0)
    scale_factor: float = 1.0
    doublings: int = 0
    page_rotated: bool = False

    @property
    def multi_page(self) -> bool:
        return self.mode == MODE_PAGINATED

    @property
    def cropped(self) -> bool:
        return self.mode == MODE_CROPPED


@dataclass(frozen=True, slots=True)
class Segment:
    """One output tile.

    `envelope` is the capture window in canvas pixels (y up); its minimum
    corner is drawn at `offset` inside an image of `image_size`. `origin` is
    the tile's top-left corner on the canvas.
    """

    row: int
    column: int
    origin: tuple[float, float]
    envelope: Envelope
    image_size: tuple[int, int]
    offset: tuple[float, float] = (0.0, 0.0)
    cull: bool = True

    @property
    def label(self) -> str:
        return f"{row_label(self.row)}{self.column}"


def row_label(index: int) -> str:
    """Spreadsheet-style row letters: 0 -> A, 25 -> Z, 26 -> AA."""
    if index < 0:
        raise ValueError("Row index must be >= 0")
    letters = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def _segment_count(canvas_size: float, segment_size: float) -> int:
    return max(1, math.ceil(canvas_size / segment_size - _SIZE_EPSILON))


def _grid_shape(state: LayoutState) -> tuple[int, int, int, int, tuple[int, int]]:
    """Return (columns, rows, step_width, step_height, image_size) of a paginated canvas."""
    step_width = state.page_width - 2 * state.border - state.overlap
    step_height = state.page_height - 2 * state.border - state.overlap
    image_size = (state.page_width, state.page_height)
    if state.page_rotated:
        step_width, step_height = step_height, step_width
        image_size = (state.page_height, state.page_width)
    columns = _segment_count(state.canvas_width, step_width)
    rows = _segment_count(state.canvas_height, step_height)
    return (columns, rows, step_width, step_height, image_size)


def _as_envelope(viewport: Envelope | Sequence[float]) -> Envelope:
    if isinstance(viewport, Envelope):
        return viewport
    if len(viewport) != 4:
        raise ValueError("Viewport must be an Envelope or four bounds (min_x, min_y, max_x, max_y)")
    return Envelope(*(float(value) for value in viewport))


def draw_geometry(canvas: Canvas, geometry: Geometry | None, style: DrawingStyle) -> None:
    """Draw a geometry tree; fills apply to polygons only."""
    if geometry is None:
        return
    if isinstance(geometry, (Point, MultiPoint)):
        for position in iter_positions(geometry):
            canvas.draw_point((position.x, position.y), style)
    elif isinstance(geometry, LineString):
        if len(geometry.coordinates) >= 2:
            canvas.draw_polyline(to_pixels(geometry.coordinates), style)
    elif isinstance(geometry, MultiLineString):
        for part in geometry.coordinates:
            draw_geometry(canvas, part, style)
    elif isinstance(geometry, Polygon):
        canvas.draw_polygon([to_pixels(ring.coordinates) for ring in geometry.coordinates], style)
    elif isinstance(geometry, MultiPolygon):
        for part in geometry.coordinates:
            draw_geometry(canvas, part, style)
    elif isinstance(geometry, GeometryCollection):
        for part in geometry.geometries:
            draw_geometry(canvas, part, style)


class GeoJsonRenderer:
    """Renders layers of GeoJSON features to one or more raster images.

    Layers are drawn in insertion order. A layout operation (`fit_layers_to_page`,
    `paginate` or `crop_features`) rewrites the layers into canvas pixel space
    and selects the output mode; `save_image` or `to_stream` then rasterize the
    segments of that mode.
    """

    def __init__(
        self,
        default_style: DrawingStyle | None = None,
        optional_style: DrawingStyle | None = None,
        *,
        rotate_radians: float = DEFAULT_ROTATE_RADIANS,
        canvas_factory: CanvasFactory | None = None,
        container_key: str = DEFAULT_CONTAINER_KEY,
    ) -> None:
        self.default_style = default_style if default_style is not None else DEFAULT_STYLE
        self.optional_style = optional_style if optional_style is not None else OPTIONAL_STYLE
        self.rotate_radians = rotate_radians
        self.canvas_factory = canvas_factory if canvas_factory is not None else matplotlib_canvas_factory()
        self.container_key = container_key
        self.alternative_style_function: FeaturePredicate | None = None
        self.layers: list[Layer] = []
        self.state = LayoutState()

    # Input

    def load_geojson(self, json_text: str | Sequence[str]) -> None:
        """Decode one or more GeoJSON documents and append them as layers."""
        texts = [json_text] if isinstance(json_text, str) else list(json_text)
        self.layers.extend(load_layers(texts, container_key=self.container_key))

    def add_layer(self, layer: Layer) -> None:
        self.layers.append(layer)

    def extents(self) -> Envelope:
        return find_extents(self.layers)

    def reproject_layers(self, source_crs: str, target_crs: str) -> None:
        self.layers = [reproject_layer(layer, source_crs, target_crs) for layer in self.layers]
        _LOGGER.info("Reprojected %d layers from %s to %s", len(self.layers), source_crs, target_crs)

    # Layout

    def _fit_to_canvas(self, width: float, height: float, *, rotate: bool | None = None) -> float:
        """Rotate and scale all layers into a width x height box, then rebase at (0, 0).

        All layers share one extent so they stay registered to each other.
        """
        extents = self.extents()
        if extents.is_empty:
            _LOGGER.warning("No geometry to fit; layers left unchanged.")
            return 1.0
        scale_factor, theta = resolve_fit(
            extents,
            width,
            height,
            rotate_radians=self.rotate_radians,
            rotate=rotate,
        )
        self.layers = [
            rotate_and_scale_layer(
                layer,
                width,
                height,
                rotate_radians=self.rotate_radians,
                rotate=rotate,
                extents=extents,
            )
            for layer in self.layers
        ]
        fitted = self.extents()
        self.layers = [translate_layer(layer, fitted) for layer in self.layers]
        _LOGGER.info(
            "Fitted %d layers into %.1fx%.1f px: scale=%.6g rotate=%.4f rad",
            len(self.layers),
            width,
            height,
            scale_factor,
            theta,
        )
        return scale_factor

    def _trial_scale(self, extents: Envelope, width: float, height: float) -> float:
        scale_factor, _ = resolve_fit(extents, width, height, rotate_radians=self.rotate_radians)
        return scale_factor

    def fit_layers_to_page(self, width: int, height: int, border: int = 0) -> None:
        """Fit every layer onto a single page of `width` x `height` pixels."""
        if border < 0:
            raise ValueError("border must be >= 0")
        content_width = width - 2 * border
        content_height = height - 2 * border
        if content_width <= 0 or content_height <= 0:
            raise ValueError(f"Page {width}x{height} leaves no room inside a {border}px border")

        scale_factor = self._fit_to_canvas(content_width, content_height)
        self.state = LayoutState(
            mode=MODE_SINGLE,
            canvas_width=float(content_width),
            canvas_height=float(content_height),
            page_width=width,
            page_height=height,
            border=border,
            scale_factor=scale_factor,
        )

    def paginate(
        self,
        page_width: int,
        page_height: int,
        max_scale_threshold: float,
        min_scale_threshold: float = 0.0,
        border: int = 0,
        overlap: int = 0,
    ) -> None:
        """Spread the layers over as many pages as needed to reach a scale.

        Starting from one page, the canvas is repeatedly doubled by laying two
        pages side by side across its longer edge (which turns the page grid by
        90 degrees) until the fit scale reaches `max_scale_threshold`. A
        doubling is only adopted while its scale exceeds `min_scale_threshold`.

        Each doubling turns the page grid, so after an odd number of doublings
        the tiles are written at `page_height` x `page_width` (see
        `LayoutState.page_rotated`).
        """
        if border < 0 or overlap < 0:
            raise ValueError("border and overlap must be >= 0")
        if max_scale_threshold <= 0:
            raise ValueError("max_scale_threshold must be > 0")
        step_width = page_width - 2 * border - overlap
        step_height = page_height - 2 * border - overlap
        if step_width <= 0 or step_height <= 0:
            raise ValueError(
                f"Page {page_width}x{page_height} leaves no room for border={border} overlap={overlap}"
            )

        extents = self.extents()
        canvas_width = float(step_width)
        canvas_height = float(step_height)
        page_rotated = False
        doublings = 0
        scale_factor = self._trial_scale(extents, canvas_width, canvas_height)
        degenerate = extents.is_empty or (extents.width == 0 and extents.height == 0)
        if degenerate:
            _LOGGER.warning("Extents are degenerate; paginating onto a single page.")

        while not degenerate and scale_factor < max_scale_threshold:
            candidate_width = 2.0 * canvas_height
            candidate_height = canvas_width
            candidate_scale = self._trial_scale(extents, candidate_width, candidate_height)
            if candidate_scale <= min_scale_threshold:
                _LOGGER.info(
                    "Stopping pagination: next scale %.6g does not exceed min threshold %.6g",
                    candidate_scale,
                    min_scale_threshold,
                )
                break
            canvas_width = candidate_width
            canvas_height = candidate_height
            scale_factor = candidate_scale
            page_rotated = not page_rotated
            doublings += 1
            _LOGGER.debug(
                "Doubled canvas to %.1fx%.1f px (scale=%.6g, rotated=%s)",
                canvas_width,
                canvas_height,
                scale_factor,
                page_rotated,
            )

        scale_factor = self._fit_to_canvas(canvas_width, canvas_height)
        content = self.extents()
        if not content.is_empty:
            canvas_width = max(1.0, min(canvas_width, math.ceil(content.width - _SIZE_EPSILON)))
            canvas_height = max(1.0, min(canvas_height, math.ceil(content.height - _SIZE_EPSILON)))

        self.state = LayoutState(
            mode=MODE_PAGINATED,
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            page_width=page_width,
            page_height=page_height,
            border=border,
            overlap=overlap,
            scale_factor=scale_factor,
            doublings=doublings,
            page_rotated=page_rotated,
        )
        columns, rows, _, _, _ = _grid_shape(self.state)
        _LOGGER.info(
            "Paginated onto %d page(s) after %d doubling(s): canvas=%.1fx%.1f px, scale=%.6g",
            columns * rows,
            doublings,
            canvas_width,
            canvas_height,
            scale_factor,
        )

    def crop_features(
        self,
        viewport: Envelope | Sequence[float],
        output_width: int,
        output_height: int,
    ) -> None:
        """Render only `viewport` (in source coordinates) into one output image.

        Never rotates. The viewport is scaled to fit inside the output without
        overflowing either dimension.
        """
        view = _as_envelope(viewport)
        if view.is_empty or view.width <= 0 or view.height <= 0:
            raise ValueError("Viewport must have positive width and height")
        if output_width <= 0 or output_height <= 0:
            raise ValueError("Output size must be positive")

        scale_factor = min(output_width / view.width, output_height / view.height)
        extents = self.extents()
        origin = (0.0, 0.0)
        canvas_width = float(output_width)
        canvas_height = float(output_height)
        if extents.is_empty:
            _LOGGER.warning("No geometry to crop; output will be blank.")
        else:
            self.layers = [
                map_layer(layer, lambda geometry: rotate_and_scale(geometry, scale_factor, 0.0))
                for layer in self.layers
            ]
            fitted = self.extents()
            self.layers = [translate_layer(layer, fitted) for layer in self.layers]
            canvas_width = fitted.width
            canvas_height = fitted.height
            # The geometry corner now sits at (0, 0); move the viewport corner there instead.
            origin = (
                (view.min_x - fitted.min_x / scale_factor) * scale_factor,
                (view.min_y - fitted.min_y / scale_factor) * scale_factor,
            )

        self.state = LayoutState(
            mode=MODE_CROPPED,
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            page_width=output_width,
            page_height=output_height,
            origin=origin,
            scale_factor=scale_factor,
        )
        _LOGGER.info(
            "Cropped viewport %s into %dx%d px: scale=%.6g origin=(%.2f, %.2f)",
            view.as_tuple(),
            output_width,
            output_height,
            scale_factor,
            origin[0],
            origin[1],
        )

    # Segments

    def segments(self) -> Iterator[Segment]:
        """Yield output tiles for the current mode, left to right then top to bottom."""
        state = self.state
        if state.page_width <= 0 or state.page_height <= 0:
            raise ValueError("No layout yet; call fit_layers_to_page, paginate or crop_features first")
        if state.mode == MODE_CROPPED:
            ox, oy = state.origin
            yield Segment(
                row=0,
                column=0,
                origin=(ox, oy),
                envelope=Envelope(ox, oy, ox + state.page_width, oy + state.page_height),
                image_size=(state.page_width, state.page_height),
            )
            return

        if state.mode == MODE_SINGLE:
            yield Segment(
                row=0,
                column=0,
                origin=(0.0, 0.0),
                envelope=Envelope(0.0, 0.0, state.canvas_width, state.canvas_height),
                image_size=(state.page_width, state.page_height),
                offset=(float(state.border), float(state.border)),
                cull=False,
            )
            return

        columns, rows, step_width, step_height, image_size = _grid_shape(state)
        for row in range(rows):
            # Canvas y points up; row A is the top strip of the canvas.
            top = state.canvas_height - row * step_height
            bottom = max(top - step_height, 0.0)
            for column in range(columns):
                ox = float(column * step_width)
                width = min(step_width, state.canvas_width - ox)
                envelope = Envelope(
                    max(ox - state.overlap, 0.0),
                    bottom,
                    ox + width,
                    min(top + state.overlap, state.canvas_height),
                )
                yield Segment(
                    row=row,
                    column=column,
                    origin=(ox, top),
                    envelope=envelope,
                    image_size=image_size,
                    offset=(float(state.border), float(state.border)),
                )

    def segment_layers(self, segment: Segment) -> list[Layer]:
        """Clone the layers into the segment's pixel space and drop features outside it."""
        dx = segment.offset[0] - float(segment.envelope.min_x)
        dy = segment.offset[1] - float(segment.envelope.min_y)
        window = segment.envelope.offset(dx, dy)
        out: list[Layer] = []
        for layer in clone_layers(self.layers):
            moved = offset_layer(layer, dx, dy)
            if segment.cull:
                moved = moved.with_features(
                    feature for feature in moved.features if intersects(feature.geometry, window)
                )
            out.append(moved)
        return out

    # Rendering

    def _style_callback(self, style_callback: StyleCallback | None) -> StyleCallback | None:
        if style_callback is not None:
            return style_callback
        if self.alternative_style_function is not None:
            return alternative_style(self.alternative_style_function, self.optional_style)
        return None

    def render_segment(
        self,
        segment: Segment,
        *,
        style_callback: StyleCallback | None = None,
        feature_filter: FeatureFilter | None = None,
    ) -> Canvas:
        """Draw one segment and return its canvas; the caller closes it."""
        callback = self._style_callback(style_callback)
        canvas = self.canvas_factory(*segment.image_size)
        try:
            for layer in self.segment_layers(segment):
                for feature in layer.features:
                    if feature.geometry is None:
                        continue
                    if not passes_filter(feature, feature_filter):
                        continue
                    decision = resolve_style(feature, self.default_style, layer.properties, callback)
                    if decision.skip:
                        continue
                    draw_geometry(canvas, feature.geometry, decision.style)
        except BaseException:
            canvas.close()
            raise
        return canvas

    def output_paths(self, path_format: str | Path) -> list[tuple[Segment, Path]]:
        """Resolve one output path per segment.

        `path_format` takes the segment label through one `{}` slot; it may be
        a plain path only when a single segment is produced.
        """
        fmt = str(path_format)
        segments = list(self.segments())
        has_slot = "{" in fmt
        if len(segments) > 1 and not has_slot:
            raise ValueError(f"Output path needs a '{{}}' slot for {len(segments)} segments: {fmt}")
        out: list[tuple[Segment, Path]] = []
        for segment in segments:
            path = Path(fmt.format(segment.label)) if has_slot else Path(fmt)
            out.append((segment, path))
        return out

    def save_image(
        self,
        path_format: str | Path,
        *,
        style_callback: StyleCallback | None = None,
        feature_filter: FeatureFilter | None = None,
    ) -> list[Path]:
        """Render every segment to its own file and return the written paths."""
        targets = self.output_paths(path_format)
        for _, path in targets:
            if not path.parent.exists():
                raise FileNotFoundError(f"Output directory not found: {path.parent}")

        written: list[Path] = []
        for segment, path in targets:
            canvas = self.render_segment(
                segment,
                style_callback=style_callback,
                feature_filter=feature_filter,
            )
            try:
                canvas.save(path)
            finally:
                canvas.close()
            written.append(path)
            _LOGGER.debug("Wrote segment %s to %s", segment.label, path)
        _LOGGER.info("Rendered %d image(s)", len(written))
        return written

    def to_stream(
        self,
        *,
        segment_index: int = 0,
        style_callback: StyleCallback | None = None,
        feature_filter: FeatureFilter | None = None,
    ) -> io.BytesIO:
        """Render one segment into an in-memory encoded image."""
        segments = list(self.segments())
        if not 0 <= segment_index < len(segments):
            raise IndexError(f"Segment index {segment_index} out of range (0..{len(segments) - 1})")
        canvas = self.render_segment(
            segments[segment_index],
            style_callback=style_callback,
            feature_filter=feature_filter,
        )
        try:
            stream = io.BytesIO(canvas.to_bytes())
        finally:
            canvas.close()
        return stream

    def to_image(self, **kwargs: Any) -> Any:
        """Render one segment and decode it into a Pillow image."""
        return open_image(self.to_stream(**kwargs).getvalue())
