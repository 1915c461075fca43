"""Config-driven render pipeline used by the CLI."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .backend import matplotlib_canvas_factory
from .config import AppConfig
from .geojson_io import layer_to_mapping, load_layer_file
from .layers import Feature
from .layout import GeoJsonRenderer
from .util import write_json


MODE_FIT = "fit"
MODE_PAGINATE = "paginate"
MODE_CROP = "crop"

_LOGGER = logging.getLogger("geojsonrender.render")


@dataclass(frozen=True, slots=True)
class RenderRequest:
    inputs: tuple[Path, ...]
    output: str
    mode: str
    width: int
    height: int
    viewport: tuple[float, float, float, float] | None = None
    max_scale_threshold: float | None = None
    min_scale_threshold: float | None = None
    highlight: tuple[str, str] | None = None
    dump_geojson: Path | None = None


@dataclass(slots=True)
class RenderReport:
    output_paths: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def build_renderer(cfg: AppConfig) -> GeoJsonRenderer:
    return GeoJsonRenderer(
        default_style=cfg.style.default.to_drawing_style(),
        optional_style=cfg.style.optional.to_drawing_style(),
        rotate_radians=cfg.layout.rotate_radians,
        canvas_factory=matplotlib_canvas_factory(
            background=cfg.image.background,
            dpi=cfg.image.dpi,
            image_format=cfg.image.format,
        ),
        container_key=cfg.input.container_key,
    )


def property_equals(key: str, value: str):
    """Feature predicate matching a property rendered as text."""

    def _predicate(feature: Feature) -> bool:
        if key not in feature.properties:
            return False
        return str(feature.properties[key]) == value

    return _predicate


def _apply_layout(renderer: GeoJsonRenderer, cfg: AppConfig, req: RenderRequest) -> None:
    if req.mode == MODE_FIT:
        renderer.fit_layers_to_page(req.width, req.height, border=cfg.layout.border)
    elif req.mode == MODE_PAGINATE:
        renderer.paginate(
            req.width,
            req.height,
            req.max_scale_threshold
            if req.max_scale_threshold is not None
            else cfg.layout.max_scale_threshold,
            req.min_scale_threshold
            if req.min_scale_threshold is not None
            else cfg.layout.min_scale_threshold,
            border=cfg.layout.border,
            overlap=cfg.layout.overlap,
        )
    elif req.mode == MODE_CROP:
        if req.viewport is None:
            raise ValueError("crop mode requires a viewport")
        renderer.crop_features(req.viewport, req.width, req.height)
    else:
        raise ValueError(f"Unknown render mode: {req.mode}")


def run_render(cfg: AppConfig, req: RenderRequest) -> RenderReport:
    """Load the inputs, lay them out and write one image per segment."""
    report = RenderReport()
    t0 = time.perf_counter()
    if not req.inputs:
        report.add_error("No input GeoJSON files given.")
        return report

    try:
        renderer = build_renderer(cfg)
    except Exception as exc:
        report.add_error(f"Failed initializing renderer: {exc}")
        return report

    feature_count = 0
    for path in req.inputs:
        try:
            layer = load_layer_file(path, container_key=cfg.input.container_key)
        except (FileNotFoundError, ValueError) as exc:
            report.add_error(str(exc))
            continue
        renderer.add_layer(layer)
        feature_count += len(layer)
        missing = sum(1 for feature in layer.features if feature.geometry is None)
        if missing:
            report.add_warning(f"{path}: {missing} feature(s) without usable geometry will be skipped")
        report.add_info(f"Loaded {len(layer)} feature(s) from {path}")
    if not report.ok:
        return report

    if cfg.projection is not None:
        try:
            renderer.reproject_layers(cfg.projection.source_crs, cfg.projection.target_crs)
        except Exception as exc:
            report.add_error(f"Reprojection failed: {exc}")
            return report

    try:
        _apply_layout(renderer, cfg, req)
    except ValueError as exc:
        report.add_error(f"Layout failed: {exc}")
        return report

    state = renderer.state
    report.add_info(
        f"Layout mode={state.mode} canvas={state.canvas_width:.1f}x{state.canvas_height:.1f}px "
        f"scale={state.scale_factor:.6g} page_rotated={state.page_rotated}"
    )

    if req.dump_geojson is not None:
        write_json(
            req.dump_geojson,
            [layer_to_mapping(layer, container_key=cfg.input.container_key) for layer in renderer.layers],
        )
        report.add_info(f"Transformed layers written to {req.dump_geojson}")

    if req.highlight is not None:
        renderer.alternative_style_function = property_equals(*req.highlight)

    try:
        report.output_paths = renderer.save_image(req.output)
    except (FileNotFoundError, ValueError) as exc:
        report.add_error(f"Render failed: {exc}")
        return report

    elapsed = time.perf_counter() - t0
    _LOGGER.info("[render] %d image(s) in %.2fs", len(report.output_paths), elapsed)
    report.summary = {
        "layers": len(renderer.layers),
        "features": feature_count,
        "images": len(report.output_paths),
    }
    report.add_info(
        "Render summary: "
        f"layers={len(renderer.layers)}, features={feature_count}, images={len(report.output_paths)}"
    )
    return report


def format_render_lines(report: RenderReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Rendering completed with no errors.")
    return lines
