"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .geojson_io import DEFAULT_CONTAINER_KEY
from .style import DEFAULT_STYLE, OPTIONAL_STYLE, DrawingStyle, FillStyle, LineStyle


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class ImageConfig:
    dpi: int = 100
    background: str = "white"
    format: str = "png"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ImageConfig:
        dpi = _int(raw.get("dpi", 100), "image.dpi")
        if dpi <= 0:
            raise ValueError("image.dpi must be > 0")
        return cls(
            dpi=dpi,
            background=_str(raw.get("background", "white"), "image.background"),
            format=_str(raw.get("format", "png"), "image.format").casefold(),
        )


@dataclass(frozen=True, slots=True)
class StyleEntryConfig:
    line_color: str
    line_width: float
    fill_color: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], field_name: str, fallback: DrawingStyle) -> StyleEntryConfig:
        line_width = _float(raw.get("line_width", fallback.line.width), f"{field_name}.line_width")
        if line_width <= 0:
            raise ValueError(f"{field_name}.line_width must be > 0")
        fill_raw = raw.get("fill_color", fallback.fill.color if fallback.fill is not None else None)
        return cls(
            line_color=_str(raw.get("line_color", fallback.line.color), f"{field_name}.line_color"),
            line_width=line_width,
            fill_color=None if fill_raw is None else _str(fill_raw, f"{field_name}.fill_color"),
        )

    @classmethod
    def from_style(cls, style: DrawingStyle) -> StyleEntryConfig:
        return cls(
            line_color=style.line.color,
            line_width=style.line.width,
            fill_color=style.fill.color if style.fill is not None else None,
        )

    def to_drawing_style(self) -> DrawingStyle:
        fill = FillStyle(color=self.fill_color) if self.fill_color is not None else None
        return DrawingStyle(line=LineStyle(color=self.line_color, width=self.line_width), fill=fill)


@dataclass(frozen=True, slots=True)
class StyleConfig:
    default: StyleEntryConfig
    optional: StyleEntryConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StyleConfig:
        return cls(
            default=StyleEntryConfig.from_mapping(
                _optional_mapping(raw.get("default"), "style.default"), "style.default", DEFAULT_STYLE
            ),
            optional=StyleEntryConfig.from_mapping(
                _optional_mapping(raw.get("optional"), "style.optional"), "style.optional", OPTIONAL_STYLE
            ),
        )

    @classmethod
    def default_config(cls) -> StyleConfig:
        return cls(
            default=StyleEntryConfig.from_style(DEFAULT_STYLE),
            optional=StyleEntryConfig.from_style(OPTIONAL_STYLE),
        )


@dataclass(frozen=True, slots=True)
class LayoutConfig:
    rotate_degrees: float = 270.0
    border: int = 0
    overlap: int = 0
    max_scale_threshold: float = 1.0
    min_scale_threshold: float = 0.0

    @property
    def rotate_radians(self) -> float:
        return math.radians(self.rotate_degrees)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> LayoutConfig:
        border = _int(raw.get("border", 0), "layout.border")
        overlap = _int(raw.get("overlap", 0), "layout.overlap")
        max_scale = _float(raw.get("max_scale_threshold", 1.0), "layout.max_scale_threshold")
        min_scale = _float(raw.get("min_scale_threshold", 0.0), "layout.min_scale_threshold")
        if border < 0:
            raise ValueError("layout.border must be >= 0")
        if overlap < 0:
            raise ValueError("layout.overlap must be >= 0")
        if max_scale <= 0:
            raise ValueError("layout.max_scale_threshold must be > 0")
        if min_scale < 0:
            raise ValueError("layout.min_scale_threshold must be >= 0")
        return cls(
            rotate_degrees=_float(raw.get("rotate_degrees", 270.0), "layout.rotate_degrees"),
            border=border,
            overlap=overlap,
            max_scale_threshold=max_scale,
            min_scale_threshold=min_scale,
        )


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    source_crs: str
    target_crs: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        return cls(
            source_crs=_str(raw.get("source_crs", "EPSG:4326"), "projection.source_crs"),
            target_crs=_str(raw.get("target_crs"), "projection.target_crs"),
        )


@dataclass(frozen=True, slots=True)
class InputConfig:
    container_key: str = DEFAULT_CONTAINER_KEY

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> InputConfig:
        return cls(
            container_key=_str(raw.get("container_key", DEFAULT_CONTAINER_KEY), "input.container_key"),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path | None
    image: ImageConfig
    style: StyleConfig
    layout: LayoutConfig
    projection: ProjectionConfig | None
    input: InputConfig
    log_file: Path | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path | None) -> AppConfig:
        root_dir = source_path.parent.resolve() if source_path is not None else Path.cwd()
        projection_raw = raw.get("projection")
        log_file_raw = raw.get("log_file")
        return cls(
            source_path=source_path.resolve() if source_path is not None else None,
            image=ImageConfig.from_mapping(_optional_mapping(raw.get("image"), "image")),
            style=StyleConfig.from_mapping(_optional_mapping(raw.get("style"), "style")),
            layout=LayoutConfig.from_mapping(_optional_mapping(raw.get("layout"), "layout")),
            projection=(
                None
                if projection_raw is None
                else ProjectionConfig.from_mapping(_mapping(projection_raw, "projection"))
            ),
            input=InputConfig.from_mapping(_optional_mapping(raw.get("input"), "input")),
            log_file=(
                None if log_file_raw is None else _path_from_cfg(log_file_raw, "log_file", root_dir)
            ),
        )

    @classmethod
    def default(cls) -> AppConfig:
        return cls(
            source_path=None,
            image=ImageConfig(),
            style=StyleConfig.default_config(),
            layout=LayoutConfig(),
            projection=None,
            input=InputConfig(),
        )


def load_config(path: str | Path | None) -> AppConfig:
    """Load and validate the YAML config file into typed settings.

    `None` yields the built-in defaults.
    """
    if path is None:
        return AppConfig.default()
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
