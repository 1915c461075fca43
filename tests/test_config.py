from __future__ import annotations

import math
from pathlib import Path

import pytest

from geojsonrender.config import AppConfig, load_config
from geojsonrender.style import DEFAULT_STYLE, OPTIONAL_STYLE


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg == AppConfig.default()
    assert cfg.style.default.to_drawing_style() == DEFAULT_STYLE
    assert cfg.style.optional.to_drawing_style() == OPTIONAL_STYLE
    assert cfg.layout.rotate_radians == pytest.approx(3 * math.pi / 2)
    assert cfg.projection is None
    assert cfg.input.container_key == "GeoJson"


def test_empty_file_uses_defaults(tmp_path: Path):
    cfg = load_config(_write(tmp_path, ""))
    assert cfg.image.dpi == 100
    assert cfg.layout.border == 0


def test_full_config(tmp_path: Path):
    cfg = load_config(
        _write(
            tmp_path,
            """
image:
  dpi: 200
  background: transparent
  format: PNG
style:
  default:
    line_color: black
    line_width: 1.5
  optional:
    fill_color: yellow
layout:
  rotate_degrees: 90
  border: 5
  overlap: 20
  max_scale_threshold: 0.5
  min_scale_threshold: 0.01
projection:
  target_crs: EPSG:3857
input:
  container_key: Shapes
log_file: logs/render.log
""",
        )
    )
    assert cfg.image.dpi == 200
    assert cfg.image.background == "transparent"
    assert cfg.image.format == "png"
    default = cfg.style.default.to_drawing_style()
    assert default.line.color == "black"
    assert default.line.width == 1.5
    assert default.fill is None
    optional = cfg.style.optional.to_drawing_style()
    assert optional.line.color == "maroon"
    assert optional.fill.color == "yellow"
    assert cfg.layout.rotate_radians == pytest.approx(math.pi / 2)
    assert cfg.layout.overlap == 20
    assert cfg.layout.max_scale_threshold == 0.5
    assert cfg.projection.source_crs == "EPSG:4326"
    assert cfg.projection.target_crs == "EPSG:3857"
    assert cfg.input.container_key == "Shapes"
    assert cfg.log_file == tmp_path.resolve() / "logs" / "render.log"


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "image:\n  dpi: 0\n",
        "image:\n  dpi: true\n",
        "layout:\n  border: -1\n",
        "layout:\n  max_scale_threshold: 0\n",
        "style:\n  default:\n    line_width: wide\n",
        "projection:\n  source_crs: EPSG:4326\n",
        "image: 3\n",
    ],
)
def test_invalid_values_raise(tmp_path: Path, text: str):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, text))
