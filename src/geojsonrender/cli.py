"""CLI entrypoint for the GeoJSON raster renderer."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .render import MODE_CROP, MODE_FIT, MODE_PAGINATE, RenderRequest, format_render_lines, run_render
from .util import setup_logging

LOGGER = logging.getLogger("geojsonrender.cli")


def _highlight(value: str) -> tuple[str, str]:
    key, sep, expected = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {value!r}")
    return (key.strip(), expected)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geojsonrender",
        description="Render GeoJSON layers to raster images.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("inputs", nargs="+", type=Path, help="GeoJSON layer files, drawn in order.")
        p.add_argument("--config", default=None, help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
        p.add_argument(
            "--output",
            "-o",
            required=True,
            help="Output image path. Multi-page output needs a '{}' slot for the page label.",
        )
        p.add_argument("--width", type=int, required=True, help="Page width in pixels.")
        p.add_argument("--height", type=int, required=True, help="Page height in pixels.")
        p.add_argument(
            "--highlight",
            type=_highlight,
            default=None,
            metavar="KEY=VALUE",
            help="Draw features whose property KEY equals VALUE with the optional style.",
        )
        p.add_argument(
            "--dump-geojson",
            type=Path,
            default=None,
            help="Write the transformed layers as GeoJSON to this path.",
        )

    fit_p = subparsers.add_parser(MODE_FIT, help="Fit all layers onto a single page.")
    add_common(fit_p)

    paginate_p = subparsers.add_parser(MODE_PAGINATE, help="Spread the layers over several pages.")
    add_common(paginate_p)
    paginate_p.add_argument(
        "--max-scale",
        type=float,
        default=None,
        help="Keep doubling pages until the scale reaches this value.",
    )
    paginate_p.add_argument(
        "--min-scale",
        type=float,
        default=None,
        help="Only adopt a doubling whose scale exceeds this value.",
    )

    crop_p = subparsers.add_parser(MODE_CROP, help="Render one viewport in source coordinates.")
    add_common(crop_p)
    crop_p.add_argument(
        "--viewport",
        type=float,
        nargs=4,
        required=True,
        metavar=("MIN_X", "MIN_Y", "MAX_X", "MAX_Y"),
        help="Viewport bounds in source coordinates.",
    )

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.log_file, verbose=args.verbose)
    return cfg


def _request_from_args(args: argparse.Namespace) -> RenderRequest:
    viewport = getattr(args, "viewport", None)
    return RenderRequest(
        inputs=tuple(args.inputs),
        output=str(args.output),
        mode=str(args.command),
        width=int(args.width),
        height=int(args.height),
        viewport=tuple(viewport) if viewport is not None else None,
        max_scale_threshold=getattr(args, "max_scale", None),
        min_scale_threshold=getattr(args, "min_scale", None),
        highlight=args.highlight,
        dump_geojson=args.dump_geojson,
    )


def _run_render(cfg: AppConfig, req: RenderRequest) -> int:
    report = run_render(cfg, req)
    for line in format_render_lines(report):
        LOGGER.info(line)
    if not report.ok:
        LOGGER.error("Rendering aborted due to errors.")
        return 1
    for path in report.output_paths:
        LOGGER.info("Wrote %s", path)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    try:
        cfg = _load_and_setup(args)
    except (FileNotFoundError, ValueError) as exc:
        setup_logging(None, verbose=args.verbose)
        LOGGER.error("Invalid config: %s", exc)
        return 1
    command = str(args.command)
    if command in (MODE_FIT, MODE_PAGINATE, MODE_CROP):
        return _run_render(cfg, _request_from_args(args))
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
