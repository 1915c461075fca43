"""Drawing styles and the per-feature style hook."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .layers import Feature


_LOGGER = logging.getLogger("geojsonrender.style")


@dataclass(frozen=True, slots=True)
class LineStyle:
    """Stroke applied to points, lines and polygon outlines. Width is in pixels."""

    color: str = "green"
    width: float = 2.0


@dataclass(frozen=True, slots=True)
class FillStyle:
    """Interior fill, used for polygons only."""

    color: str = "red"


@dataclass(frozen=True, slots=True)
class DrawingStyle:
    line: LineStyle = LineStyle()
    fill: FillStyle | None = None


DEFAULT_STYLE = DrawingStyle(line=LineStyle(color="green", width=2.0), fill=None)
OPTIONAL_STYLE = DrawingStyle(line=LineStyle(color="maroon", width=2.0), fill=FillStyle(color="red"))


@dataclass(frozen=True, slots=True)
class StyleDecision:
    style: DrawingStyle
    skip: bool = False


StyleCallback = Callable[[Feature, DrawingStyle, Mapping[str, Any]], StyleDecision]
FeatureFilter = Callable[[Feature], bool]
FeaturePredicate = Callable[[Feature], bool]


def alternative_style(
    predicate: FeaturePredicate,
    optional_style: DrawingStyle = OPTIONAL_STYLE,
) -> StyleCallback:
    """Build a callback that picks `optional_style` wherever `predicate` holds."""

    def _callback(
        feature: Feature,
        style: DrawingStyle,
        layer_properties: Mapping[str, Any],
    ) -> StyleDecision:
        if predicate(feature):
            return StyleDecision(optional_style)
        return StyleDecision(style)

    return _callback


def resolve_style(
    feature: Feature,
    default_style: DrawingStyle,
    layer_properties: Mapping[str, Any],
    callback: StyleCallback | None,
) -> StyleDecision:
    """Run the style hook for one feature. Exceptions from the hook propagate."""
    if callback is None:
        return StyleDecision(default_style)
    decision = callback(feature, default_style, layer_properties)
    if decision is None:
        return StyleDecision(default_style)
    return decision


def passes_filter(feature: Feature, feature_filter: FeatureFilter | None) -> bool:
    """Apply an optional feature filter; a failing filter counts as no filter."""
    if feature_filter is None:
        return True
    try:
        return bool(feature_filter(feature))
    except Exception as exc:
        _LOGGER.warning("Feature filter failed for feature %r; drawing it unfiltered: %s", feature.id, exc)
        return True
