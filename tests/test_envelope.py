from __future__ import annotations

import math

import pytest
from hypothesis import given, strategies as st
from shapely.geometry import LineString as ShapelyLineString

from geojsonrender.envelope import Envelope, find_extents
from geojsonrender.geometry import GeometryCollection, LineString, Point, Position, line, polygon
from geojsonrender.layers import Feature, Layer

coord = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)
points = st.lists(st.tuples(coord, coord), min_size=2, max_size=20)


@given(points)
def test_extents_min_never_exceeds_max(coords):
    extents = find_extents(line(*coords))
    assert extents.min_x <= extents.max_x
    assert extents.min_y <= extents.max_y


@given(points)
def test_extents_match_shapely_bounds(coords):
    extents = find_extents(line(*coords))
    assert extents.as_tuple() == pytest.approx(ShapelyLineString(coords).bounds)


def test_empty_envelope_is_not_zero_envelope():
    assert Envelope.empty().is_empty
    zero = Envelope(0.0, 0.0, 0.0, 0.0)
    assert not zero.is_empty
    assert Envelope.empty().union(zero) == zero
    assert zero.union(Envelope.empty()) == zero


def test_expand_from_empty_uses_first_coordinate():
    env = Envelope.empty().expand(5.0, -3.0)
    assert env.as_tuple() == (5.0, -3.0, 5.0, -3.0)


def test_find_extents_over_layers_and_collections():
    layers = [
        Layer.from_features([Feature(geometry=Point(Position(-1.0, 2.0)))]),
        Layer.from_features(
            [
                Feature(geometry=None),
                Feature(
                    geometry=GeometryCollection(
                        (line((0.0, 0.0), (3.0, 4.0)), polygon([(10.0, -5.0), (11.0, -5.0), (10.0, -4.0)]))
                    )
                ),
            ]
        ),
    ]
    assert find_extents(layers).as_tuple() == (-1.0, -5.0, 11.0, 4.0)


def test_cached_bbox_takes_precedence():
    geometry = LineString((Position(0.0, 0.0), Position(1.0, 1.0)), bbox=(-10.0, -10.0, 10.0, 10.0))
    assert find_extents(geometry).as_tuple() == (-10.0, -10.0, 10.0, 10.0)


def test_three_dimensional_bbox_ignores_altitude():
    env = Envelope.from_bbox((1.0, 2.0, 100.0, 3.0, 4.0, 200.0))
    assert env.as_tuple() == (1.0, 2.0, 3.0, 4.0)


def test_from_bbox_rejects_other_lengths():
    with pytest.raises(ValueError):
        Envelope.from_bbox((1.0, 2.0, 3.0))


def test_features_without_geometry_contribute_nothing():
    assert find_extents(Layer.from_features([Feature(geometry=None)])).is_empty


def test_aspect_ratio_degenerate_heights():
    assert Envelope(0.0, 0.0, 4.0, 2.0).aspect_ratio == 2.0
    assert Envelope(0.0, 1.0, 4.0, 1.0).aspect_ratio == math.inf
    assert math.isnan(Envelope(1.0, 1.0, 1.0, 1.0).aspect_ratio)


def test_contains_is_strict():
    env = Envelope(0.0, 0.0, 10.0, 10.0)
    assert env.contains(5.0, 5.0)
    assert not env.contains(0.0, 5.0)
    assert not env.contains(10.0, 10.0)


def test_as_tuple_of_empty_raises():
    with pytest.raises(ValueError):
        Envelope.empty().as_tuple()
