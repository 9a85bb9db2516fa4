from __future__ import annotations

import math

import pytest

import ezcut
from ezcut.bounds import FALLBACK_BOUNDS, Bounds, bounds_of, composite_bounds
from ezcut.entity import Arc, Circle, Ellipse, Line, Polyline, Spline, Vertex


def test_line_and_circle_bounds() -> None:
    entities = [Line((0.0, 0.0), (100.0, 50.0)), Circle((50.0, 25.0), 10.0)]
    assert bounds_of(entities) == Bounds(0.0, 0.0, 100.0, 50.0)


def test_circle_extends_bounds() -> None:
    assert bounds_of([Circle((50.0, 25.0), 10.0)]) == Bounds(40.0, 15.0, 60.0, 35.0)


def test_empty_input_falls_back() -> None:
    assert bounds_of([]) == FALLBACK_BOUNDS
    assert composite_bounds([]) == Bounds(0.0, 0.0, 100.0, 100.0)


def test_non_finite_points_are_ignored() -> None:
    entities = [Line((math.nan, 0.0), (5.0, 5.0)), Circle((0.0, 0.0), math.inf)]
    assert bounds_of(entities) == Bounds(5.0, 5.0, 5.0, 5.0)
    assert bounds_of([Circle((0.0, 0.0), math.nan)]) == FALLBACK_BOUNDS


def test_arc_uses_full_circle_box() -> None:
    assert bounds_of([Arc((0.0, 0.0), 2.0, 0.0, 90.0)]) == Bounds(-2.0, -2.0, 2.0, 2.0)


def test_rotated_ellipse_bounds() -> None:
    box = bounds_of([Ellipse((0.0, 0.0), (0.0, 4.0), 0.5)])
    assert box.min_x == pytest.approx(-2.0)
    assert box.max_x == pytest.approx(2.0)
    assert box.min_y == pytest.approx(-4.0)
    assert box.max_y == pytest.approx(4.0)


def test_polyline_and_spline_use_their_points() -> None:
    polyline = Polyline((Vertex(1.0, 2.0), Vertex(3.0, -1.0)))
    spline = Spline(((0.0, 0.0), (10.0, 7.0)))
    assert bounds_of([polyline]) == Bounds(1.0, -1.0, 3.0, 2.0)
    assert bounds_of([spline]) == Bounds(0.0, 0.0, 10.0, 7.0)


def test_adding_entities_never_shrinks_bounds() -> None:
    entities = [Line((0.0, 0.0), (10.0, 10.0))]
    extra = [
        Circle((5.0, 5.0), 1.0),
        Circle((20.0, 5.0), 3.0),
        Arc((-5.0, 0.0), 2.0, 10.0, 20.0),
        Line((math.nan, 1.0), (2.0, 2.0)),
        Polyline((Vertex(4.0, 4.0),)),
    ]
    previous = bounds_of(entities)
    for entity in extra:
        entities.append(entity)
        current = bounds_of(entities)
        assert current.min_x <= previous.min_x
        assert current.min_y <= previous.min_y
        assert current.max_x >= previous.max_x
        assert current.max_y >= previous.max_y
        previous = current


def test_composite_bounds_apply_group_offsets() -> None:
    a = ezcut.Group("a", [Line((0.0, 0.0), (10.0, 10.0))])
    b = ezcut.Group("b", [Circle((0.0, 0.0), 5.0)], offset=(100.0, 20.0))

    assert composite_bounds([a, b]) == Bounds(0.0, 0.0, 105.0, 25.0)
    assert b.bounds() == Bounds(95.0, 15.0, 105.0, 25.0)
    assert ezcut.Composite((a, b)).bounds() == Bounds(0.0, 0.0, 105.0, 25.0)

