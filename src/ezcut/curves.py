from __future__ import annotations

import math
from typing import NamedTuple, Sequence

from .entity import Arc, Ellipse, Point2D, Spline, Vertex

SPLINE_SEGMENTS = 20
_EPS = 1.0e-12


class BulgeArc(NamedTuple):
    radius: float
    large_arc: int
    sweep: int


class ArcSpan(NamedTuple):
    start: Point2D
    end: Point2D
    rx: float
    ry: float
    rotation: float
    large_arc: int
    sweep: int
    full: bool


def bulge_to_arc(start: Point2D, end: Point2D, bulge: float) -> BulgeArc | None:
    """Arc parameters for a bulged polyline segment, or None for a straight one.

    The sagitta is ``|bulge| * chord / 2``; a magnitude above 1 means the arc
    covers more than a semicircle, a positive bulge runs counter-clockwise.
    """
    if not bulge:
        return None
    chord = math.hypot(end[0] - start[0], end[1] - start[1])
    sagitta = abs(bulge) * chord / 2.0
    if chord <= _EPS or sagitta <= _EPS:
        return None
    radius = (chord * chord / 4.0 + sagitta * sagitta) / (2.0 * sagitta)
    return BulgeArc(
        radius=radius,
        large_arc=1 if abs(bulge) > 1.0 else 0,
        sweep=1 if bulge > 0 else 0,
    )


def arc_span(arc: Arc) -> ArcSpan:
    cx, cy = arc.center
    r = arc.radius
    start = math.radians(arc.start_angle)
    end = math.radians(arc.end_angle)
    sweep_deg = (arc.end_angle - arc.start_angle) % 360.0
    full = sweep_deg < 1.0e-9 or 360.0 - sweep_deg < 1.0e-9
    return ArcSpan(
        start=(cx + r * math.cos(start), cy + r * math.sin(start)),
        end=(cx + r * math.cos(end), cy + r * math.sin(end)),
        rx=r,
        ry=r,
        rotation=0.0,
        large_arc=1 if sweep_deg > 180.0 else 0,
        sweep=1,
        full=full,
    )


def ellipse_axes(ellipse: Ellipse) -> tuple[float, float, float]:
    """Semi-major length, semi-minor length and rotation in degrees."""
    mx, my = ellipse.major_axis
    rx = math.hypot(mx, my)
    return rx, rx * ellipse.ratio, math.degrees(math.atan2(my, mx))


def ellipse_point(ellipse: Ellipse, param: float) -> Point2D:
    cx, cy = ellipse.center
    mx, my = ellipse.major_axis
    nx, ny = -my * ellipse.ratio, mx * ellipse.ratio
    c = math.cos(param)
    s = math.sin(param)
    return (cx + mx * c + nx * s, cy + my * c + ny * s)


def ellipse_half_extents(ellipse: Ellipse) -> tuple[float, float]:
    rx, ry, rotation = ellipse_axes(ellipse)
    theta = math.radians(rotation)
    c = math.cos(theta)
    s = math.sin(theta)
    return (math.hypot(rx * c, ry * s), math.hypot(rx * s, ry * c))


def ellipse_span(ellipse: Ellipse) -> ArcSpan:
    rx, ry, rotation = ellipse_axes(ellipse)
    sweep = (ellipse.end_param - ellipse.start_param) % (2.0 * math.pi)
    return ArcSpan(
        start=ellipse_point(ellipse, ellipse.start_param),
        end=ellipse_point(ellipse, ellipse.end_param),
        rx=rx,
        ry=ry,
        rotation=rotation,
        large_arc=1 if sweep > math.pi else 0,
        sweep=1,
        full=ellipse.is_full,
    )


def interpolate_spline(points: Sequence[Point2D], segments: int = SPLINE_SEGMENTS) -> list[Point2D]:
    """Catmull-Rom polyline through ``points``, ``segments`` samples per span.

    Neighbours are clamped at both ends by repeating the first/last point.
    Knot vectors are not consulted.
    """
    if len(points) < 2:
        return list(points)
    segments = max(1, int(segments))
    last = len(points) - 1
    out: list[Point2D] = []
    for i in range(last):
        p0 = points[max(0, i - 1)]
        p1 = points[i]
        p2 = points[i + 1]
        p3 = points[min(last, i + 2)]
        for step in range(segments):
            t = step / segments
            t2 = t * t
            t3 = t2 * t
            out.append(
                (
                    _catmull_rom(p0[0], p1[0], p2[0], p3[0], t, t2, t3),
                    _catmull_rom(p0[1], p1[1], p2[1], p3[1], t, t2, t3),
                )
            )
    out.append((float(points[last][0]), float(points[last][1])))
    return out


def _catmull_rom(a: float, b: float, c: float, d: float, t: float, t2: float, t3: float) -> float:
    return 0.5 * (
        2.0 * b
        + (-a + c) * t
        + (2.0 * a - 5.0 * b + 4.0 * c - d) * t2
        + (-a + 3.0 * b - 3.0 * c + d) * t3
    )


def spline_points(spline: Spline, segments: int = SPLINE_SEGMENTS) -> list[Point2D]:
    return interpolate_spline(spline.points(), segments)


def reversed_vertices(vertices: Sequence[Vertex], closed: bool) -> tuple[Vertex, ...]:
    """Same polyline walked backwards; each segment keeps its arc by negating its bulge."""
    n = len(vertices)
    out: list[Vertex] = []
    for j in range(n):
        source = vertices[n - 1 - j]
        if j < n - 1 or closed:
            bulge = -vertices[(n - 2 - j) % n].bulge
        else:
            bulge = 0.0
        out.append(Vertex(source.x, source.y, bulge))
    return tuple(out)
