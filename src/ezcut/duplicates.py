from __future__ import annotations

import logging
from typing import Iterable, NamedTuple, Sequence

from .curves import arc_span, ellipse_span, reversed_vertices
from .document import Group
from .entity import (
    Arc,
    Circle,
    Ellipse,
    Entity,
    EntityKey,
    Line,
    Point2D,
    Polyline,
    Spline,
    Vertex,
    unsupported,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1.0e-6


class Placed(NamedTuple):
    """An entity together with the offset of the group it belongs to."""

    entity: Entity
    offset: Point2D = (0.0, 0.0)

    def absolute(self) -> Entity:
        return self.entity.moved(self.offset[0], self.offset[1])


def _close(a: float, b: float, tol: float) -> bool:
    return abs(a - b) <= tol


def _same_point(p: Point2D, q: Point2D, tol: float) -> bool:
    return _close(p[0], q[0], tol) and _close(p[1], q[1], tol)


def _same_points(ps: Sequence[Point2D], qs: Sequence[Point2D], tol: float) -> bool:
    return len(ps) == len(qs) and all(_same_point(p, q, tol) for p, q in zip(ps, qs))


def _same_angle(a: float, b: float, tol: float) -> bool:
    diff = (a - b) % 360.0
    return min(diff, 360.0 - diff) <= tol


def _same_vertices(vs: Sequence[Vertex], ws: Sequence[Vertex], closed: bool, tol: float) -> bool:
    if len(vs) != len(ws):
        return False
    last = len(vs) - 1
    for i, (v, w) in enumerate(zip(vs, ws)):
        if not (_close(v.x, w.x, tol) and _close(v.y, w.y, tol)):
            return False
        # The final bulge of an open polyline describes no segment.
        if (closed or i < last) and not _close(v.bulge, w.bulge, tol):
            return False
    return True


def _placed(value: Placed | tuple) -> Placed:
    if isinstance(value, Placed):
        return value
    return Placed(*value)


def are_duplicate(
    a: Placed | tuple,
    b: Placed | tuple,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """Whether two placed entities describe the same geometry.

    Comparison is on absolute (offset-applied) coordinates. Lines and
    polylines also match when walked in the opposite direction; arcs do not.
    """
    ea = _placed(a).absolute()
    eb = _placed(b).absolute()
    if type(ea) is not type(eb):
        return False
    tol = tolerance

    if isinstance(ea, Line):
        return (_same_point(ea.start, eb.start, tol) and _same_point(ea.end, eb.end, tol)) or (
            _same_point(ea.start, eb.end, tol) and _same_point(ea.end, eb.start, tol)
        )
    if isinstance(ea, Circle):
        return _same_point(ea.center, eb.center, tol) and _close(ea.radius, eb.radius, tol)
    if isinstance(ea, Arc):
        return (
            _same_point(ea.center, eb.center, tol)
            and _close(ea.radius, eb.radius, tol)
            and _same_angle(ea.start_angle, eb.start_angle, tol)
            and _same_angle(ea.end_angle, eb.end_angle, tol)
        )
    if isinstance(ea, Ellipse):
        return (
            _same_point(ea.center, eb.center, tol)
            and _same_point(ea.major_axis, eb.major_axis, tol)
            and _close(ea.ratio, eb.ratio, tol)
            and _close(ea.start_param, eb.start_param, tol)
            and _close(ea.end_param, eb.end_param, tol)
        )
    if isinstance(ea, Polyline):
        if ea.closed != eb.closed:
            return False
        if _same_vertices(ea.vertices, eb.vertices, ea.closed, tol):
            return True
        return _same_vertices(ea.vertices, reversed_vertices(eb.vertices, eb.closed), ea.closed, tol)
    if isinstance(ea, Spline):
        if ea.degree != eb.degree:
            return False
        pa = ea.points()
        pb = eb.points()
        return _same_points(pa, pb, tol) or _same_points(pa, pb[::-1], tol)
    unsupported(ea)


def endpoints_of(entity: Entity, offset: Point2D = (0.0, 0.0)) -> list[Point2D]:
    """Loose ends of an open curve; closed shapes have none."""
    ox, oy = offset
    if isinstance(entity, Line):
        points = [entity.start, entity.end]
    elif isinstance(entity, Circle):
        points = []
    elif isinstance(entity, (Arc, Ellipse)):
        span = arc_span(entity) if isinstance(entity, Arc) else ellipse_span(entity)
        points = [] if span.full else [span.start, span.end]
    elif isinstance(entity, Polyline):
        points = [] if entity.closed else entity.points()
        if len(points) > 2:
            points = [points[0], points[-1]]
    elif isinstance(entity, Spline):
        points = entity.points()
        if len(points) > 2:
            points = [points[0], points[-1]]
    else:
        unsupported(entity)
    return [(x + ox, y + oy) for x, y in points]


def find_duplicates(
    groups: Iterable[Group],
    *,
    tolerance: float = DEFAULT_TOLERANCE,
) -> list[tuple[EntityKey, EntityKey]]:
    """Pairs of ``(kept, duplicate)`` keys across a composite; the earliest entity is kept."""
    kept: dict[type, list[tuple[EntityKey, Placed]]] = {}
    out: list[tuple[EntityKey, EntityKey]] = []
    for group in groups:
        for key, entity in group.items():
            placed = Placed(entity, group.offset)
            candidates = kept.setdefault(type(entity), [])
            match = next(
                (
                    kept_key
                    for kept_key, other in candidates
                    if are_duplicate(other, placed, tolerance=tolerance)
                ),
                None,
            )
            if match is None:
                candidates.append((key, placed))
            else:
                out.append((match, key))
    if out:
        logger.debug("found %d duplicate entities", len(out))
    return out
