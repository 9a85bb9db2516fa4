from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator

from .curves import ellipse_half_extents
from .entity import Arc, Circle, Ellipse, Entity, Line, Point2D, Polyline, Spline, unsupported

if TYPE_CHECKING:
    from .document import Group


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def translated(self, dx: float, dy: float) -> "Bounds":
        return Bounds(self.min_x + dx, self.min_y + dy, self.max_x + dx, self.max_y + dy)


FALLBACK_BOUNDS = Bounds(0.0, 0.0, 100.0, 100.0)


def extent_points(entity: Entity) -> list[Point2D]:
    """Points whose box encloses ``entity`` (arcs use the full circle)."""
    if isinstance(entity, Line):
        return [entity.start, entity.end]
    if isinstance(entity, (Circle, Arc)):
        cx, cy = entity.center
        r = entity.radius
        return [(cx - r, cy - r), (cx + r, cy + r)]
    if isinstance(entity, Ellipse):
        cx, cy = entity.center
        hx, hy = ellipse_half_extents(entity)
        return [(cx - hx, cy - hy), (cx + hx, cy + hy)]
    if isinstance(entity, Polyline):
        return entity.points()
    if isinstance(entity, Spline):
        return entity.points()
    unsupported(entity)


def _fold(points: Iterable[Point2D]) -> Bounds | None:
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for x, y in points:
        if not (math.isfinite(x) and math.isfinite(y)):
            continue
        min_x = min(min_x, x)
        min_y = min(min_y, y)
        max_x = max(max_x, x)
        max_y = max(max_y, y)
    if not math.isfinite(min_x):
        return None
    return Bounds(min_x, min_y, max_x, max_y)


def _placed_points(entities: Iterable[Entity], offset: Point2D) -> Iterator[Point2D]:
    ox, oy = offset
    for entity in entities:
        for x, y in extent_points(entity):
            yield (x + ox, y + oy)


def bounds_of(entities: Iterable[Entity], offset: Point2D = (0.0, 0.0)) -> Bounds:
    """Box around ``entities`` shifted by ``offset``; non-finite points are ignored."""
    return _fold(_placed_points(entities, offset)) or FALLBACK_BOUNDS


def group_bounds(group: "Group") -> Bounds:
    return bounds_of(group.entities, group.offset)


def composite_bounds(groups: Iterable["Group"]) -> Bounds:
    def points() -> Iterator[Point2D]:
        for group in groups:
            yield from _placed_points(group.entities, group.offset)

    return _fold(points()) or FALLBACK_BOUNDS
