from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import ClassVar, Iterator, NamedTuple, NoReturn, Union

Point2D = tuple[float, float]


def _shift(point: Point2D, dx: float, dy: float) -> Point2D:
    return (point[0] + dx, point[1] + dy)


@dataclass(frozen=True)
class Line:
    dxftype: ClassVar[str] = "LINE"

    start: Point2D
    end: Point2D

    def moved(self, dx: float, dy: float) -> "Line":
        return Line(_shift(self.start, dx, dy), _shift(self.end, dx, dy))


@dataclass(frozen=True)
class Circle:
    dxftype: ClassVar[str] = "CIRCLE"

    center: Point2D
    radius: float

    def moved(self, dx: float, dy: float) -> "Circle":
        return replace(self, center=_shift(self.center, dx, dy))


@dataclass(frozen=True)
class Arc:
    """Circular arc, counter-clockwise from ``start_angle`` to ``end_angle`` in degrees."""

    dxftype: ClassVar[str] = "ARC"

    center: Point2D
    radius: float
    start_angle: float
    end_angle: float

    def moved(self, dx: float, dy: float) -> "Arc":
        return replace(self, center=_shift(self.center, dx, dy))


@dataclass(frozen=True)
class Ellipse:
    """Ellipse or elliptical arc.

    ``major_axis`` is the vector from the center to the end of the major axis,
    ``ratio`` is minor/major, and the parameters are in radians. A full
    ellipse has both parameters at 0 or a span within 0.01 rad of a turn.
    """

    dxftype: ClassVar[str] = "ELLIPSE"

    center: Point2D
    major_axis: Point2D
    ratio: float = 1.0
    start_param: float = 0.0
    end_param: float = 2.0 * math.pi

    @property
    def is_full(self) -> bool:
        if self.start_param == 0.0 and self.end_param == 0.0:
            return True
        return abs(self.end_param - self.start_param - 2.0 * math.pi) < 0.01

    def moved(self, dx: float, dy: float) -> "Ellipse":
        return replace(self, center=_shift(self.center, dx, dy))


@dataclass(frozen=True)
class Vertex:
    x: float
    y: float
    bulge: float = 0.0


@dataclass(frozen=True)
class Polyline:
    """LWPOLYLINE or heavy POLYLINE; ``bulge`` of a vertex describes the segment to the next one."""

    dxftype: ClassVar[str] = "LWPOLYLINE"

    vertices: tuple[Vertex, ...]
    closed: bool = False

    def points(self) -> list[Point2D]:
        return [(v.x, v.y) for v in self.vertices]

    def moved(self, dx: float, dy: float) -> "Polyline":
        return replace(
            self,
            vertices=tuple(Vertex(v.x + dx, v.y + dy, v.bulge) for v in self.vertices),
        )


@dataclass(frozen=True)
class Spline:
    dxftype: ClassVar[str] = "SPLINE"

    control_points: tuple[Point2D, ...]
    degree: int = 3
    knots: tuple[float, ...] = ()
    fit_points: tuple[Point2D, ...] = ()

    def points(self) -> list[Point2D]:
        if self.control_points:
            return list(self.control_points)
        return list(self.fit_points)

    @property
    def has_valid_knots(self) -> bool:
        return len(self.knots) == len(self.control_points) + self.degree + 1

    def moved(self, dx: float, dy: float) -> "Spline":
        return replace(
            self,
            control_points=tuple(_shift(p, dx, dy) for p in self.control_points),
            fit_points=tuple(_shift(p, dx, dy) for p in self.fit_points),
        )


Entity = Union[Line, Circle, Arc, Ellipse, Polyline, Spline]
ENTITY_CLASSES: tuple[type, ...] = (Line, Circle, Arc, Ellipse, Polyline, Spline)


class EntityKey(NamedTuple):
    group_id: str
    index: int

    def __str__(self) -> str:
        return f"{self.group_id}:{self.index}"

    @classmethod
    def parse(cls, text: str) -> "EntityKey":
        group_id, sep, index = text.rpartition(":")
        if not sep or not group_id:
            raise ValueError(f"invalid entity key: {text!r} (expected GROUP:INDEX)")
        return cls(group_id, int(index))


def unsupported(entity: object) -> NoReturn:
    raise TypeError(f"unsupported entity: {entity!r}")


def _numbers(value: object) -> Iterator[float]:
    if isinstance(value, bool):
        return
    if isinstance(value, (int, float)):
        yield float(value)
    elif isinstance(value, tuple):
        for item in value:
            yield from _numbers(item)
    elif isinstance(value, Vertex):
        yield value.x
        yield value.y
        yield value.bulge


def is_finite(entity: Entity) -> bool:
    """True when every numeric field of ``entity`` is finite."""
    if not isinstance(entity, ENTITY_CLASSES):
        unsupported(entity)
    for field in fields(entity):
        for number in _numbers(getattr(entity, field.name)):
            if not math.isfinite(number):
                return False
    return True
