from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, Sequence

from .bounds import Bounds, composite_bounds, group_bounds
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
)

logger = logging.getLogger(__name__)

SUPPORTED_ENTITY_TYPES = (
    "LINE",
    "CIRCLE",
    "ARC",
    "ELLIPSE",
    "LWPOLYLINE",
    "POLYLINE",
    "SPLINE",
)

# Group codes consumed per entity type; anything else in the stream is ignored.
_ENTITY_CODES: dict[str, tuple[int, ...]] = {
    "LINE": (10, 20, 11, 21),
    "CIRCLE": (10, 20, 40),
    "ARC": (10, 20, 40, 50, 51),
    "ELLIPSE": (10, 20, 11, 21, 40, 41, 42),
    "LWPOLYLINE": (10, 20, 42, 70),
    "POLYLINE": (70,),
    "VERTEX": (10, 20, 42, 70),
    "SPLINE": (10, 20, 11, 21, 40, 70, 71),
}
_SECTION_TERMINATORS = {"ENDSEC", "EOF"}
_VERTEX_SPLINE_FRAME = 16

ColorOverrides = Mapping[EntityKey, str]


@dataclass
class _Record:
    dxftype: str
    codes: dict[int, list[str]]
    pairs: list[tuple[int, str]]

    def number(self, code: int, default: float = 0.0) -> float:
        values = self.codes.get(code) or []
        return _to_float(values[0] if values else None, default)

    def numbers(self, code: int) -> list[float]:
        return [_to_float(value, 0.0) for value in self.codes.get(code) or []]

    def integer(self, code: int, default: int = 0) -> int:
        values = self.codes.get(code) or []
        if not values:
            return default
        try:
            return int(float(values[0]))
        except (ValueError, OverflowError):
            logger.debug("%s: malformed integer for group code %d: %r", self.dxftype, code, values[0])
            return default


def _to_float(raw: str | None, default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.debug("malformed numeric value: %r", raw)
        return math.nan


def _pairs(text: str) -> list[tuple[int, str]]:
    lines = text.splitlines()
    out: list[tuple[int, str]] = []
    for i in range(0, len(lines) - 1, 2):
        code = lines[i].strip()
        value = lines[i + 1].strip()
        try:
            out.append((int(code), value))
        except ValueError:
            continue
    return out


def _entities_start(pairs: Sequence[tuple[int, str]]) -> int | None:
    expect_section_name = False
    for i, (code, value) in enumerate(pairs):
        if code == 0:
            expect_section_name = value == "SECTION"
            continue
        if expect_section_name and code == 2:
            if value == "ENTITIES":
                return i + 1
            expect_section_name = False
    return None


def _collect(pairs: Sequence[tuple[int, str]], start: int) -> tuple[_Record, int]:
    dxftype = pairs[start][1]
    codes: dict[int, list[str]] = {code: [] for code in _ENTITY_CODES.get(dxftype, ())}
    ordered: list[tuple[int, str]] = []
    i = start + 1
    while i < len(pairs) and pairs[i][0] != 0:
        code, value = pairs[i]
        if code in codes:
            codes[code].append(value)
            ordered.append((code, value))
        i += 1
    return _Record(dxftype, codes, ordered), i


def _collect_vertices(pairs: Sequence[tuple[int, str]], start: int) -> tuple[list[_Record], int]:
    vertices: list[_Record] = []
    i = start
    while i < len(pairs) and pairs[i] == (0, "VERTEX"):
        record, i = _collect(pairs, i)
        vertices.append(record)
    if i < len(pairs) and pairs[i] == (0, "SEQEND"):
        _, i = _collect(pairs, i)
    return vertices, i


def _point(record: _Record, x_code: int, y_code: int, default: Point2D = (0.0, 0.0)) -> Point2D:
    return (record.number(x_code, default[0]), record.number(y_code, default[1]))


def _points(record: _Record, x_code: int, y_code: int) -> tuple[Point2D, ...]:
    xs = record.numbers(x_code)
    ys = record.numbers(y_code)
    return tuple((x, ys[i] if i < len(ys) else 0.0) for i, x in enumerate(xs))


def _build_line(record: _Record) -> Line:
    return Line(_point(record, 10, 20), _point(record, 11, 21))


def _build_circle(record: _Record) -> Circle:
    return Circle(_point(record, 10, 20), record.number(40))


def _build_arc(record: _Record) -> Arc:
    return Arc(
        _point(record, 10, 20),
        record.number(40),
        record.number(50),
        record.number(51),
    )


def _build_ellipse(record: _Record) -> Ellipse:
    return Ellipse(
        center=_point(record, 10, 20),
        major_axis=_point(record, 11, 21, (1.0, 0.0)),
        ratio=record.number(40, 1.0),
        start_param=record.number(41, 0.0),
        end_param=record.number(42, 2.0 * math.pi),
    )


def _build_lwpolyline(record: _Record) -> Polyline:
    vertices: list[Vertex] = []
    pending: list[float] | None = None
    for code, value in record.pairs:
        if code == 10:
            if pending is not None:
                vertices.append(Vertex(*pending))
            pending = [_to_float(value, 0.0), 0.0, 0.0]
        elif pending is None:
            continue
        elif code == 20:
            pending[1] = _to_float(value, 0.0)
        elif code == 42:
            pending[2] = _to_float(value, 0.0)
    if pending is not None:
        vertices.append(Vertex(*pending))
    return Polyline(tuple(vertices), closed=bool(record.integer(70) & 1))


def _build_polyline(record: _Record, vertex_records: Sequence[_Record]) -> Polyline:
    vertices = tuple(
        Vertex(v.number(10), v.number(20), v.number(42))
        for v in vertex_records
        if not v.integer(70) & _VERTEX_SPLINE_FRAME
    )
    return Polyline(vertices, closed=bool(record.integer(70) & 1))


def _build_spline(record: _Record) -> Spline:
    return Spline(
        control_points=_points(record, 10, 20),
        degree=record.integer(71, 3),
        knots=tuple(record.numbers(40)),
        fit_points=_points(record, 11, 21),
    )


_BUILDERS: dict[str, Callable[[_Record], Entity]] = {
    "LINE": _build_line,
    "CIRCLE": _build_circle,
    "ARC": _build_arc,
    "ELLIPSE": _build_ellipse,
    "LWPOLYLINE": _build_lwpolyline,
    "SPLINE": _build_spline,
}


def parse(text: str) -> list[Entity]:
    """Parse DXF text into entities, in file order.

    Only the ENTITIES section is read. Unsupported entity types are skipped,
    a missing section yields an empty list, and malformed numbers become NaN.
    """
    pairs = _pairs(text)
    i = _entities_start(pairs)
    if i is None:
        logger.debug("no ENTITIES section found")
        return []

    entities: list[Entity] = []
    skipped: dict[str, int] = {}
    while i < len(pairs):
        code, value = pairs[i]
        if code != 0:
            i += 1
            continue
        if value in _SECTION_TERMINATORS:
            break
        record, i = _collect(pairs, i)
        if value not in SUPPORTED_ENTITY_TYPES:
            skipped[value] = skipped.get(value, 0) + 1
            continue
        if value == "POLYLINE":
            vertex_records, i = _collect_vertices(pairs, i)
            entities.append(_build_polyline(record, vertex_records))
            continue
        entities.append(_BUILDERS[value](record))

    for dxftype, count in sorted(skipped.items()):
        logger.debug("skipped %d unsupported %s entities", count, dxftype)
    return entities


def read(path: str | Path, group_id: str | None = None) -> "Group":
    file_path = Path(path)
    entities = parse(file_path.read_text(encoding="utf-8", errors="replace"))
    logger.info("read %d entities from %s", len(entities), file_path)
    return Group(
        id=group_id if group_id is not None else file_path.stem,
        entities=tuple(entities),
        filename=file_path.name,
    )


@dataclass(frozen=True)
class Group:
    id: str
    entities: tuple[Entity, ...] = ()
    filename: str = ""
    offset: Point2D = (0.0, 0.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entities", tuple(self.entities))
        object.__setattr__(self, "offset", (float(self.offset[0]), float(self.offset[1])))

    def moved_to(self, ox: float, oy: float) -> "Group":
        return replace(self, offset=(ox, oy))

    def bounds(self) -> Bounds:
        return group_bounds(self)

    def items(self) -> Iterator[tuple[EntityKey, Entity]]:
        for index, entity in enumerate(self.entities):
            yield EntityKey(self.id, index), entity


def validate_groups(groups: Iterable[Group]) -> tuple[Group, ...]:
    out = tuple(groups)
    seen: set[str] = set()
    for group in out:
        if not isinstance(group, Group):
            raise TypeError(f"expected Group, got {type(group).__name__}")
        if group.id in seen:
            raise ValueError(f"duplicate group id: {group.id!r}")
        seen.add(group.id)
    return out


@dataclass(frozen=True)
class Composite:
    groups: tuple[Group, ...]
    colors: ColorOverrides = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "groups", validate_groups(self.groups))
        object.__setattr__(self, "colors", MappingProxyType(dict(self.colors)))

    def bounds(self) -> Bounds:
        return composite_bounds(self.groups)

    def to_svg(self, **kwargs) -> str:
        from .svg import render

        return render(self.groups, self.colors, **kwargs)

    def to_dxf(self) -> str:
        from .writer import write

        return write(self.groups, self.colors)

    def find_duplicates(self, **kwargs):
        from .duplicates import find_duplicates

        return find_duplicates(self.groups, **kwargs)

    def packed(self, target: Bounds, margin: float = 0.0) -> "Composite":
        from .packing import pack_groups

        return replace(self, groups=tuple(pack_groups(self.groups, target, margin)))
