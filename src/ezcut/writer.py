from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

from .document import Group, validate_groups
from .entity import (
    Arc,
    Circle,
    Ellipse,
    Entity,
    EntityKey,
    Line,
    Polyline,
    Spline,
    unsupported,
)

logger = logging.getLogger(__name__)

DXF_VERSION = "AC1015"
INSUNITS_MM = 4
DEFAULT_ACI = 7
DEFAULT_LAYER = "0"

# ACI 7 prints black on a light background, white on a dark one.
ACI_PALETTE: dict[int, tuple[int, int, int]] = {
    1: (255, 0, 0),
    2: (255, 255, 0),
    3: (0, 255, 0),
    4: (0, 255, 255),
    5: (0, 0, 255),
    6: (255, 0, 255),
    7: (0, 0, 0),
    8: (128, 128, 128),
    9: (192, 192, 192),
    30: (255, 127, 0),
    190: (127, 0, 255),
}
_ACI_ALIASES: dict[tuple[int, int, int], int] = {(255, 255, 255): 7}
_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

Tags = list[tuple[int, str]]


def _f(value: float) -> str:
    return f"{float(value):.12g}"


def _to_rgb(color: str) -> tuple[int, int, int] | None:
    match = _HEX_COLOR.match(color.strip())
    if match is None:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    value = int(digits, 16)
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


def hex_to_aci(color: str) -> int:
    """Map ``#RRGGBB`` (or ``#RGB``) to the closest palette index.

    Unparsable colors fall back to ``DEFAULT_ACI``.
    """
    rgb = _to_rgb(color) if isinstance(color, str) else None
    if rgb is None:
        logger.debug("unmapped color %r, using ACI %d", color, DEFAULT_ACI)
        return DEFAULT_ACI
    if rgb in _ACI_ALIASES:
        return _ACI_ALIASES[rgb]

    def distance(item: tuple[int, tuple[int, int, int]]) -> int:
        r, g, b = item[1]
        return (r - rgb[0]) ** 2 + (g - rgb[1]) ** 2 + (b - rgb[2]) ** 2

    return min(ACI_PALETTE.items(), key=distance)[0]


def _point_tags(x_code: int, point: tuple[float, float]) -> Tags:
    return [(x_code, _f(point[0])), (x_code + 10, _f(point[1])), (x_code + 20, "0.0")]


def _entity_tags(entity: Entity) -> Tags:
    if isinstance(entity, Line):
        return _point_tags(10, entity.start) + _point_tags(11, entity.end)
    if isinstance(entity, Circle):
        return _point_tags(10, entity.center) + [(40, _f(entity.radius))]
    if isinstance(entity, Arc):
        return _point_tags(10, entity.center) + [
            (40, _f(entity.radius)),
            (50, _f(entity.start_angle)),
            (51, _f(entity.end_angle)),
        ]
    if isinstance(entity, Ellipse):
        return (
            _point_tags(10, entity.center)
            + _point_tags(11, entity.major_axis)
            + [
                (40, _f(entity.ratio)),
                (41, _f(entity.start_param)),
                (42, _f(entity.end_param)),
            ]
        )
    if isinstance(entity, Polyline):
        tags: Tags = [(90, str(len(entity.vertices))), (70, "1" if entity.closed else "0")]
        for vertex in entity.vertices:
            tags += [(10, _f(vertex.x)), (20, _f(vertex.y))]
            if vertex.bulge:
                tags.append((42, _f(vertex.bulge)))
        return tags
    if isinstance(entity, Spline):
        tags = [
            (70, "8"),
            (71, str(entity.degree)),
            (72, str(len(entity.knots))),
            (73, str(len(entity.control_points))),
            (74, str(len(entity.fit_points))),
        ]
        tags += [(40, _f(knot)) for knot in entity.knots]
        for point in entity.control_points:
            tags += _point_tags(10, point)
        for point in entity.fit_points:
            tags += _point_tags(11, point)
        return tags
    unsupported(entity)


def write(groups: Iterable[Group], colors: Mapping[EntityKey, str] | None = None) -> str:
    """Serialize a composite of groups as DXF text.

    Each group's offset is added to its entities' coordinates on the way out;
    entities themselves are left untouched. Overridden colors are written as
    ACI values, everything else stays BYLAYER.
    """
    groups = validate_groups(groups)
    colors = colors or {}

    tags: Tags = [
        (0, "SECTION"),
        (2, "HEADER"),
        (9, "$ACADVER"),
        (1, DXF_VERSION),
        (9, "$INSUNITS"),
        (70, str(INSUNITS_MM)),
        (0, "ENDSEC"),
        (0, "SECTION"),
        (2, "ENTITIES"),
    ]
    count = 0
    for group in groups:
        ox, oy = group.offset
        for index, entity in enumerate(group.entities):
            placed = entity.moved(ox, oy)
            tags += [(0, placed.dxftype), (8, DEFAULT_LAYER)]
            color = colors.get(EntityKey(group.id, index))
            if color:
                tags.append((62, str(hex_to_aci(color))))
            tags += _entity_tags(placed)
            count += 1
    tags += [(0, "ENDSEC"), (0, "EOF")]

    logger.debug("wrote %d entities from %d groups", count, len(groups))
    return "".join(f"{code}\n{value}\n" for code, value in tags)
