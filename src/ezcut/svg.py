from __future__ import annotations

import logging
from typing import Iterable, Mapping
from xml.sax.saxutils import quoteattr

from .bounds import FALLBACK_BOUNDS, composite_bounds
from .curves import SPLINE_SEGMENTS, ArcSpan, arc_span, bulge_to_arc, ellipse_span, spline_points
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
    Vertex,
    is_finite,
    unsupported,
)

logger = logging.getLogger(__name__)

PADDING_RATIO = 0.02
DEFAULT_STROKE = "#000000"
DEFAULT_STROKE_WIDTH = 0.5
SVG_NAMESPACE = "http://www.w3.org/2000/svg"


def _num(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def _arc_command(span: ArcSpan) -> str:
    return (
        f"A {_num(span.rx)} {_num(span.ry)} {_num(span.rotation)} "
        f"{span.large_arc} {span.sweep} {_num(span.end[0])} {_num(span.end[1])}"
    )


def _segment(a: Vertex, b: Vertex) -> str:
    arc = bulge_to_arc((a.x, a.y), (b.x, b.y), a.bulge)
    if arc is None:
        return f"L {_num(b.x)} {_num(b.y)}"
    radius = _num(arc.radius)
    return f"A {radius} {radius} 0 {arc.large_arc} {arc.sweep} {_num(b.x)} {_num(b.y)}"


def _polyline_path(polyline: Polyline) -> str | None:
    vertices = polyline.vertices
    if len(vertices) < 2:
        return None
    first = vertices[0]
    parts = [f"M {_num(first.x)} {_num(first.y)}"]
    for a, b in zip(vertices, vertices[1:]):
        parts.append(_segment(a, b))
    if polyline.closed:
        last = vertices[-1]
        if bulge_to_arc((last.x, last.y), (first.x, first.y), last.bulge) is None:
            parts.append("Z")
        else:
            parts.append(_segment(last, first))
    return " ".join(parts)


def _element(entity: Entity, segments: int) -> str | None:
    """Tag name plus geometry attributes for one entity, in drawing coordinates."""
    if isinstance(entity, Line):
        (x1, y1), (x2, y2) = entity.start, entity.end
        return f'line x1="{_num(x1)}" y1="{_num(y1)}" x2="{_num(x2)}" y2="{_num(y2)}"'
    if isinstance(entity, Circle):
        cx, cy = entity.center
        return f'circle cx="{_num(cx)}" cy="{_num(cy)}" r="{_num(entity.radius)}"'
    if isinstance(entity, Arc):
        span = arc_span(entity)
        if span.full:
            return _element(Circle(entity.center, entity.radius), segments)
        return f'path d="M {_num(span.start[0])} {_num(span.start[1])} {_arc_command(span)}"'
    if isinstance(entity, Ellipse):
        span = ellipse_span(entity)
        if span.full:
            cx, cy = (_num(v) for v in entity.center)
            return (
                f'ellipse cx="{cx}" cy="{cy}" rx="{_num(span.rx)}" ry="{_num(span.ry)}" '
                f'transform="rotate({_num(span.rotation)} {cx} {cy})"'
            )
        return f'path d="M {_num(span.start[0])} {_num(span.start[1])} {_arc_command(span)}"'
    if isinstance(entity, Polyline):
        d = _polyline_path(entity)
        return None if d is None else f'path d="{d}"'
    if isinstance(entity, Spline):
        points = spline_points(entity, segments)
        if len(points) < 2:
            return None
        d = " ".join(
            f"{'M' if i == 0 else 'L'} {_num(x)} {_num(y)}" for i, (x, y) in enumerate(points)
        )
        return f'path d="{d}"'
    unsupported(entity)


def render(
    groups: Iterable[Group],
    colors: Mapping[EntityKey, str] | None = None,
    scale: float = 1.0,
    export: bool = True,
    *,
    stroke: str = DEFAULT_STROKE,
    stroke_width: float = DEFAULT_STROKE_WIDTH,
    spline_segments: int = SPLINE_SEGMENTS,
) -> str:
    """Render a composite of groups into an SVG document.

    ``export=True`` produces a standalone file with an XML declaration and no
    identifiers; ``export=False`` is the preview flavour, where every
    primitive carries ``data-group`` and ``data-index`` for hit-testing.
    The drawing is flipped once at the top (CAD Y-up to SVG Y-down) and each
    group is placed with a translate wrapper, so entity coordinates are
    written exactly as parsed.
    """
    groups = validate_groups(groups)
    colors = colors or {}
    preview = not export

    bounds = composite_bounds(groups)
    if bounds.width <= 0 and bounds.height <= 0:
        # A single point has no extent; frame it with a fallback-sized box.
        bounds = FALLBACK_BOUNDS.translated(
            bounds.min_x - (FALLBACK_BOUNDS.min_x + FALLBACK_BOUNDS.max_x) / 2.0,
            bounds.min_y - (FALLBACK_BOUNDS.min_y + FALLBACK_BOUNDS.max_y) / 2.0,
        )
    pad = max(bounds.width, bounds.height) * PADDING_RATIO
    view_w = bounds.width + 2.0 * pad
    view_h = bounds.height + 2.0 * pad

    out: list[str] = []
    if export:
        out.append('<?xml version="1.0" encoding="UTF-8"?>')
    out.append(
        f'<svg xmlns="{SVG_NAMESPACE}" '
        f'viewBox="{_num(bounds.min_x - pad)} {_num(-(bounds.max_y + pad))} {_num(view_w)} {_num(view_h)}" '
        f'width="{_num(view_w * scale)}mm" height="{_num(view_h * scale)}mm">'
    )
    out.append(
        f'  <g transform="scale(1, -1)" stroke={quoteattr(stroke)} '
        f'stroke-width="{_num(stroke_width)}" fill="none">'
    )

    wrap = len(groups) > 1 or any(group.offset != (0.0, 0.0) for group in groups)
    hidden = 0
    for group in groups:
        indent = "    "
        group_attr = f" data-group={quoteattr(group.id)}" if preview else ""
        if wrap:
            ox, oy = group.offset
            out.append(f'    <g transform="translate({_num(ox)}, {_num(oy)})"{group_attr}>')
            indent = "      "
        for index, entity in enumerate(group.entities):
            if not is_finite(entity):
                hidden += 1
                continue
            element = _element(entity, spline_segments)
            if element is None:
                continue
            extra = ""
            color = colors.get(EntityKey(group.id, index))
            if color:
                extra += f" stroke={quoteattr(color)}"
            if preview:
                extra += f'{group_attr} data-index="{index}"'
            out.append(f"{indent}<{element}{extra}/>")
        if wrap:
            out.append("    </g>")
    out.append("  </g>")
    out.append("</svg>")

    if hidden:
        logger.debug("omitted %d entities with non-finite coordinates", hidden)
    return "\n".join(out) + "\n"
