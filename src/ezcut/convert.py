from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from .bounds import Bounds
from .document import Group, read, validate_groups
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
    is_finite,
)
from .packing import pack_groups
from .svg import DEFAULT_STROKE_WIDTH, render
from .writer import hex_to_aci, write

logger = logging.getLogger(__name__)

BACKENDS = ("native", "ezdxf")

Source = str | Path | Group


@dataclass(frozen=True)
class ConvertResult:
    source_paths: tuple[str, ...]
    output_path: str
    total_entities: int
    written_entities: int
    skipped_entities: int
    skipped_by_type: dict[str, int]


def load_groups(sources: Source | Iterable[Source]) -> list[Group]:
    """Read every path as a group with id ``g<n>``; ready-made groups pass through."""
    if isinstance(sources, (str, Path, Group)):
        sources = [sources]
    groups: list[Group] = []
    for i, source in enumerate(sources):
        if isinstance(source, Group):
            groups.append(source)
        else:
            groups.append(read(source, group_id=f"g{i}"))
    return list(validate_groups(groups))


def _prepare(
    sources: Source | Iterable[Source],
    pack_into: Bounds | None,
    margin: float,
) -> list[Group]:
    groups = load_groups(sources)
    if pack_into is not None:
        groups = pack_groups(groups, pack_into, margin)
    return groups


def _source_paths(groups: Iterable[Group]) -> tuple[str, ...]:
    return tuple(group.filename or group.id for group in groups)


def _write_text(output_path: str | Path, text: str) -> Path:
    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8")
    return out_path


def to_svg(
    sources: Source | Iterable[Source],
    output_path: str | Path,
    *,
    colors: Mapping[EntityKey, str] | None = None,
    scale: float = 1.0,
    preview: bool = False,
    stroke_width: float = DEFAULT_STROKE_WIDTH,
    pack_into: Bounds | None = None,
    margin: float = 0.0,
) -> ConvertResult:
    groups = _prepare(sources, pack_into, margin)
    text = render(groups, colors, scale, export=not preview, stroke_width=stroke_width)
    out_path = _write_text(output_path, text)

    total = 0
    skipped_by_type: dict[str, int] = {}
    for group in groups:
        for entity in group.entities:
            total += 1
            if not is_finite(entity):
                skipped_by_type[entity.dxftype] = skipped_by_type.get(entity.dxftype, 0) + 1
    skipped = sum(skipped_by_type.values())
    logger.info("wrote %s (%d of %d entities)", out_path, total - skipped, total)
    return ConvertResult(
        source_paths=_source_paths(groups),
        output_path=str(out_path),
        total_entities=total,
        written_entities=total - skipped,
        skipped_entities=skipped,
        skipped_by_type=dict(sorted(skipped_by_type.items())),
    )


def to_dxf(
    sources: Source | Iterable[Source],
    output_path: str | Path,
    *,
    colors: Mapping[EntityKey, str] | None = None,
    backend: str = "native",
    dxf_version: str = "R2010",
    strict: bool = False,
    pack_into: Bounds | None = None,
    margin: float = 0.0,
) -> ConvertResult:
    if backend not in BACKENDS:
        raise ValueError(f"unknown DXF backend: {backend!r} (expected one of {', '.join(BACKENDS)})")
    groups = _prepare(sources, pack_into, margin)
    colors = colors or {}

    if backend == "native":
        out_path = _write_text(output_path, write(groups, colors))
        total = sum(len(group.entities) for group in groups)
        logger.info("wrote %s (%d entities)", out_path, total)
        return ConvertResult(
            source_paths=_source_paths(groups),
            output_path=str(out_path),
            total_entities=total,
            written_entities=total,
            skipped_entities=0,
            skipped_by_type={},
        )

    ezdxf = _require_ezdxf()
    dxf_doc = ezdxf.new(dxfversion=dxf_version)
    modelspace = dxf_doc.modelspace()

    total = 0
    written = 0
    skipped_by_type: dict[str, int] = {}
    for group in groups:
        ox, oy = group.offset
        for key, entity in group.items():
            total += 1
            dxfattribs = _entity_dxfattribs(colors.get(key))
            if _write_entity_to_modelspace(modelspace, entity.moved(ox, oy), dxfattribs):
                written += 1
                continue
            skipped_by_type[entity.dxftype] = skipped_by_type.get(entity.dxftype, 0) + 1

    skipped = total - written
    if strict and skipped > 0:
        summary = ", ".join(
            f"{dxftype}:{count}" for dxftype, count in sorted(skipped_by_type.items())
        )
        raise ValueError(f"failed to convert {skipped} entities ({summary})")

    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    dxf_doc.saveas(str(out_path))
    logger.info("wrote %s via ezdxf %s (%d of %d entities)", out_path, dxf_version, written, total)

    return ConvertResult(
        source_paths=_source_paths(groups),
        output_path=str(out_path),
        total_entities=total,
        written_entities=written,
        skipped_entities=skipped,
        skipped_by_type=dict(sorted(skipped_by_type.items())),
    )


def _require_ezdxf():
    try:
        import ezdxf
    except Exception as exc:
        raise ImportError(
            "ezdxf is required for the ezdxf DXF backend. "
            'Install it with `pip install "ezcut[dxf]"`.'
        ) from exc
    return ezdxf


def _entity_dxfattribs(color: str | None) -> dict[str, Any]:
    if not color:
        return {}
    return {"color": hex_to_aci(color)}


def _point3(point: Point2D) -> tuple[float, float, float]:
    return (float(point[0]), float(point[1]), 0.0)


def _write_entity_to_modelspace(modelspace: Any, entity: Entity, dxfattribs: dict[str, Any]) -> bool:
    if not is_finite(entity):
        return False
    try:
        return _write_entity_to_modelspace_unsafe(modelspace, entity, dxfattribs)
    except Exception as exc:
        logger.debug("ezdxf rejected %s: %s", entity.dxftype, exc)
        return False


def _write_entity_to_modelspace_unsafe(modelspace: Any, entity: Entity, dxfattribs: dict[str, Any]) -> bool:
    if isinstance(entity, Line):
        modelspace.add_line(_point3(entity.start), _point3(entity.end), dxfattribs=dxfattribs)
        return True

    if isinstance(entity, Circle):
        modelspace.add_circle(_point3(entity.center), entity.radius, dxfattribs=dxfattribs)
        return True

    if isinstance(entity, Arc):
        modelspace.add_arc(
            _point3(entity.center),
            entity.radius,
            entity.start_angle,
            entity.end_angle,
            dxfattribs=dxfattribs,
        )
        return True

    if isinstance(entity, Ellipse):
        modelspace.add_ellipse(
            _point3(entity.center),
            major_axis=_point3(entity.major_axis),
            ratio=entity.ratio,
            start_param=entity.start_param,
            end_param=entity.end_param,
            dxfattribs=dxfattribs,
        )
        return True

    if isinstance(entity, Polyline):
        if not entity.vertices:
            return False
        modelspace.add_lwpolyline(
            [(v.x, v.y, v.bulge) for v in entity.vertices],
            format="xyb",
            close=entity.closed,
            dxfattribs=dxfattribs,
        )
        return True

    if isinstance(entity, Spline):
        return _write_spline(modelspace, entity, dxfattribs)

    return False


def _write_spline(modelspace: Any, spline: Spline, dxfattribs: dict[str, Any]) -> bool:
    control_points = [_point3(point) for point in spline.control_points]
    if control_points:
        if len(control_points) <= spline.degree:
            return False
        modelspace.add_open_spline(
            control_points=control_points,
            degree=spline.degree,
            knots=list(spline.knots) if spline.has_valid_knots else None,
            dxfattribs=dxfattribs,
        )
        return True

    fit_points = [_point3(point) for point in spline.fit_points]
    if len(fit_points) < 2:
        return False
    modelspace.add_spline(fit_points=fit_points, degree=max(2, spline.degree), dxfattribs=dxfattribs)
    return True
