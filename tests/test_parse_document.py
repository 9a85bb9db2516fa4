from __future__ import annotations

import math
from pathlib import Path

import pytest

import ezcut
import ezcut.document as document_module
from ezcut.entity import Arc, Circle, Ellipse, Line, Polyline, Spline, Vertex, is_finite
from tests._dxf_helpers import dxf_document, tags


LINE = tags((0, "LINE"), (8, "0"), (10, 0), (20, 0), (30, 0), (11, 100), (21, 50), (31, 0))
CIRCLE = tags((0, "CIRCLE"), (8, "0"), (10, 50), (20, 25), (30, 0), (40, 10))


def test_parse_line_and_circle() -> None:
    entities = ezcut.parse(dxf_document(LINE, CIRCLE))

    assert [entity.dxftype for entity in entities] == ["LINE", "CIRCLE"]
    assert entities[0] == Line((0.0, 0.0), (100.0, 50.0))
    assert entities[1] == Circle((50.0, 25.0), 10.0)


def test_parse_skips_unsupported_entities() -> None:
    point = tags((0, "POINT"), (10, 1), (20, 2))
    text = tags((0, "TEXT"), (10, 1), (20, 2), (1, "hello"))
    hatch = tags((0, "HATCH"), (10, 5), (20, 5))

    entities = ezcut.parse(dxf_document(point, LINE, text, hatch, CIRCLE))

    assert [entity.dxftype for entity in entities] == ["LINE", "CIRCLE"]


def test_parse_without_entities_section_is_empty() -> None:
    text = tags((0, "SECTION"), (2, "HEADER"), (9, "$ACADVER"), (1, "AC1015"), (0, "ENDSEC"), (0, "EOF"))
    assert ezcut.parse(text) == []
    assert ezcut.parse("") == []


def test_parse_ignores_entities_outside_entities_section() -> None:
    blocks = tags((0, "SECTION"), (2, "BLOCKS"), (0, "BLOCK"), (2, "B1")) + LINE + tags(
        (0, "ENDBLK"), (0, "ENDSEC")
    )
    text = blocks + tags((0, "SECTION"), (2, "ENTITIES")) + CIRCLE + tags((0, "ENDSEC"), (0, "EOF"))

    entities = ezcut.parse(text)

    assert entities == [Circle((50.0, 25.0), 10.0)]


def test_parse_truncated_stream_keeps_complete_entities() -> None:
    text = tags((0, "SECTION"), (2, "ENTITIES")) + LINE + "0\nCIRCLE\n10\n"

    entities = ezcut.parse(text)

    assert [entity.dxftype for entity in entities] == ["LINE", "CIRCLE"]
    assert entities[1] == Circle((0.0, 0.0), 0.0)


def test_parse_accepts_crlf_and_padded_codes() -> None:
    text = dxf_document(LINE).replace("\n", "\r\n").replace("\r\n0\r\n", "\r\n  0\r\n")
    entities = ezcut.parse(text)
    assert entities == [Line((0.0, 0.0), (100.0, 50.0))]


def test_parse_arc_angles() -> None:
    arc = tags((0, "ARC"), (10, 1), (20, 2), (40, 3), (50, 45), (51, 270))
    assert ezcut.parse(dxf_document(arc)) == [Arc((1.0, 2.0), 3.0, 45.0, 270.0)]


def test_parse_ellipse_defaults_to_full_unit_axis() -> None:
    ellipse = tags((0, "ELLIPSE"), (10, 5), (20, 6))

    (entity,) = ezcut.parse(dxf_document(ellipse))

    assert isinstance(entity, Ellipse)
    assert entity.major_axis == (1.0, 0.0)
    assert entity.ratio == 1.0
    assert entity.start_param == 0.0
    assert entity.end_param == pytest.approx(2.0 * math.pi)
    assert entity.is_full


def test_parse_lwpolyline_attaches_bulge_to_preceding_vertex() -> None:
    polyline = tags(
        (0, "LWPOLYLINE"),
        (90, 3),
        (70, 1),
        (10, 0),
        (20, 0),
        (10, 10),
        (20, 0),
        (42, 1.0),
        (10, 10),
        (20, 10),
    )

    (entity,) = ezcut.parse(dxf_document(polyline))

    assert entity == Polyline(
        (Vertex(0.0, 0.0, 0.0), Vertex(10.0, 0.0, 1.0), Vertex(10.0, 10.0, 0.0)),
        closed=True,
    )


def test_parse_heavy_polyline_collects_vertices() -> None:
    polyline = (
        tags((0, "POLYLINE"), (66, 1), (70, 0))
        + tags((0, "VERTEX"), (10, 0), (20, 0), (42, 0.5))
        + tags((0, "VERTEX"), (10, 5), (20, 0))
        + tags((0, "VERTEX"), (10, 2), (20, 2), (70, 16))
        + tags((0, "VERTEX"), (10, 5), (20, 5))
        + tags((0, "SEQEND"))
    )

    entities = ezcut.parse(dxf_document(polyline, CIRCLE))

    assert [entity.dxftype for entity in entities] == ["LWPOLYLINE", "CIRCLE"]
    assert entities[0] == Polyline(
        (Vertex(0.0, 0.0, 0.5), Vertex(5.0, 0.0, 0.0), Vertex(5.0, 5.0, 0.0)),
        closed=False,
    )


def test_parse_spline_reads_degree_knots_and_points() -> None:
    spline = tags(
        (0, "SPLINE"),
        (70, 8),
        (71, 2),
        (72, 6),
        (73, 3),
        *[(40, k) for k in (0, 0, 0, 1, 1, 1)],
        (10, 0),
        (20, 0),
        (30, 0),
        (10, 5),
        (20, 10),
        (30, 0),
        (10, 10),
        (20, 0),
        (30, 0),
    )

    (entity,) = ezcut.parse(dxf_document(spline))

    assert isinstance(entity, Spline)
    assert entity.degree == 2
    assert entity.control_points == ((0.0, 0.0), (5.0, 10.0), (10.0, 0.0))
    assert entity.knots == (0.0, 0.0, 0.0, 1.0, 1.0, 1.0)
    assert entity.has_valid_knots


def test_parse_spline_without_control_points_uses_fit_points() -> None:
    spline = tags((0, "SPLINE"), (11, 0), (21, 0), (11, 4), (21, 4))

    (entity,) = ezcut.parse(dxf_document(spline))

    assert entity.degree == 3
    assert entity.control_points == ()
    assert entity.points() == [(0.0, 0.0), (4.0, 4.0)]


def test_malformed_number_becomes_nan_but_entity_is_kept() -> None:
    broken = tags((0, "LINE"), (10, "abc"), (20, 0), (11, 1), (21, 1))

    entities = ezcut.parse(dxf_document(broken, CIRCLE))

    assert len(entities) == 2
    assert math.isnan(entities[0].start[0])
    assert not is_finite(entities[0])
    assert is_finite(entities[1])


def test_non_finite_integer_flags_fall_back_to_defaults() -> None:
    polyline = tags((0, "LWPOLYLINE"), (90, 2), (70, "1e999"), (10, 0), (20, 0), (10, 5), (20, 5))
    heavy = (
        tags((0, "POLYLINE"), (66, 1), (70, "-inf"))
        + tags((0, "VERTEX"), (10, 0), (20, 0), (70, "inf"))
        + tags((0, "VERTEX"), (10, 1), (20, 1))
        + tags((0, "SEQEND"))
    )
    spline = tags((0, "SPLINE"), (71, "inf"), (10, 0), (20, 0), (10, 4), (20, 4))

    entities = ezcut.parse(dxf_document(polyline, heavy, spline, CIRCLE))

    assert [entity.dxftype for entity in entities] == ["LWPOLYLINE", "LWPOLYLINE", "SPLINE", "CIRCLE"]
    assert not entities[0].closed
    assert entities[1] == Polyline((Vertex(0.0, 0.0), Vertex(1.0, 1.0)), closed=False)
    assert entities[2].degree == 3


def test_read_builds_group_named_after_file(tmp_path: Path) -> None:
    path = tmp_path / "bracket.dxf"
    path.write_text(dxf_document(LINE, CIRCLE), encoding="utf-8")

    group = ezcut.read(path)

    assert group.id == "bracket"
    assert group.filename == "bracket.dxf"
    assert group.offset == (0.0, 0.0)
    assert len(group.entities) == 2


def test_group_is_not_mutated_by_moving() -> None:
    group = ezcut.Group("g0", [Line((0.0, 0.0), (1.0, 1.0))])
    moved = group.moved_to(5, 5)

    assert group.offset == (0.0, 0.0)
    assert moved.offset == (5.0, 5.0)
    assert moved.entities is group.entities


def test_composite_rejects_duplicate_group_ids() -> None:
    with pytest.raises(ValueError, match="duplicate group id"):
        ezcut.Composite((ezcut.Group("a"), ezcut.Group("a")))


def test_every_supported_type_is_parsed() -> None:
    minimal = {
        "LINE": LINE,
        "CIRCLE": CIRCLE,
        "ARC": tags((0, "ARC"), (10, 0), (20, 0), (40, 1), (50, 0), (51, 90)),
        "ELLIPSE": tags((0, "ELLIPSE"), (10, 0), (20, 0), (11, 2), (21, 0), (40, 0.5)),
        "LWPOLYLINE": tags((0, "LWPOLYLINE"), (90, 2), (10, 0), (20, 0), (10, 1), (20, 1)),
        "POLYLINE": tags((0, "POLYLINE"), (70, 1))
        + tags((0, "VERTEX"), (10, 0), (20, 0))
        + tags((0, "VERTEX"), (10, 1), (20, 0))
        + tags((0, "SEQEND")),
        "SPLINE": tags((0, "SPLINE"), (10, 0), (20, 0), (10, 1), (20, 1)),
    }

    entities = ezcut.parse(dxf_document(*(minimal[name] for name in document_module.SUPPORTED_ENTITY_TYPES)))

    assert len(entities) == len(document_module.SUPPORTED_ENTITY_TYPES)


def test_composite_is_hashable_and_colors_are_read_only() -> None:
    colors = {("a", 0): "#FF0000"}
    composite = ezcut.Composite((ezcut.Group("a", [Line((0.0, 0.0), (1.0, 1.0))]),), colors)
    same = ezcut.Composite((ezcut.Group("a", [Line((0.0, 0.0), (1.0, 1.0))]),), dict(colors))

    assert hash(composite) == hash(same)
    assert composite == same
    colors[("a", 0)] = "#00FF00"
    assert composite.colors[("a", 0)] == "#FF0000"
    with pytest.raises(TypeError):
        composite.colors[("a", 0)] = "#0000FF"


def test_validate_groups_rejects_foreign_objects() -> None:
    with pytest.raises(TypeError):
        document_module.validate_groups([object()])
