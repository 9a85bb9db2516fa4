from typing import Sequence

from .bounds import Bounds, bounds_of, composite_bounds, group_bounds
from .convert import ConvertResult, to_dxf, to_svg
from .document import Composite, Group, parse, read
from .duplicates import Placed, are_duplicate, endpoints_of, find_duplicates
from .entity import Arc, Circle, Ellipse, Entity, EntityKey, Line, Polyline, Spline, Vertex
from .packing import pack, pack_groups
from .svg import render
from .writer import write

__all__ = [
    "parse",
    "read",
    "Group",
    "Composite",
    "Entity",
    "EntityKey",
    "Line",
    "Circle",
    "Arc",
    "Ellipse",
    "Vertex",
    "Polyline",
    "Spline",
    "Bounds",
    "bounds_of",
    "group_bounds",
    "composite_bounds",
    "render",
    "write",
    "Placed",
    "are_duplicate",
    "endpoints_of",
    "find_duplicates",
    "pack",
    "pack_groups",
    "to_svg",
    "to_dxf",
    "ConvertResult",
]


def main(argv: Sequence[str] | None = None) -> int:
    from ezcut.cli import main as cli_main

    return cli_main(argv)
