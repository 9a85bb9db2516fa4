from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from .bounds import Bounds
from .convert import BACKENDS, to_dxf, to_svg
from .document import read
from .duplicates import DEFAULT_TOLERANCE, find_duplicates
from .entity import ENTITY_CLASSES, EntityKey, is_finite
from .svg import DEFAULT_STROKE_WIDTH


def _package_version() -> str:
    try:
        return version("ezcut")
    except PackageNotFoundError:
        return "0.0.0"


def _parse_color(text: str) -> tuple[EntityKey, str]:
    key, sep, color = text.partition("=")
    if not sep or not color:
        raise argparse.ArgumentTypeError(f"invalid color override: {text!r} (expected GROUP:INDEX=#RRGGBB)")
    try:
        return EntityKey.parse(key), color
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_area(text: str) -> Bounds:
    width, sep, height = text.lower().partition("x")
    try:
        area = Bounds(0.0, 0.0, float(width), float(height))
    except ValueError:
        area = None
    if not sep or area is None or area.width <= 0 or area.height <= 0:
        raise argparse.ArgumentTypeError(f"invalid area: {text!r} (expected WIDTHxHEIGHT)")
    return area


def _add_composite_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("paths", nargs="+", metavar="PATH", help="Input DXF files followed by the output path.")
    parser.add_argument(
        "--color",
        dest="colors",
        action="append",
        type=_parse_color,
        default=[],
        help="Stroke override GROUP:INDEX=#RRGGBB; inputs are grouped as g0, g1, ... (repeatable).",
    )
    parser.add_argument(
        "--pack",
        type=_parse_area,
        default=None,
        metavar="WxH",
        help="Auto-place the inputs inside a WIDTHxHEIGHT area.",
    )
    parser.add_argument("--margin", type=float, default=2.0, help="Gap between placed inputs (default: 2).")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ezcut", description="Convert and combine DXF drawings for laser cutting.")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Show basic DXF information.")
    inspect_parser.add_argument("path", help="Path to DXF file.")
    inspect_parser.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help=f"Distance under which geometry counts as duplicated (default: {DEFAULT_TOLERANCE:g}).",
    )

    svg_parser = subparsers.add_parser("svg", help="Render one or more DXF files into an SVG document.")
    _add_composite_arguments(svg_parser)
    svg_parser.add_argument("--scale", type=float, default=1.0, help="Drawing units to millimetres (default: 1).")
    svg_parser.add_argument(
        "--preview",
        action="store_true",
        help="Keep group/entity identifiers and drop the XML declaration.",
    )
    svg_parser.add_argument(
        "--stroke-width",
        type=float,
        default=DEFAULT_STROKE_WIDTH,
        help=f"Stroke width in drawing units (default: {DEFAULT_STROKE_WIDTH:g}).",
    )

    dxf_parser = subparsers.add_parser("dxf", help="Combine one or more DXF files into a single DXF.")
    _add_composite_arguments(dxf_parser)
    dxf_parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default="native",
        help="native writes a minimal DXF directly; ezdxf produces a full versioned document.",
    )
    dxf_parser.add_argument(
        "--dxf-version",
        default="R2010",
        help="DXF version for the ezdxf backend, e.g. R2000/R2010/R2018.",
    )
    dxf_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any entity cannot be converted.",
    )
    return parser


def _split_paths(paths: Sequence[str]) -> tuple[list[Path], str] | None:
    if len(paths) < 2:
        print("error: expected at least one input and an output path", file=sys.stderr)
        return None
    inputs = [Path(p) for p in paths[:-1]]
    for path in inputs:
        if not path.exists():
            print(f"error: file not found: {path}", file=sys.stderr)
            return None
    return inputs, paths[-1]


def _print_result(result) -> None:
    for source in result.source_paths:
        print(f"input: {source}")
    print(f"output: {result.output_path}")
    print(f"total_entities: {result.total_entities}")
    print(f"written_entities: {result.written_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    for dxftype, count in result.skipped_by_type.items():
        print(f"skipped[{dxftype}]: {count}")


def _run_inspect(path: str, *, tolerance: float = DEFAULT_TOLERANCE) -> int:
    file_path = Path(path)
    if not file_path.exists():
        print(f"error: file not found: {file_path}", file=sys.stderr)
        return 2

    try:
        group = read(file_path)
    except Exception as exc:
        print(f"error: failed to read DXF: {exc}", file=sys.stderr)
        return 2

    counts = Counter(entity.dxftype for entity in group.entities)
    non_finite = sum(1 for entity in group.entities if not is_finite(entity))
    bounds = group.bounds()

    print(f"file: {file_path}")
    print(f"total_entities: {len(group.entities)}")
    for dxftype in dict.fromkeys(cls.dxftype for cls in ENTITY_CLASSES):
        count = counts.get(dxftype, 0)
        if count > 0:
            print(f"{dxftype}: {count}")
    print(f"bounds: {bounds.min_x:g} {bounds.min_y:g} {bounds.max_x:g} {bounds.max_y:g}")
    if non_finite:
        print(f"non_finite_entities: {non_finite}")
    print(f"duplicates: {len(find_duplicates([group], tolerance=tolerance))}")
    return 0


def _run_svg(args: argparse.Namespace) -> int:
    split = _split_paths(args.paths)
    if split is None:
        return 2
    inputs, output = split
    try:
        result = to_svg(
            inputs,
            output,
            colors=dict(args.colors),
            scale=args.scale,
            preview=bool(args.preview),
            stroke_width=args.stroke_width,
            pack_into=args.pack,
            margin=args.margin,
        )
    except Exception as exc:
        print(f"error: failed to convert DXF to SVG: {exc}", file=sys.stderr)
        return 2
    _print_result(result)
    return 0


def _run_dxf(args: argparse.Namespace) -> int:
    split = _split_paths(args.paths)
    if split is None:
        return 2
    inputs, output = split
    try:
        result = to_dxf(
            inputs,
            output,
            colors=dict(args.colors),
            backend=args.backend,
            dxf_version=args.dxf_version,
            strict=bool(args.strict),
            pack_into=args.pack,
            margin=args.margin,
        )
    except Exception as exc:
        print(f"error: failed to write DXF: {exc}", file=sys.stderr)
        return 2
    _print_result(result)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "inspect":
        return _run_inspect(args.path, tolerance=args.tolerance)
    if args.command == "svg":
        return _run_svg(args)
    if args.command == "dxf":
        return _run_dxf(args)

    parser.print_help()
    return 0
