from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .bounds import Bounds, bounds_of
from .document import Group
from .entity import Point2D

logger = logging.getLogger(__name__)


def pack(boxes: Sequence[Bounds], target: Bounds, margin: float = 0.0) -> list[Point2D]:
    """Shelf packing of ``boxes`` into ``target``; returns one offset per box, in input order.

    Boxes are taken tallest first and laid left to right, starting a new row
    above the previous one when the target width is used up. Rows that do not
    fit keep growing past the top of the target instead of overlapping. The
    result is not guaranteed to be the tightest packing.
    """
    if margin < 0:
        raise ValueError(f"margin must be non-negative: {margin}")
    if target.width <= 0 or target.height <= 0:
        raise ValueError(f"target must have a positive size: {target}")

    offsets: list[Point2D] = [(0.0, 0.0)] * len(boxes)
    order = sorted(range(len(boxes)), key=lambda i: (-boxes[i].height, i))
    left = target.min_x + margin
    right = target.max_x - margin
    x = left
    y = target.min_y + margin
    row_height = 0.0
    row_used = False
    outside = 0
    for i in order:
        box = boxes[i]
        if row_used and x + box.width > right:
            y += row_height + margin
            x = left
            row_height = 0.0
            row_used = False
        offsets[i] = (x - box.min_x, y - box.min_y)
        placed = box.translated(*offsets[i])
        if placed.max_x > right or placed.max_y > target.max_y - margin:
            outside += 1
        x += box.width + margin
        row_height = max(row_height, box.height)
        row_used = True

    if outside:
        logger.info("%d of %d boxes extend past the target area", outside, len(boxes))
    return offsets


def pack_groups(groups: Iterable[Group], target: Bounds, margin: float = 0.0) -> list[Group]:
    groups = list(groups)
    boxes = [bounds_of(group.entities) for group in groups]
    return [
        group.moved_to(ox, oy)
        for group, (ox, oy) in zip(groups, pack(boxes, target, margin))
    ]
