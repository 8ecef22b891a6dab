"""Pixel geometry for drawing the grid: cell centres, co-located offsets, path smoothing."""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from journeymap.core.GridPrimitives import GridNode
from journeymap.core.Types import CELL_SIZE

Point = Tuple[float, float]

# Horizontal spread between markers sharing one cell.
CO_LOCATED_STEP = 8.0


def cell_center(row: int, col: int, cell_size: int = CELL_SIZE) -> Point:
    return (col * cell_size + cell_size / 2, row * cell_size + cell_size / 2)


def co_located_offsets(nodes: Sequence[GridNode], step: float = CO_LOCATED_STEP) -> List[Point]:
    """
    Render-only offset for every node, aligned with *nodes*; nodes alone in
    their cell get (0, 0).

    Markers sharing a cell are spread symmetrically around the centre in
    insertion order.  Offsets are matched by position in the list, so two
    entries with the same key still get separate markers.
    """
    cells: Dict[Tuple[int, int], List[int]] = {}
    for index, node in enumerate(nodes):
        cells.setdefault((node.row, node.col), []).append(index)

    offsets: List[Point] = [(0.0, 0.0)] * len(nodes)
    for members in cells.values():
        count = len(members)
        for i, index in enumerate(members):
            offsets[index] = ((i - (count - 1) / 2) * step, 0.0)
    return offsets


def node_position(node: GridNode, offset: Point = (0.0, 0.0), cell_size: int = CELL_SIZE) -> Point:
    x, y = cell_center(node.row, node.col, cell_size)
    return (x + offset[0], y + offset[1])


def polyline_points(points: Sequence[Point]) -> str:
    """SVG ``points`` attribute."""
    return " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in points)


def catmull_rom(points: Sequence[Point], samples: int = 8) -> List[Point]:
    """
    Sample a uniform Catmull-Rom spline through *points*.

    The curve passes through every control point; end points are duplicated
    so the first and last segments are drawn too.  Fewer than three points
    are returned unchanged since a spline adds nothing there.
    """
    if len(points) < 3 or samples < 1:
        return list(points)

    padded = [points[0], *points, points[-1]]
    out: List[Point] = [points[0]]
    for i in range(1, len(padded) - 2):
        p0, p1, p2, p3 = padded[i - 1], padded[i], padded[i + 1], padded[i + 2]
        for s in range(1, samples + 1):
            t = s / samples
            t2 = t * t
            t3 = t2 * t
            x = 0.5 * (
                2 * p1[0]
                + (-p0[0] + p2[0]) * t
                + (2 * p0[0] - 5 * p1[0] + 4 * p2[0] - p3[0]) * t2
                + (-p0[0] + 3 * p1[0] - 3 * p2[0] + p3[0]) * t3
            )
            y = 0.5 * (
                2 * p1[1]
                + (-p0[1] + p2[1]) * t
                + (2 * p0[1] - 5 * p1[1] + 4 * p2[1] - p3[1]) * t2
                + (-p0[1] + 3 * p1[1] - 3 * p2[1] + p3[1]) * t3
            )
            out.append((x, y))
    return out


def _fmt(value: float) -> str:
    return f"{value:g}"
