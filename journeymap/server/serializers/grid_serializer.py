"""
Grid serializer — converts the live GridModel into the JSON-safe render
state the browser draws: grid size, row labels, positioned nodes and the
connecting paths.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from journeymap.core.AnimationPlayer import AnimationPlayer
from journeymap.core.Geometry import (
    Point,
    catmull_rom,
    co_located_offsets,
    node_position,
    polyline_points,
)
from journeymap.core.GridModel import GridModel
from journeymap.core.GridPrimitives import GridNode
from journeymap.core.Types import CELL_SIZE, hex_to_rgba

# ── Wire shapes (dicts, for easy JSON serialisation) ──────────────────────────

# SerializedNode keys: nodeId, row, col, nodeSubId, color, fill, position
# SerializedPath keys: nodeId, color, points, smooth
# SerializedGrid keys: rows, cols, cellSize, rowLabels, nodes, paths, player


# ── Helpers ───────────────────────────────────────────────────────────────────

def _serialize_node(node: GridNode, position: Point) -> Dict[str, Any]:
    x, y = position
    return {
        "nodeId": node.group_id,
        "row": node.row,
        "col": node.col,
        "nodeSubId": node.sequence_index,
        "color": node.color,
        # Translucent tint for the occupied cell background.
        "fill": hex_to_rgba(node.color),
        "position": {"x": x, "y": y},
    }


def _serialize_path(group_id: str, members: List[GridNode], positions: Dict[int, Point], samples: int) -> Dict[str, Any]:
    points = [positions[id(n)] for n in members]
    return {
        "nodeId": group_id,
        "color": members[0].color,
        "points": polyline_points(points),
        "smooth": polyline_points(catmull_rom(points, samples)),
    }


# ── Public API ─────────────────────────────────────────────────────────────────

def serialize_grid(
    model: GridModel,
    player: Optional[AnimationPlayer] = None,
    spline_samples: int = 8,
) -> Dict[str, Any]:
    """
    Serialize *model* into a SerializedGrid dict.

    Only groups with two or more members produce a path; their points are
    ordered by sequence index.
    """
    offsets = co_located_offsets(model.nodes)
    # Positions are tracked per node object so duplicate keys stay apart.
    positions = {id(n): node_position(n, offset) for n, offset in zip(model.nodes, offsets)}
    return {
        "rows": model.row_count,
        "cols": model.cols,
        "cellSize": CELL_SIZE,
        "rowLabels": list(model.row_labels),
        "nodes": [_serialize_node(n, positions[id(n)]) for n in model.nodes],
        "paths": [
            _serialize_path(gid, members, positions, spline_samples)
            for gid, members in model.paths().items()
        ],
        "player": {
            "state": player.state.name if player else "IDLE",
            "queued": len(player.queue) if player else 0,
        },
    }
