"""
GridModel — the live state of one journey map editing session.

Holds the placed nodes and the per-row touchpoint labels.  Every gesture the
browser performs (add user, add next node, drag/drop, delete, add row,
edit label) ends up as one of the mutation methods below.

Groups are never stored: ``grouped_view()`` rebuilds them from the flat node
list on every call, ordered by ``sequence_index``.
"""
from __future__ import annotations

import logging
import random
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from journeymap.core.GridPrimitives import GridNode, NodeKey
from journeymap.core.Types import (
    COLOR_OPTIONS,
    DEFAULT_COLS,
    NodeNotFoundError,
    RowIndexError,
)

logger = logging.getLogger(__name__)

NodeRef = Union[GridNode, NodeKey]
NodePlacedListener = Callable[[GridNode], None]


def _key_of(ref: NodeRef) -> NodeKey:
    if isinstance(ref, GridNode):
        return ref.key
    return NodeKey(*ref)


class GridModel:
    def __init__(
        self,
        cols: int = DEFAULT_COLS,
        single_occupancy: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.cols = cols
        self.single_occupancy = single_occupancy
        self.nodes: List[GridNode] = []
        self.row_labels: List[str] = [""]
        self._rows: int = 1
        self._next_group: int = 1
        self._reserved_group_ids: Set[str] = set()
        self._rng = rng or random.Random()
        self._listeners: List[NodePlacedListener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_node_placed(self, callback: NodePlacedListener) -> None:
        """Register a callback fired for every new placement."""
        self._listeners.append(callback)

    def remove_listener(self, callback: NodePlacedListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _fire_node_placed(self, node: GridNode) -> None:
        for cb in self._listeners:
            try:
                cb(node)
            except Exception:
                # A broken listener must not undo a placement.
                logger.exception("nodePlaced listener failed for %r", node)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    @property
    def row_count(self) -> int:
        return self._rows

    def set_row_count(self, rows: int) -> None:
        """Resize the grid; labels are padded but never dropped."""
        self._rows = max(1, rows)
        while len(self.row_labels) < self._rows:
            self.row_labels.append("")

    def add_row(self) -> int:
        """Append an empty row and return its index."""
        self.set_row_count(self._rows + 1)
        return self._rows - 1

    def set_row_label(self, index: int, text: str) -> None:
        if index < 0 or index >= len(self.row_labels):
            raise RowIndexError(f"Row {index} does not exist (rows: {len(self.row_labels)})")
        self.row_labels[index] = text

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, ref: NodeRef) -> Optional[GridNode]:
        key = _key_of(ref)
        for node in self.nodes:
            if node.matches(key):
                return node
        return None

    def nodes_at(self, row: int, col: int) -> List[GridNode]:
        return [n for n in self.nodes if n.row == row and n.col == col]

    def is_occupied(self, row: int, col: int) -> bool:
        return any(n.row == row and n.col == col for n in self.nodes)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_node(self, row: int, col: int) -> Optional[GridNode]:
        """
        Start a new user path at (row, col).

        Returns ``None`` without touching the model when the cell is already
        taken and the grid is single-occupancy.
        """
        self._check_cell(row, col)
        if self.single_occupancy and self.is_occupied(row, col):
            logger.debug("add_node(%d, %d) ignored: cell occupied", row, col)
            return None

        node = GridNode(
            row=row,
            col=col,
            color=self._rng.choice(COLOR_OPTIONS),
            group_id=self._new_group_id(),
            sequence_index=0,
        )
        self.nodes.append(node)
        logger.info("Placed %r", node)
        self._fire_node_placed(node)
        return node

    def add_linked_node(self, origin: NodeRef) -> GridNode:
        """
        Append the next step of *origin*'s path one column to the right.

        Linking from the last column widens the grid by one column.
        """
        origin_node = self._require(origin)
        if origin_node.col + 1 >= self.cols:
            self.cols = origin_node.col + 2
            logger.info("Grid widened to %d columns", self.cols)
        siblings = [n.sequence_index for n in self.nodes if n.group_id == origin_node.group_id]
        node = GridNode(
            row=origin_node.row,
            col=origin_node.col + 1,
            color=origin_node.color,
            group_id=origin_node.group_id,
            sequence_index=max(siblings, default=-1) + 1,
        )
        self.nodes.append(node)
        logger.info("Placed %r after %r", node, origin_node)
        self._fire_node_placed(node)
        return node

    def move_node(self, ref: NodeRef, new_row: int, new_col: int) -> GridNode:
        self._check_cell(new_row, new_col)
        node = self._require(ref)
        node.row = new_row
        node.col = new_col
        logger.debug("Moved %r", node)
        return node

    def delete_node(self, ref: NodeRef) -> GridNode:
        key = _key_of(ref)
        for index, node in enumerate(self.nodes):
            if node.matches(key):
                del self.nodes[index]
                logger.info("Deleted %r", node)
                return node
        raise NodeNotFoundError(f"No node matches {key!r}")

    def append(self, node: GridNode) -> None:
        """Insert an already built node as-is (import / playback)."""
        self.nodes.append(node)

    def reserve_group_ids(self, group_ids: Iterable[str]) -> None:
        """Keep ids of nodes that are still to be played back out of add_node."""
        self._reserved_group_ids = set(group_ids)

    def clear(self) -> None:
        self.nodes = []

    def replace(self, row_labels: Iterable[str], nodes: Iterable[GridNode]) -> None:
        """
        Swap in a whole imported grid.

        The grid is sized to hold every node: rows reach past the last label
        when a node sits below it, and columns widen the same way.
        """
        self.nodes = list(nodes)
        self.row_labels = list(row_labels) or [""]
        self._rows = len(self.row_labels)
        self.set_row_count(max([self._rows] + [n.row + 1 for n in self.nodes]))
        self.cols = max([self.cols] + [n.col + 1 for n in self.nodes])
        self._reserved_group_ids = set()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def grouped_view(self) -> Dict[str, List[GridNode]]:
        """group_id -> nodes ordered by sequence_index (insertion order of groups)."""
        groups: Dict[str, List[GridNode]] = defaultdict(list)
        for node in self.nodes:
            groups[node.group_id].append(node)
        return {gid: sorted(members, key=lambda n: n.sequence_index) for gid, members in groups.items()}

    def paths(self) -> Dict[str, List[GridNode]]:
        """Only the groups that are drawn as a connecting line."""
        return {gid: members for gid, members in self.grouped_view().items() if len(members) >= 2}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, ref: NodeRef) -> GridNode:
        node = self.find(ref)
        if node is None:
            raise NodeNotFoundError(f"No node matches {_key_of(ref)!r}")
        return node

    def _check_cell(self, row: int, col: int) -> None:
        if row < 0 or col < 0:
            raise ValueError(f"Cell ({row}, {col}) has a negative coordinate")
        if row >= self._rows or col >= self.cols:
            raise ValueError(f"Cell ({row}, {col}) is outside the {self._rows}x{self.cols} grid")

    def _new_group_id(self) -> str:
        used = {n.group_id for n in self.nodes} | self._reserved_group_ids
        while True:
            candidate = str(self._next_group).zfill(3)
            self._next_group += 1
            if candidate not in used:
                return candidate

    def __repr__(self):
        return f"GridModel(rows={self._rows}, cols={self.cols}, nodes={len(self.nodes)})"
