from typing import Any, Dict, NamedTuple


# Identity of a placed node. Two nodes never share all four fields;
# delete/move look nodes up by this key rather than by object identity
# so that the browser can address a node from its serialized form.
class NodeKey(NamedTuple):
    row: int
    col: int
    group_id: str
    sequence_index: int

    def __repr__(self):
        return f"NodeKey({self.group_id}#{self.sequence_index} @ {self.row},{self.col})"


class GridNode:
    """
    One marker placed on the journey grid.

    ``group_id`` names the user/path the node belongs to and
    ``sequence_index`` (the "subId") orders it inside that path.  Only
    ``row`` and ``col`` change after creation.
    """

    __slots__ = ("row", "col", "color", "group_id", "sequence_index")

    def __init__(self, row: int, col: int, color: str, group_id: str, sequence_index: int = 0):
        self.row = row
        self.col = col
        self.color = color
        self.group_id = group_id
        self.sequence_index = sequence_index

    @property
    def key(self) -> NodeKey:
        return NodeKey(self.row, self.col, self.group_id, self.sequence_index)

    def matches(self, key: NodeKey) -> bool:
        return self.key == key

    def to_descriptor(self) -> Dict[str, Any]:
        """Payload of the ``nodePlaced`` notification."""
        return {
            "nodeId": self.group_id,
            "row": self.row,
            "col": self.col,
            "nodeSubId": self.sequence_index,
            "color": self.color,
        }

    def copy(self) -> "GridNode":
        return GridNode(self.row, self.col, self.color, self.group_id, self.sequence_index)

    def __eq__(self, other):
        if not isinstance(other, GridNode):
            return NotImplemented
        return self.key == other.key and self.color == other.color

    def __repr__(self):
        return f"GridNode({self.group_id}#{self.sequence_index} @ {self.row},{self.col} {self.color})"
