from enum import Enum, auto
from typing import List

# Cell edge length in pixels; the browser grid is drawn at this scale.
CELL_SIZE = 50

DEFAULT_COLS = 50

# Seconds between two insertions during animated playback.
DEFAULT_TICK_SECONDS = 0.3

COLOR_OPTIONS: List[str] = ["#7BFF00", "#FFFF61", "#FF18C8", "#972AFF", "#1BEAFF"]

# Keys of the row-oriented Document wire format.
TOUCHPOINTS_KEY = "touchpoints"
NODES_INFO_KEY = "nodes info"


class PlayerState(Enum):
    IDLE = auto()
    PLAYING = auto()


class JourneyMapError(Exception):
    """Base class for every error raised by the journey map core."""


class DocumentFormatError(JourneyMapError):
    """The payload is not a row-oriented Document (bad JSON or wrong shape)."""


class NodeNotFoundError(JourneyMapError):
    """No node matches the given (row, col, group_id, sequence_index) key."""


class RowIndexError(JourneyMapError):
    """A row (or editor list item) index is out of range."""


def hex_to_rgba(hex_color: str, alpha: float = 0.3) -> str:
    """Convert ``#rgb`` / ``#rrggbb`` into a css ``rgba(...)`` string."""
    value = hex_color.lstrip("#")
    if len(value) == 3:
        value = "".join(c + c for c in value)
    if len(value) != 6:
        raise ValueError(f"Not a hex colour: '{hex_color}'")
    r = int(value[0:2], 16)
    g = int(value[2:4], 16)
    b = int(value[4:6], 16)
    return f"rgba({r}, {g}, {b}, {alpha})"
