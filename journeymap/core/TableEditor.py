"""
Companion editors shown next to the grid.

``TableEditor`` is the touchpoint x user checkbox table that edits a Document
directly (the relay's last completion).  ``StructuredScenario`` is the
context / artifact / per-user experience summary produced from a Document,
and ``Storyboard`` holds the scenes the relay derives from scenario text.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from journeymap.core.Document import DocumentNode, DocumentRow, decode_document, dumps_document
from journeymap.core.Types import DocumentFormatError, RowIndexError

logger = logging.getLogger(__name__)


class TableEditor:
    def __init__(self, rows: Optional[List[DocumentRow]] = None) -> None:
        self.rows: List[DocumentRow] = rows or []

    @classmethod
    def from_text(cls, text: str) -> "TableEditor":
        """
        Load the editor from completion text.

        Anything that does not decode as a Document (placeholder strings,
        error literals) yields an empty table.
        """
        if not text or not text.strip().startswith("["):
            return cls()
        try:
            return cls(decode_document(text))
        except DocumentFormatError:
            logger.warning("Table editor input is not a document; showing an empty table")
            return cls()

    def user_ids(self) -> List[str]:
        return sorted({node.nodeId for row in self.rows for node in row.nodes})

    def has_user(self, row_index: int, user_id: str) -> bool:
        return any(n.nodeId == user_id for n in self._row(row_index).nodes)

    def toggle_user_for_row(self, row_index: int, user_id: str, checked: bool) -> None:
        row = self._row(row_index)
        present = any(n.nodeId == user_id for n in row.nodes)
        if checked and not present:
            row.nodes.append(
                DocumentNode(nodeId=user_id, row=row_index, col=0, nodeSubId=len(row.nodes))
            )
        elif not checked and present:
            row.nodes = [n for n in row.nodes if n.nodeId != user_id]

    def update_touchpoint_text(self, row_index: int, text: str) -> None:
        self._row(row_index).touchpoints = text

    def to_text(self) -> str:
        return dumps_document(self.rows)

    def _row(self, row_index: int) -> DocumentRow:
        if row_index < 0 or row_index >= len(self.rows):
            raise RowIndexError(f"Row {row_index} does not exist (rows: {len(self.rows)})")
        return self.rows[row_index]


class StructuredScenario(BaseModel):
    context: List[str] = Field(default_factory=list)
    artifact: List[str] = Field(default_factory=list)
    userExperience: Dict[str, str] = Field(default_factory=dict)

    def update_list(self, key: str, index: int, value: str) -> None:
        if key not in ("context", "artifact"):
            raise ValueError(f"Unknown list '{key}'")
        items: List[Any] = getattr(self, key)
        if index < 0 or index >= len(items):
            raise RowIndexError(f"Item {index} does not exist in '{key}' (items: {len(items)})")
        items[index] = value

    def update_experience(self, user_id: str, value: str) -> None:
        self.userExperience[user_id] = value


MAX_STORYBOARD_SCENES = 5


class StoryboardScene(BaseModel):
    sceneId: int
    title: str = ""
    keyInteractions: List[str] = Field(default_factory=list)


class Storyboard(BaseModel):
    """Up to five scenes, in time order, derived from a scenario."""

    storyboards: List[StoryboardScene] = Field(default_factory=list)

    @field_validator("storyboards")
    @classmethod
    def _limit_scenes(cls, scenes: List[StoryboardScene]) -> List[StoryboardScene]:
        if len(scenes) > MAX_STORYBOARD_SCENES:
            logger.info("Storyboard has %d scenes; keeping the first %d", len(scenes), MAX_STORYBOARD_SCENES)
        return scenes[:MAX_STORYBOARD_SCENES]
