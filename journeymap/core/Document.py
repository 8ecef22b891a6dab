"""
Document codec — the row-oriented JSON shape used for file export/import and
for the relay's ``completion`` payload:

    [
      {"touchpoints": "<label>",
       "nodes info": [{"nodeId": "001", "row": 0, "col": 0, "nodeSubId": 0}, ...]},
      ...
    ]

Decoding is schema validated with pydantic.  The top level must be a list of
row objects (otherwise ``DocumentFormatError``); individual node entries that
fail validation are dropped and the rest of the import proceeds.
"""
from __future__ import annotations

import json
import logging
import random
from datetime import datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from journeymap.core.GridPrimitives import GridNode
from journeymap.core.Types import (
    COLOR_OPTIONS,
    NODES_INFO_KEY,
    TOUCHPOINTS_KEY,
    DocumentFormatError,
)

logger = logging.getLogger(__name__)


# ── Wire models ───────────────────────────────────────────────────────────────

class DocumentNode(BaseModel):
    # strict: "1" is not a row and True is not a subId
    model_config = ConfigDict(strict=True, extra="ignore")

    nodeId: str
    row: int = Field(ge=0)
    col: int = Field(ge=0)
    nodeSubId: int


class DocumentRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    touchpoints: str = ""
    nodes: List[DocumentNode] = Field(default_factory=list, alias=NODES_INFO_KEY)


class ImportedDocument(NamedTuple):
    row_labels: List[str]
    nodes: List[GridNode]


# ── Export ────────────────────────────────────────────────────────────────────

def export_rows(row_labels: Sequence[str], nodes: Iterable[GridNode]) -> List[DocumentRow]:
    node_list = list(nodes)
    rows: List[DocumentRow] = []
    for row_index, text in enumerate(row_labels):
        rows.append(
            DocumentRow(
                touchpoints=text,
                nodes=[
                    DocumentNode(
                        nodeId=n.group_id,
                        row=n.row,
                        col=n.col,
                        nodeSubId=n.sequence_index,
                    )
                    for n in node_list
                    if n.row == row_index
                ],
            )
        )
    return rows


def export_document(row_labels: Sequence[str], nodes: Iterable[GridNode]) -> List[Dict[str, Any]]:
    """
    Build the JSON-ready Document.

    One entry per row label; nodes whose row has no label are not exported.
    """
    return [row.model_dump(by_alias=True) for row in export_rows(row_labels, nodes)]


def dumps_document(document: Union[List[Dict[str, Any]], List[DocumentRow]]) -> str:
    data = [r.model_dump(by_alias=True) if isinstance(r, DocumentRow) else r for r in document]
    return json.dumps(data, indent=2, ensure_ascii=False)


def document_filename(now: Optional[datetime] = None, prefix: str = "touchpoints") -> str:
    now = now or datetime.now()
    return f"{prefix}_{now.strftime('%Y-%m-%d-%H-%M-%S')}.json"


# ── Import ────────────────────────────────────────────────────────────────────

def _load(payload: Any) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise DocumentFormatError(f"Document is not valid JSON: {exc}") from exc
    return payload


def decode_document(payload: Any, normalize_rows: bool = False) -> List[DocumentRow]:
    """
    Validate *payload* (JSON text or decoded data) into typed rows.

    :param normalize_rows: force every node's ``row`` to the index of the row
                           entry that contains it.
    """
    data = _load(payload)
    if not isinstance(data, list):
        raise DocumentFormatError(
            f"Document must be a list of row entries, got {type(data).__name__}"
        )

    rows: List[DocumentRow] = []
    for row_index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise DocumentFormatError(
                f"Row entry {row_index} must be an object, got {type(entry).__name__}"
            )

        label = entry.get(TOUCHPOINTS_KEY)
        if not isinstance(label, str):
            label = "" if label is None else str(label)

        raw_nodes = entry.get(NODES_INFO_KEY)
        if not isinstance(raw_nodes, list):
            if raw_nodes is not None:
                logger.warning("Row %d: '%s' is not a list, treating row as empty", row_index, NODES_INFO_KEY)
            raw_nodes = []

        nodes: List[DocumentNode] = []
        for raw in raw_nodes:
            try:
                node = DocumentNode.model_validate(raw)
            except ValidationError as exc:
                logger.warning(
                    "Row %d: skipping node entry %r (%d validation errors)",
                    row_index, raw, exc.error_count(),
                )
                continue
            if normalize_rows:
                node = node.model_copy(update={"row": row_index})
            nodes.append(node)

        rows.append(DocumentRow(touchpoints=label, nodes=nodes))
    return rows


def rows_to_grid(rows: Sequence[DocumentRow], rng: Optional[random.Random] = None) -> ImportedDocument:
    """Turn decoded rows into labels + grid nodes; colours are picked per nodeId."""
    rng = rng or random.Random()
    colors: Dict[str, str] = {}
    nodes: List[GridNode] = []
    for row in rows:
        for info in row.nodes:
            if info.nodeId not in colors:
                colors[info.nodeId] = rng.choice(COLOR_OPTIONS)
            nodes.append(
                GridNode(
                    row=info.row,
                    col=info.col,
                    color=colors[info.nodeId],
                    group_id=info.nodeId,
                    sequence_index=info.nodeSubId,
                )
            )
    return ImportedDocument([row.touchpoints for row in rows], nodes)


def import_document(
    payload: Any,
    normalize_rows: bool = False,
    rng: Optional[random.Random] = None,
) -> ImportedDocument:
    return rows_to_grid(decode_document(payload, normalize_rows=normalize_rows), rng=rng)
