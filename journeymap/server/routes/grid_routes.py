"""
Grid REST routes — the interaction layer.

Each browser gesture maps onto one GridModel mutation.  All routes are
mounted under /api by main.py.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from journeymap.core.Document import document_filename
from journeymap.core.GridPrimitives import NodeKey
from journeymap.core.TableEditor import StructuredScenario
from journeymap.core.Types import DocumentFormatError, NodeNotFoundError, RowIndexError
from journeymap.server.serializers.grid_serializer import serialize_grid
from journeymap.server.state import SessionState

logger = logging.getLogger(__name__)

router = APIRouter()


def get_session(request: Request) -> SessionState:
    return request.app.state.session


def _grid(session: SessionState) -> Dict[str, Any]:
    return serialize_grid(session.model, session.player)


# ── Bodies ────────────────────────────────────────────────────────────────────

class CellBody(BaseModel):
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class NodeRefBody(BaseModel):
    nodeId: str
    row: int
    col: int
    nodeSubId: int

    def key(self) -> NodeKey:
        return NodeKey(self.row, self.col, self.nodeId, self.nodeSubId)


class MoveBody(BaseModel):
    node: NodeRefBody
    row: int = Field(ge=0)
    col: int = Field(ge=0)


class RowLabelBody(BaseModel):
    text: str


class ToggleUserBody(BaseModel):
    checked: bool


# ── GET /grid ─────────────────────────────────────────────────────────────────

@router.get("/grid")
async def get_grid(session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    return _grid(session)


@router.get("/grid/groups")
async def get_groups(session: SessionState = Depends(get_session)) -> Dict[str, List[Dict[str, Any]]]:
    return {
        gid: [n.to_descriptor() for n in members]
        for gid, members in session.model.grouped_view().items()
    }


# ── POST /grid/nodes (add user) ───────────────────────────────────────────────

@router.post("/grid/nodes", status_code=201)
async def add_node(body: CellBody, session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    try:
        node = session.model.add_node(body.row, body.col)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"node": node.to_descriptor() if node else None, "grid": _grid(session)}


# ── POST /grid/nodes/next (add next node) ─────────────────────────────────────

@router.post("/grid/nodes/next", status_code=201)
async def add_next_node(body: NodeRefBody, session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    try:
        node = session.model.add_linked_node(body.key())
    except NodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"node": node.to_descriptor(), "grid": _grid(session)}


# ── PUT /grid/nodes/move (drag and drop) ──────────────────────────────────────

@router.put("/grid/nodes/move")
async def move_node(body: MoveBody, session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    try:
        node = session.model.move_node(body.node.key(), body.row, body.col)
    except NodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"node": node.to_descriptor(), "grid": _grid(session)}


# ── DELETE /grid/nodes ────────────────────────────────────────────────────────
# DELETE carries the node reference as a JSON body, like the edge routes.

@router.delete("/grid/nodes")
async def delete_node(body: NodeRefBody, session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    try:
        session.model.delete_node(body.key())
    except NodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _grid(session)


# ── Rows / touchpoints ────────────────────────────────────────────────────────

@router.post("/grid/rows", status_code=201)
async def add_row(session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    index = session.model.add_row()
    return {"row": index, "grid": _grid(session)}


@router.put("/grid/rows/{index}")
async def set_row_label(index: int, body: RowLabelBody, session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    try:
        session.model.set_row_label(index, body.text)
    except RowIndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _grid(session)


# ── Export / import ───────────────────────────────────────────────────────────

@router.get("/grid/export")
async def export_grid(session: SessionState = Depends(get_session)) -> JSONResponse:
    filename = document_filename(prefix="graph-data")
    return JSONResponse(
        session.export_document(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/grid/import")
async def import_grid(
    payload: Any = Body(...),
    normalize_rows: bool = Query(False, alias="normalizeRows"),
    play: bool = Query(True, description="Replay nodes with the animation player"),
    session: SessionState = Depends(get_session),
) -> Dict[str, Any]:
    try:
        imported = session.import_document(payload, normalize_rows=normalize_rows, play=play)
    except DocumentFormatError as exc:
        logger.warning("Import rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))
    return {"rows": len(imported.row_labels), "nodes": len(imported.nodes), "grid": _grid(session)}


# ── Playback ──────────────────────────────────────────────────────────────────

@router.post("/grid/play")
async def play(session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    if session.player.replay() is None:
        raise HTTPException(status_code=409, detail="Nothing to play; import a document first")
    return _grid(session)


@router.post("/grid/stop")
async def stop(session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    session.player.stop()
    return _grid(session)


@router.post("/grid/reset")
async def reset(session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    session.reset()
    return _grid(session)


# ── Companion editors ─────────────────────────────────────────────────────────

def _table(session: SessionState) -> Dict[str, Any]:
    table = session.table
    return {
        "users": table.user_ids(),
        "rows": [row.model_dump(by_alias=True) for row in table.rows],
        "text": table.to_text(),
    }


@router.get("/table")
async def get_table(session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    return _table(session)


@router.put("/table/rows/{index}")
async def update_table_row(index: int, body: RowLabelBody, session: SessionState = Depends(get_session)) -> Dict[str, Any]:
    try:
        session.table.update_touchpoint_text(index, body.text)
    except RowIndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _table(session)


@router.put("/table/rows/{index}/users/{user_id}")
async def toggle_table_user(
    index: int,
    user_id: str,
    body: ToggleUserBody,
    session: SessionState = Depends(get_session),
) -> Dict[str, Any]:
    try:
        session.table.toggle_user_for_row(index, user_id, body.checked)
    except RowIndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _table(session)


@router.get("/scenario")
async def get_scenario(session: SessionState = Depends(get_session)) -> Optional[Dict[str, Any]]:
    return session.scenario.model_dump() if session.scenario else None


def _require_scenario(session: SessionState) -> StructuredScenario:
    if session.scenario is None:
        raise HTTPException(status_code=404, detail="No structured scenario yet")
    return session.scenario


# Registered before /scenario/{key}/{index} so "users" is not read as a list key.
@router.put("/scenario/users/{user_id}")
async def update_scenario_experience(
    user_id: str,
    body: RowLabelBody,
    session: SessionState = Depends(get_session),
) -> Dict[str, Any]:
    scenario = _require_scenario(session)
    scenario.update_experience(user_id, body.text)
    return scenario.model_dump()


@router.put("/scenario/{key}/{index}")
async def update_scenario_item(
    key: str,
    index: int,
    body: RowLabelBody,
    session: SessionState = Depends(get_session),
) -> Dict[str, Any]:
    scenario = _require_scenario(session)
    try:
        scenario.update_list(key, index, body.text)
    except RowIndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return scenario.model_dump()


@router.get("/storyboard")
async def get_storyboard(session: SessionState = Depends(get_session)) -> Optional[Dict[str, Any]]:
    return session.storyboard.model_dump() if session.storyboard else None
