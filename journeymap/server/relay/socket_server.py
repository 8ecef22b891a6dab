"""
Socket.IO relay server.

Uses python-socketio in ASGI mode so it can wrap FastAPI.  ``RelayServer`` is
constructed per application (see ``create_app``) and owns its AsyncServer; it
subscribes to the session's grid model so placements made through REST are
broadcast as ``nodePlaced`` events too.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

import socketio
from pydantic import ValidationError

from journeymap.core.GridPrimitives import GridNode
from journeymap.core.TableEditor import Storyboard, StructuredScenario, TableEditor
from journeymap.server.relay.completion import CompletionService
from journeymap.server.relay.relay_events import (
    COMPLETION,
    CONVERT_STORYBOARD,
    GRID_UPDATED,
    INITIAL_PROMPT,
    NODE_PLACED,
    STORYBOARD_RESULT,
    STRUCTURED_PROMPT,
    STRUCTURED_RESULT,
    StoryboardReply,
    pack_completion,
    unpack_prompt,
)
from journeymap.server.state import SessionState

logger = logging.getLogger(__name__)


class RelayServer:
    def __init__(
        self,
        session: SessionState,
        completions: CompletionService,
        cors_allowed_origins: Any = "*",
    ) -> None:
        self.session = session
        self.completions = completions
        self.sio = socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=cors_allowed_origins,
            logger=False,
            engineio_logger=False,
        )
        self._pending: Set[asyncio.Task] = set()
        self._register_handlers()

        # Grid fan-out: model/player callbacks → Socket.IO emit
        session.model.on_node_placed(self._on_model_node_placed)
        session.player.on_tick(self._on_player_tick)
        session.player.on_finished(self._on_player_finished)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _register_handlers(self) -> None:
        self.sio.on("connect", self.connect)
        self.sio.on("disconnect", self.disconnect)
        self.sio.on(NODE_PLACED, self.node_placed)
        self.sio.on(INITIAL_PROMPT, self.initial_prompt)
        self.sio.on(STRUCTURED_PROMPT, self.structured_prompt)
        self.sio.on(CONVERT_STORYBOARD, self.convert_storyboard)

    def asgi_app(self, other_asgi_app: Any, socketio_path: str = "api/socket") -> socketio.ASGIApp:
        """Wrap *other_asgi_app* inside a Socket.IO ASGI application."""
        return socketio.ASGIApp(self.sio, other_asgi_app=other_asgi_app, socketio_path=socketio_path)

    def _schedule_emit(self, event: str, payload: Any) -> None:
        """
        Called synchronously from model callbacks.
        We schedule an async emit on the running event loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; dropping %s broadcast", event)
            return
        task = loop.create_task(self.sio.emit(event, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_model_node_placed(self, node: GridNode) -> None:
        self._schedule_emit(NODE_PLACED, node.to_descriptor())

    def _on_player_tick(self, node: GridNode) -> None:
        self._schedule_emit(GRID_UPDATED, {"reason": "playback", "nodeCount": len(self.session.model.nodes)})

    def _on_player_finished(self) -> None:
        self._schedule_emit(GRID_UPDATED, {"reason": "playbackDone", "nodeCount": len(self.session.model.nodes)})

    # ------------------------------------------------------------------
    # Socket.IO events
    # ------------------------------------------------------------------

    async def connect(self, sid: str, environ: Dict[str, Any], auth: Optional[Any] = None) -> None:
        logger.info("Client connected: %s", sid)

    async def disconnect(self, sid: str, *args: Any) -> None:
        logger.info("Client disconnected: %s", sid)

    async def node_placed(self, sid: str, data: Any) -> None:
        """Informational broadcast from one browser to the others; no ack."""
        logger.info("nodePlaced from %s: %s", sid, data)
        await self.sio.emit(NODE_PLACED, data, skip_sid=sid)

    async def initial_prompt(self, sid: str, data: Any) -> None:
        prompt, request_id = unpack_prompt(data)
        text = await self.completions.complete_document(prompt)
        self.session.table = TableEditor.from_text(text)
        await self.sio.emit(COMPLETION, pack_completion(text, request_id), to=sid)

    async def structured_prompt(self, sid: str, data: Any) -> None:
        document_json, request_id = unpack_prompt(data)
        text = await self.completions.structure_scenario(document_json)
        try:
            self.session.scenario = StructuredScenario.model_validate_json(text)
        except ValidationError:
            logger.warning("structuredResult is not a scenario summary; keeping the previous one")
        await self.sio.emit(STRUCTURED_RESULT, pack_completion(text, request_id), to=sid)

    async def convert_storyboard(self, sid: str, data: Any) -> None:
        scenario, request_id = unpack_prompt(data)
        text = await self.completions.storyboard(scenario)
        reply: StoryboardReply
        try:
            board = Storyboard.model_validate_json(text)
        except ValidationError:
            logger.warning("Storyboard conversion failed for %s", sid)
            reply = {"error": text}
        else:
            self.session.storyboard = board
            reply = {"storyboards": [scene.model_dump() for scene in board.storyboards]}
        if request_id is not None:
            reply["requestId"] = request_id
        await self.sio.emit(STORYBOARD_RESULT, reply, to=sid)
