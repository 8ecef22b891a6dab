"""
An explicitly owned Socket.IO connection to the relay server.

Nothing connects at import time: build a client for a session, ``await
connect(url)``, and ``await disconnect()`` when the session ends (or use it
as an async context manager).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Set

import socketio

from journeymap.client.prompt_session import PromptSession
from journeymap.core.GridPrimitives import GridNode
from journeymap.server.relay.relay_events import COMPLETION, INITIAL_PROMPT, NODE_PLACED

logger = logging.getLogger(__name__)


class RelayClient:
    def __init__(
        self,
        session: PromptSession,
        sio: Optional[socketio.AsyncClient] = None,
        socketio_path: str = "api/socket",
    ) -> None:
        self.session = session
        self.socketio_path = socketio_path
        self.sio = sio or socketio.AsyncClient()
        self.peer_placements: List[Any] = []
        self._peer_listeners: List[Callable[[Any], None]] = []
        self._pending: Set[asyncio.Task] = set()

        self.sio.on("connect", self._on_connect)
        self.sio.on(COMPLETION, self._on_completion)
        self.sio.on(NODE_PLACED, self._on_node_placed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return bool(self.sio.connected)

    async def connect(self, url: str) -> None:
        await self.sio.connect(url, socketio_path=self.socketio_path)

    async def disconnect(self) -> None:
        self.session.model.remove_listener(self._announce_later)
        if self.sio.connected:
            await self.sio.disconnect()

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send_prompt(self, text: str) -> str:
        """Emit ``initialPrompt``; returns the request id echoed by the server."""
        request_id = self.session.begin_request()
        await self.sio.emit(INITIAL_PROMPT, {"prompt": text, "requestId": request_id})
        return request_id

    async def announce(self, node: GridNode) -> None:
        await self.sio.emit(NODE_PLACED, node.to_descriptor())

    def follow_model(self) -> None:
        """Broadcast every local placement as ``nodePlaced`` (fire-and-forget)."""
        self.session.model.on_node_placed(self._announce_later)

    def on_peer_placement(self, callback: Callable[[Any], None]) -> None:
        self._peer_listeners.append(callback)

    def _announce_later(self, node: GridNode) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; nodePlaced for %r not sent", node)
            return
        task = loop.create_task(self.announce(node))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _on_connect(self) -> None:
        logger.info("Relay connected, sid: %s", self.sio.sid)

    async def _on_completion(self, payload: Any) -> None:
        self.session.handle_completion(payload)

    async def _on_node_placed(self, payload: Any) -> None:
        self.peer_placements.append(payload)
        for cb in self._peer_listeners:
            try:
                cb(payload)
            except Exception:
                logger.exception("Peer placement listener failed")
