"""
AnimationPlayer — replays an ordered node sequence into a GridModel, one node
per tick.

States: IDLE -> PLAYING -> IDLE.  The player owns at most one asyncio task.
``play()`` always cancels the previous task first and bumps a generation
counter; a task that wakes up under an old generation exits without
inserting, so two playbacks can never interleave.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, List, Optional

from journeymap.core.GridModel import GridModel
from journeymap.core.GridPrimitives import GridNode
from journeymap.core.Types import DEFAULT_TICK_SECONDS, PlayerState

logger = logging.getLogger(__name__)

TickListener = Callable[[GridNode], None]
FinishedListener = Callable[[], None]


class AnimationPlayer:
    def __init__(self, model: GridModel, interval: float = DEFAULT_TICK_SECONDS) -> None:
        self.model = model
        self.interval = interval
        self.state: PlayerState = PlayerState.IDLE
        self.queue: List[GridNode] = []
        self._task: Optional[asyncio.Task] = None
        self._generation: int = 0
        self._tick_listeners: List[TickListener] = []
        self._finished_listeners: List[FinishedListener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_tick(self, callback: TickListener) -> None:
        self._tick_listeners.append(callback)

    def on_finished(self, callback: FinishedListener) -> None:
        self._finished_listeners.append(callback)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self.state == PlayerState.PLAYING

    def play(self, nodes: Iterable[GridNode]) -> asyncio.Task:
        """
        Clear the model and start inserting *nodes* in input order.

        Must be called from inside the running event loop.  Returns the
        playback task so callers can await it.
        """
        loop = asyncio.get_running_loop()
        self.stop()

        self.queue = [n.copy() for n in nodes]
        self._generation += 1
        generation = self._generation

        self.model.clear()
        self.model.reserve_group_ids(n.group_id for n in self.queue)
        max_row = max((n.row for n in self.queue), default=0)
        self.model.set_row_count(max_row + 1)

        self.state = PlayerState.PLAYING
        logger.info("Playback %d started: %d nodes, %d rows", generation, len(self.queue), max_row + 1)
        self._task = loop.create_task(self._run(list(self.queue), generation))
        return self._task

    def replay(self) -> Optional[asyncio.Task]:
        """Play the last queue again; no-op when nothing was ever played."""
        if not self.queue:
            return None
        return self.play(self.queue)

    def stop(self) -> None:
        """Cancel the running playback, if any, and return to IDLE."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Playback cancelled")
        self.state = PlayerState.IDLE

    async def wait(self) -> None:
        """Wait for the current playback to finish (or be cancelled)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # ------------------------------------------------------------------
    # Timer body
    # ------------------------------------------------------------------

    async def _run(self, queue: List[GridNode], generation: int) -> None:
        for node in queue:
            await asyncio.sleep(self.interval)
            if generation != self._generation:
                return
            self.model.append(node.copy())
            for cb in self._tick_listeners:
                try:
                    cb(node)
                except Exception:
                    logger.exception("Playback tick listener failed")

        if generation != self._generation:
            return
        self.state = PlayerState.IDLE
        self._task = None
        logger.info("Playback %d finished", generation)
        for cb in self._finished_listeners:
            try:
                cb()
            except Exception:
                logger.exception("Playback finished listener failed")
