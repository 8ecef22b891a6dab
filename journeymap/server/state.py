"""
SessionState — one editing session: the live grid, its animation player and
the companion editor contents.

Created by ``create_app()`` and reached from routes through
``request.app.state.session``.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from journeymap.core.AnimationPlayer import AnimationPlayer
from journeymap.core.Document import ImportedDocument, export_document, import_document
from journeymap.core.GridModel import GridModel
from journeymap.core.TableEditor import Storyboard, StructuredScenario, TableEditor
from journeymap.server.config import Settings

logger = logging.getLogger(__name__)


class SessionState:
    """Holds the grid model, the player and the side editors."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None) -> None:
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.model = GridModel(
            cols=self.settings.cols,
            single_occupancy=self.settings.single_occupancy,
            rng=self.rng,
        )
        self.player = AnimationPlayer(self.model, interval=self.settings.tick_seconds)
        self.table = TableEditor()
        self.scenario: Optional[StructuredScenario] = None
        self.storyboard: Optional[Storyboard] = None

    # ── Document exchange ───────────────────────────────────────────────────

    def export_document(self) -> List[Dict[str, Any]]:
        return export_document(self.model.row_labels, self.model.nodes)

    def import_document(self, payload: Any, normalize_rows: bool = False, play: bool = True) -> ImportedDocument:
        """
        Replace the grid with *payload*.

        On a format error nothing is changed.  With ``play`` the nodes are fed
        through the animation player (requires a running event loop);
        otherwise they are inserted at once.
        """
        imported = import_document(payload, normalize_rows=normalize_rows, rng=self.rng)
        self.player.stop()
        self.model.replace(imported.row_labels, [] if play else imported.nodes)
        if play:
            self.player.play(imported.nodes)
        logger.info(
            "Imported document: %d rows, %d nodes", len(imported.row_labels), len(imported.nodes)
        )
        return imported

    def reset(self) -> None:
        self.player.stop()
        self.model.replace([""], [])
        self.table = TableEditor()
        self.scenario = None
        self.storyboard = None
