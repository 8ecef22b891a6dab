"""
Consumer side of the relay.

Tracks the text shown in the result pane, the request id of the latest
prompt, and turns ``completion`` payloads into grid updates: a payload that
decodes as a Document is imported and played back, anything else (error
literals) is shown verbatim.
"""
from __future__ import annotations

import asyncio
import logging
import random
import uuid
from typing import Any, Optional

from journeymap.core.AnimationPlayer import AnimationPlayer
from journeymap.core.Document import decode_document, rows_to_grid
from journeymap.core.GridModel import GridModel
from journeymap.core.TableEditor import TableEditor
from journeymap.core.Types import DocumentFormatError
from journeymap.server.relay.relay_events import unpack_completion

logger = logging.getLogger(__name__)

GENERATING = "Generating response..."


class PromptSession:
    def __init__(
        self,
        model: GridModel,
        player: AnimationPlayer,
        normalize_rows: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.model = model
        self.player = player
        self.normalize_rows = normalize_rows
        self.rng = rng or random.Random()
        self.display_text: str = ""
        self.latest_request_id: Optional[str] = None
        self.table = TableEditor()

    @property
    def is_generating(self) -> bool:
        return self.display_text == GENERATING

    def begin_request(self) -> str:
        """Show the placeholder and return the id of the new request."""
        self.latest_request_id = uuid.uuid4().hex
        self.display_text = GENERATING
        return self.latest_request_id

    def handle_completion(self, payload: Any) -> bool:
        """
        Apply one ``completion`` payload.  Returns True when a Document was
        imported into the grid.

        Replies tagged with an older request id are ignored so the last
        request wins.  Untagged replies are always applied.
        """
        text, request_id = unpack_completion(payload)
        if request_id is not None and request_id != self.latest_request_id:
            logger.info("Ignoring stale completion for request %s", request_id)
            return False

        self.display_text = text
        try:
            rows = decode_document(text, normalize_rows=self.normalize_rows)
        except DocumentFormatError:
            logger.info("Completion is not a document; showing it verbatim")
            self.table = TableEditor()
            return False

        imported = rows_to_grid(rows, rng=self.rng)
        self.table = TableEditor(rows)
        self.player.stop()
        self.model.replace(imported.row_labels, [])
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to tick on; lay the nodes out at once.
            for node in imported.nodes:
                self.model.append(node)
            self.model.set_row_count(max((n.row for n in imported.nodes), default=0) + 1)
        else:
            self.player.play(imported.nodes)
        return True
