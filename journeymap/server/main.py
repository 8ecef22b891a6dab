"""
FastAPI + Socket.IO server for the journey map editor.

Start with:
    python -m journeymap.server.main

Or via uvicorn directly:
    uvicorn journeymap.server.main:create_socket_app --factory --port 3001 --reload
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from journeymap.server.config import Settings, load_settings
from journeymap.server.relay.completion import CompletionService
from journeymap.server.relay.socket_server import RelayServer
from journeymap.server.routes.grid_routes import router
from journeymap.server.state import SessionState

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    completions: Optional[CompletionService] = None,
    session: Optional[SessionState] = None,
) -> FastAPI:
    """
    Build the REST app and its relay.

    The session and the relay are owned by the returned app
    (``app.state.session`` / ``app.state.relay``); nothing is created at
    import time.
    """
    settings = settings or Settings()
    session = session or SessionState(settings)
    completions = completions or CompletionService(model=settings.model, api_key=settings.openai_api_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("JourneyMap API starting (model=%s)", settings.model)
        yield
        session.player.stop()
        logger.info("JourneyMap API stopped")

    app = FastAPI(title="JourneyMap API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    app.state.settings = settings
    app.state.session = session
    app.state.relay = RelayServer(session, completions)
    return app


# ---------------------------------------------------------------------------
# Wrap with Socket.IO ASGI layer
# ---------------------------------------------------------------------------

def create_socket_app(settings: Optional[Settings] = None) -> Any:
    """
    Top-level ASGI app passed to uvicorn.

    Socket.IO connections are handled under ``settings.socket_path``; all
    other requests are forwarded to the inner FastAPI app.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    return app.state.relay.asgi_app(app, socketio_path=settings.socket_path)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(
        "journeymap.server.main:create_socket_app",
        factory=True,
        host=_settings.host,
        port=_settings.port,
    )
