"""
Runtime settings, read from the environment.

A ``.env`` file in the working directory (or the path in
``JOURNEYMAP_ENV_FILE``) is loaded first so OPENAI_API_KEY and friends are
available without a manual ``export``.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from journeymap.core.Types import DEFAULT_COLS, DEFAULT_TICK_SECONDS


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    model: str = "gpt-4o"
    host: str = "0.0.0.0"
    port: int = 3001
    socket_path: str = "api/socket"
    tick_seconds: float = DEFAULT_TICK_SECONDS
    cols: int = DEFAULT_COLS
    single_occupancy: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            model=env.get("JOURNEYMAP_MODEL", defaults.model),
            host=env.get("JOURNEYMAP_HOST", defaults.host),
            port=int(env.get("JOURNEYMAP_PORT", defaults.port)),
            socket_path=env.get("JOURNEYMAP_SOCKET_PATH", defaults.socket_path),
            tick_seconds=float(env.get("JOURNEYMAP_TICK_SECONDS", defaults.tick_seconds)),
            cols=int(env.get("JOURNEYMAP_COLS", defaults.cols)),
            single_occupancy=_as_bool(env.get("JOURNEYMAP_SINGLE_OCCUPANCY", "true")),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        )


def load_settings() -> Settings:
    load_dotenv(os.environ.get("JOURNEYMAP_ENV_FILE") or None)
    return Settings.from_env()
