"""FastAPI application exposing the Number-BATTLE game and solver."""

from __future__ import annotations

import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from _02_agents.offload import OffloadConfig
from _02_agents.tablebase.storage import TablebaseSource, TablebaseStore
from _04_ui.api import actions, game, hints
from _04_ui.core import config
from _04_ui.core.session import SessionStore
from _04_ui.services.ai import AiServices

logger = logging.getLogger(__name__)


def offload_config_from_env() -> OffloadConfig | None:
    """Offload settings from the environment, or ``None`` when disabled."""
    if config.OFFLOAD_BACKEND in ("", "0", "off", "false", "no"):
        return None
    backend = "thread" if config.OFFLOAD_BACKEND in ("1", "on", "true", "yes") else config.OFFLOAD_BACKEND
    return OffloadConfig(backend=backend, timeout=config.OFFLOAD_TIMEOUT)


def create_app(
    tablebase: TablebaseStore | None = None,
    tablebase_source: TablebaseSource | None = config.TABLEBASE_SOURCE,
    offload_config: OffloadConfig | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        tablebase: Pre-built store to use; otherwise one is created and
            loaded from ``tablebase_source`` at startup.
        tablebase_source: Path or URL of the artifact; ``None`` builds the
            table in-process.
        offload_config: Background worker settings; defaults to the
            environment, where the worker is off unless enabled.
        rng: Random source for the CPU strength policies.
    """
    sessions = SessionStore()
    services = AiServices.create(
        tablebase=tablebase,
        tablebase_source=tablebase_source,
        offload_config=offload_config if offload_config is not None else offload_config_from_env(),
        rng=rng,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.start()
        try:
            yield
        finally:
            services.close()

    app = FastAPI(title="Number-BATTLE", version="0.1.0", lifespan=lifespan)
    app.state.sessions = sessions
    app.state.services = services

    game.set_store(sessions)
    actions.set_store(sessions, services)
    hints.set_store(sessions, services)

    app.include_router(game.router)
    app.include_router(actions.router)
    app.include_router(hints.router)
    return app


__all__ = ["create_app", "offload_config_from_env"]
