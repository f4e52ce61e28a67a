from __future__ import annotations

import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.http import create_http_router
from .api.ws import create_websocket_endpoint
from .config import GameSettings
from .services.connection_manager import ConnectionManager
from .services.game_service import GameService
from .services.persistence import PersistenceWorker
from .services.timers import TimerRegistry
from .sessions import SessionManager
from .world import WorldEngine, WorldLoader, WorldRepository


BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
SETTINGS_FILE = DATA_DIR / "settings.yml"


def create_app(
    data_dir: Path = DATA_DIR,
    settings: Optional[GameSettings] = None,
) -> FastAPI:
    """Load the world from ``data_dir`` and wire the game service into a FastAPI app."""
    settings = settings or GameSettings.load(data_dir / "settings.yml")

    loader = WorldLoader(data_dir, settings)
    world_def, catalog = loader.load()
    repository = WorldRepository(loader.save_file)
    persistence = PersistenceWorker(repository)
    state = repository.load(world_def)
    world = WorldEngine(world_def, catalog, state, settings, random.Random(settings.seed))
    game_service = GameService(
        world,
        SessionManager(),
        ConnectionManager(),
        TimerRegistry(),
        persistence,
        settings.timers,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await game_service.start()
        try:
            yield
        finally:
            await game_service.stop()

    app = FastAPI(title="Jungeon MUD", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.game = game_service

    app.include_router(create_http_router(game_service))
    app.websocket("/ws")(create_websocket_endpoint(game_service))

    return app
