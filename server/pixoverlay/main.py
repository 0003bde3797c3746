from __future__ import annotations
"""server/pixoverlay/main.py
~~~~~~~~~~~~~~~~~~~~~~~~
Point d'entrée FastAPI de l'overlay Pix.

    uvicorn pixoverlay.main:app --app-dir server
"""
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pixoverlay.api.v1.router import api_router
from pixoverlay.application.runtime import OverlayRuntime
from pixoverlay.core.clock import LoopClock
from pixoverlay.core.config import settings
from pixoverlay.core.logging import setup_logging
from pixoverlay.infrastructure.audio.playback import CommandPlaybackDevice
from pixoverlay.infrastructure.http.pix_api_client import PixApiClient
from pixoverlay.infrastructure.persistence.database.session import dispose_engine, init_db
from pixoverlay.infrastructure.persistence.repositories.kv_repository import DatabaseKeyValueStorage

RuntimeFactory = Callable[[], OverlayRuntime]


def build_runtime() -> OverlayRuntime:
    """Câblage de production (horloge réelle, SQLAlchemy, player externe, httpx)."""
    init_db()
    return OverlayRuntime(
        clock=LoopClock(),
        storage=DatabaseKeyValueStorage(),
        device=CommandPlaybackDevice(settings.SOUND_PATH, settings.SOUND_PLAYER_COMMAND),
        api_client=PixApiClient(
            settings.API_BASE_URL,
            create_path=settings.CHARGE_CREATE_PATH,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        ),
        settings=settings,
    )


def create_app(runtime_factory: Optional[RuntimeFactory] = None) -> FastAPI:
    factory = runtime_factory or build_runtime

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        runtime = factory()
        await runtime.start()
        app.state.runtime = runtime
        try:
            yield
        finally:
            # Teardown unique : flux, sons, timers d'affichage/compte à rebours.
            await runtime.aclose()
            app.state.runtime = None
            if runtime_factory is None:
                dispose_engine()

    app = FastAPI(title="Pix Alert Overlay", version="0.1.0", lifespan=lifespan)

    allow_origins: List[str] = []
    if origins := getattr(settings, "CORS_ALLOW_ORIGINS", None):
        allow_origins = [o.strip() for o in origins.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
