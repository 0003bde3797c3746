from __future__ import annotations
"""
server/pixoverlay/api/v1/endpoints/alerts.py
~~~~~~~~~~~~~~~~~~~~~~~~
Vue d'ensemble de l'overlay + alertes.

- GET  /overlay/state          : snapshot complet (affichage, audio, historique, QR)
- GET  /overlay/stream         : snapshots poussés en SSE à chaque changement
- POST /overlay/events         : injecte un évènement brut (même chemin que le flux)
- GET  /overlay/alerts/current : alerte à l'écran
- GET  /overlay/connection     : état du flux amont (connecting/connected/error)
"""
import asyncio
import json

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from pixoverlay.api.deps import get_runtime
from pixoverlay.application.runtime import OverlayRuntime

router = APIRouter(prefix="/overlay")

HEARTBEAT_SECONDS = 15.0


@router.get("/state")
async def get_state(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    return runtime.snapshot()


@router.get("/alerts/current")
async def get_current_alert(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    current = runtime.scheduler.current
    return {
        "state": runtime.scheduler.state,
        "current": current.model_dump(mode="json") if current else None,
        "pending": len(runtime.scheduler.pending),
    }


@router.get("/connection")
async def get_connection(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    return {"state": runtime.connection_state}


@router.post("/events", status_code=status.HTTP_202_ACCEPTED)
async def post_event(request: Request, runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    """Corps = JSON brut d'un évènement Pix ; un corps illisible est ignoré (accepted=False)."""
    raw = await request.body()
    entry = runtime.ingestion.on_event(raw)
    return {"accepted": entry is not None, "id": entry.id if entry else None}


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.get("/stream")
async def stream_state(request: Request, runtime: OverlayRuntime = Depends(get_runtime)):
    """
    Abonnement de la page overlay : un snapshot `state` à la connexion puis à
    chaque changement (rafales regroupées), commentaire `: ping` sinon.
    """
    changes: asyncio.Queue[str] = asyncio.Queue()
    unsubscribe = runtime.subscribe_all(changes.put_nowait)

    async def _gen():
        try:
            yield "event: connected\ndata: {}\n\n"
            yield _sse("state", runtime.snapshot())
            while not await request.is_disconnected():
                try:
                    await asyncio.wait_for(changes.get(), timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield ": ping\n\n"
                    continue
                while not changes.empty():
                    changes.get_nowait()
                yield _sse("state", runtime.snapshot())
        finally:
            unsubscribe()

    return StreamingResponse(
        _gen(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
