from __future__ import annotations
"""server/pixoverlay/api/v1/endpoints/history.py
~~~~~~~~~~~~~~~~~~~~~~~~
Historique des alertes (plus récente en tête).
"""
from fastapi import APIRouter, Depends

from pixoverlay.api.deps import get_runtime
from pixoverlay.application.runtime import OverlayRuntime

router = APIRouter(prefix="/overlay/history")


def _payload(runtime: OverlayRuntime) -> dict:
    items = [e.model_dump(mode="json") for e in runtime.history.records]
    return {"items": items, "total": len(items), "unread": runtime.history.unread_count}


@router.get("")
async def list_history(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    return _payload(runtime)


@router.post("/read")
async def mark_history_read(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    runtime.history.mark_all_read()
    return _payload(runtime)


@router.delete("")
async def clear_history(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    runtime.history.clear()
    return _payload(runtime)
