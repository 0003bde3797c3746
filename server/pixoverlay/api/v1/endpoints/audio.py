from __future__ import annotations
"""server/pixoverlay/api/v1/endpoints/audio.py
~~~~~~~~~~~~~~~~~~~~~~~~
État audio + déverrouillage.

La page overlay appelle POST /overlay/audio/unlock au démarrage, à chaque
geste (pointerdown/keydown/touchstart) et au retour de visibilité, tant que
l'état n'est pas `ready`.
"""
import logging

from fastapi import APIRouter, Depends

from pixoverlay.api.deps import get_runtime
from pixoverlay.api.schemas.audio import AudioUnlockRequest
from pixoverlay.application.runtime import OverlayRuntime
from pixoverlay.application.services.audio_service import AudioState

router = APIRouter(prefix="/overlay/audio")
log = logging.getLogger(__name__)


@router.get("")
async def get_audio(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    return runtime.audio.snapshot()


@router.post("/unlock")
async def unlock_audio(
    payload: AudioUnlockRequest | None = None,
    runtime: OverlayRuntime = Depends(get_runtime),
) -> dict:
    if runtime.audio.state != AudioState.READY:
        reason = payload.reason if payload else "gesture"
        log.debug("Audio unlock requested (%s)", reason)
        await runtime.audio.try_unlock()
    return runtime.audio.snapshot()
