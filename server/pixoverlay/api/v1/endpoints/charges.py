from __future__ import annotations
"""
server/pixoverlay/api/v1/endpoints/charges.py
~~~~~~~~~~~~~~~~~~~~~~~~
File des QR codes Pix.

- GET  /overlay/charges               : file + actif + voisins + compte à rebours
- POST /overlay/charges               : crée une cobrança (backend) et la met en file
- PUT  /overlay/charges/active        : navigation explicite (payment_id ou null)
- POST /overlay/charges/active/close  : ferme l'actif, passe au premier restant
- POST /overlay/charges/navigate      : précédent / suivant (sans bouclage)

Notes :
- Un échec de création renvoie 502 avec un message court dans `detail` ;
  la file n'est pas touchée.
- Un formulaire invalide renvoie 422 (validation Pydantic).
"""
from fastapi import APIRouter, Depends, HTTPException, status

from pixoverlay.api.deps import get_runtime
from pixoverlay.api.schemas.charges import ActiveChargeUpdate, ChargeRequest, NavigateRequest
from pixoverlay.application.runtime import OverlayRuntime
from pixoverlay.application.services.charge_service import ChargeCreationError

router = APIRouter(prefix="/overlay/charges")


def _payload(runtime: OverlayRuntime) -> dict:
    return {**runtime.charges.snapshot(), **runtime.lifecycle.snapshot()}


@router.get("")
async def list_charges(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    return _payload(runtime)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_charge(
    payload: ChargeRequest,
    runtime: OverlayRuntime = Depends(get_runtime),
) -> dict:
    try:
        result = await runtime.charge_service.create_charge(payload)
    except ChargeCreationError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return {"charge": result.charge.to_dict(), "warning": result.warning, "queue": _payload(runtime)}


@router.put("/active")
async def set_active_charge(
    payload: ActiveChargeUpdate,
    runtime: OverlayRuntime = Depends(get_runtime),
) -> dict:
    runtime.charges.set_active(payload.payment_id)
    return _payload(runtime)


@router.post("/active/close")
async def close_active_charge(runtime: OverlayRuntime = Depends(get_runtime)) -> dict:
    runtime.charges.close_active()
    return _payload(runtime)


@router.post("/navigate")
async def navigate_charges(
    payload: NavigateRequest,
    runtime: OverlayRuntime = Depends(get_runtime),
) -> dict:
    if payload.direction == "previous":
        moved = runtime.charges.select_previous()
    else:
        moved = runtime.charges.select_next()
    return {**_payload(runtime), "moved": moved}
