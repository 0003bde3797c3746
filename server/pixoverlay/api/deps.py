from __future__ import annotations
"""server/pixoverlay/api/deps.py
~~~~~~~~~~~~~~~~~~~~~~~~
Dépendances FastAPI.
"""
from fastapi import HTTPException, Request, status

from pixoverlay.application.runtime import OverlayRuntime


def get_runtime(request: Request) -> OverlayRuntime:
    """Runtime posé sur app.state par le lifespan."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Overlay not started")
    return runtime
