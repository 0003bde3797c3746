from __future__ import annotations
"""server/pixoverlay/api/v1/router.py
~~~~~~~~~~~~~~~~~~~~~~~~
Router principal API v1.
"""
from fastapi import APIRouter
from pixoverlay.api.v1.endpoints import health, alerts, history, charges, audio


api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(alerts.router, tags=["overlay"])
api_router.include_router(history.router, tags=["history"])
api_router.include_router(charges.router, tags=["charges"])
api_router.include_router(audio.router, tags=["audio"])
