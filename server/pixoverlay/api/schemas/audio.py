from __future__ import annotations
"""server/pixoverlay/api/schemas/audio.py
~~~~~~~~~~~~~~~~~~~~~~~~
Schémas audio.
"""
from typing import Literal
from pydantic import BaseModel


class AudioUnlockRequest(BaseModel):
    # Ce qui a déclenché la tentative (diagnostic uniquement).
    reason: Literal["startup", "gesture", "visibility"] = "gesture"
