from __future__ import annotations
"""server/pixoverlay/core/config.py
~~~~~~~~~~~~~~~~~~~~~~~~
Paramètres (pydantic-settings).
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+pysqlite:///./pixoverlay.db"
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: Optional[str] = None

    # Backend Pix (flux SSE + création de cobranças)
    API_BASE_URL: str = "http://localhost:8080"
    ALERTS_STREAM_PATH: str = "/alerts/stream"
    ALERTS_EVENT_NAME: str = "pix"
    CHARGE_CREATE_PATH: str = "/pix/cobrar"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    STREAM_ENABLED: bool = True
    STREAM_RECONNECT_SECONDS: float = Field(3.0, ge=0)
    STREAM_MAX_BACKOFF_SECONDS: float = Field(30.0, ge=0)

    # Affichage des alertes
    DISPLAY_MS: int = 6000
    GAP_MS: int = 250
    ANONYMOUS_PAYER_NAME: str = "Anônimo"

    # Historique
    HISTORY_LIMIT: int = Field(50, ge=1)
    HISTORY_STORAGE_KEY: str = "pix-history:v1"

    # Son
    SOUND_PATH: str = "sounds/pix.mp3"
    SOUND_PLAYER_COMMAND: str = "ffplay -nodisp -autoexit -loglevel quiet"
    SOUND_THROTTLE_MS: int = 450

    # File des QR codes
    APPROVED_SETTLE_MS: int = 1400
    EXPIRED_GRACE_MS: int = 1200
    COUNTDOWN_TICK_MS: int = Field(300, ge=1)

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

settings = Settings()
