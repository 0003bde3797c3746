from __future__ import annotations
"""server/pixoverlay/infrastructure/persistence/database/base.py
~~~~~~~~~~~~~~~~~~~~~~~~
Base déclarative ; l'import des modèles en fin de fichier enregistre la
table kv_entries dans Base.metadata (utilisé par init_db()).
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


from pixoverlay.infrastructure.persistence.database.models import *  # noqa: F403,F401,E402

__all__ = ["Base"]
