from __future__ import annotations
"""server/pixoverlay/infrastructure/persistence/database/models/kv_entry.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table kv_entries : stockage clé/valeur durable (équivalent localStorage).
"""
from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from pixoverlay.infrastructure.persistence.database.base import Base
import datetime as dt


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: dt.datetime.now(dt.timezone.utc),
        onupdate=lambda: dt.datetime.now(dt.timezone.utc),
    )
