from __future__ import annotations
"""server/pixoverlay/infrastructure/persistence/repositories/kv_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~
Repo clé/valeur (kv_entries) + adaptateur `KeyValueStorage` utilisé par
l'historique.
"""
from typing import Callable, ContextManager, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pixoverlay.infrastructure.persistence.database.models.kv_entry import KeyValueEntry
from pixoverlay.infrastructure.persistence.database.session import get_sync_session


class KeyValueRepository:
    """Repository pour la table kv_entries."""

    def __init__(self, session: Session):
        self.s = session

    def get(self, key: str) -> Optional[str]:
        row = self.s.scalar(select(KeyValueEntry).where(KeyValueEntry.key == key).limit(1))
        return row.value if row is not None else None

    def put(self, key: str, value: str) -> None:
        row = self.s.get(KeyValueEntry, key)
        if row is None:
            self.s.add(KeyValueEntry(key=key, value=value))
        else:
            row.value = value
        try:
            self.s.commit()
        except SQLAlchemyError:
            self.s.rollback()
            raise

    def delete(self, key: str) -> int:
        try:
            result = self.s.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            self.s.commit()
            return result.rowcount or 0
        except SQLAlchemyError:
            self.s.rollback()
            raise


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class DatabaseKeyValueStorage:
    """
    Stockage durable côté client, façon localStorage.
    Une session courte par opération ; les erreurs SQL remontent à l'appelant
    (c'est l'historique qui décide de les ignorer).
    """

    def __init__(self, session_factory: Callable[[], ContextManager[Session]] = get_sync_session):
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        with self._session_factory() as s:
            return KeyValueRepository(s).get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._session_factory() as s:
            KeyValueRepository(s).put(key, value)

    def remove_item(self, key: str) -> None:
        with self._session_factory() as s:
            KeyValueRepository(s).delete(key)
