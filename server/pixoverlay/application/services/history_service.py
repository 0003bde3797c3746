from __future__ import annotations
"""server/pixoverlay/application/services/history_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Historique des alertes : borné, le plus récent en tête, persisté.

- record()        : ajoute en tête, tronque à `limit`, incrémente le compteur non-lus
- persist()       : écrit la liste (déjà bornée) dans le stockage durable
- load()          : relit au démarrage ; contenu absent/illisible => historique vide
- clear()         : vide la liste + supprime la copie durable
- mark_all_read() : remet le compteur non-lus à zéro

La persistance est « best effort » : une erreur de stockage est loggée puis
ignorée, l'historique continue en mémoire pour la session.
Pas de dédoublonnage par paymentId (c'est un journal, pas un ensemble).
"""
import json
import logging
from typing import Any

from pydantic import ValidationError

from pixoverlay.core.observable import Observable
from pixoverlay.domain.alerts import AlertEntry
from pixoverlay.infrastructure.persistence.repositories.kv_repository import KeyValueStorage

log = logging.getLogger(__name__)


class HistoryStore(Observable):
    def __init__(self, storage: KeyValueStorage, *, key: str, limit: int = 50):
        super().__init__()
        self.storage = storage
        self.key = key
        self.limit = limit
        self._records: list[AlertEntry] = []
        self._unread = 0

    @property
    def records(self) -> tuple[AlertEntry, ...]:
        return tuple(self._records)

    @property
    def unread_count(self) -> int:
        return self._unread

    def record(self, entry: AlertEntry) -> None:
        self._records = [entry, *self._records][: self.limit]
        self._unread = min(self._unread + 1, self.limit)
        self.persist()
        self._emit("history")

    def mark_all_read(self) -> None:
        if self._unread:
            self._unread = 0
            self._emit("history")

    def clear(self) -> None:
        self._records = []
        self._unread = 0
        try:
            self.storage.remove_item(self.key)
        except Exception as exc:
            log.warning("History storage remove failed: %s", exc)
        self._emit("history")

    # --- Stockage durable -----------------------------------------------------

    def persist(self) -> bool:
        payload = json.dumps(
            [e.model_dump(mode="json") for e in self._records[: self.limit]],
            ensure_ascii=False,
        )
        try:
            self.storage.set_item(self.key, payload)
            return True
        except Exception as exc:
            log.warning("History persist failed (in-memory only): %s", exc)
            return False

    def load(self) -> int:
        """Recharge l'historique ; retourne le nombre d'entrées retenues."""
        try:
            raw = self.storage.get_item(self.key)
        except Exception as exc:
            log.warning("History load failed, starting empty: %s", exc)
            raw = None

        self._records = parse_history(raw, limit=self.limit)
        self._emit("history")
        return len(self._records)


def parse_history(raw: str | None, *, limit: int) -> list[AlertEntry]:
    """Désérialise sans jamais échouer : tout contenu inattendu => []."""
    if not raw:
        return []
    try:
        data: Any = json.loads(raw)
    except (ValueError, RecursionError):
        return []
    if not isinstance(data, list):
        return []

    out: list[AlertEntry] = []
    for item in data:
        if not isinstance(item, dict) or not isinstance(item.get("id"), str):
            continue
        try:
            out.append(AlertEntry.model_validate(item))
        except ValidationError:
            log.debug("History record dropped: %r", item.get("id"))
            continue
        if len(out) >= limit:
            break
    return out
