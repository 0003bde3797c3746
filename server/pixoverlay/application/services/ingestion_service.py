from __future__ import annotations
"""
server/pixoverlay/application/services/ingestion_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Point d'entrée unique des évènements Pix reçus sur le flux.

Rôle de `on_event(raw_json)` :
    - parser le JSON (échec => évènement ignoré, aucune exception)
    - normaliser via normalize_alert() (statut + valeurs par défaut)
    - répartir, dans cet ordre :
        1. file d'affichage (latence perçue minimale)
        2. son d'alerte (non bloquant)
        3. historique
        4. patch de statut de la cobrança, si elle est dans la file QR

Un statut UNKNOWN n'écrase jamais le statut d'une cobrança.
Aucun dédoublonnage : un évènement rejoué par le transport est ré-affiché.
"""

import itertools
import json
import logging
from typing import Callable, Optional

from pixoverlay.application.services.charge_queue_service import ChargeQueue
from pixoverlay.application.services.display_scheduler import DisplayScheduler
from pixoverlay.application.services.history_service import HistoryStore
from pixoverlay.core.clock import Clock, ms_to_iso
from pixoverlay.domain.alerts import AlertEntry, make_entry, normalize_alert
from pixoverlay.domain.status import PaymentStatus

logger = logging.getLogger(__name__)


class AlertIngestion:
    def __init__(
        self,
        *,
        clock: Clock,
        scheduler: DisplayScheduler,
        history: HistoryStore,
        charges: ChargeQueue,
        play_sound: Optional[Callable[[], None]] = None,
        anonymous_name: str = "Anônimo",
    ):
        self.clock = clock
        self.scheduler = scheduler
        self.history = history
        self.charges = charges
        self.play_sound = play_sound
        self.anonymous_name = anonymous_name
        self._seq = itertools.count(1)

    def on_event(self, raw_json: str | bytes) -> Optional[AlertEntry]:
        try:
            payload = json.loads(raw_json)
        except (TypeError, ValueError, RecursionError):
            logger.debug("Discarding unparseable event: %.80r", raw_json)
            return None
        if not isinstance(payload, dict):
            logger.debug("Discarding non-object event: %.80r", raw_json)
            return None

        now = self.clock.now_ms()
        alert = normalize_alert(payload, now_iso=ms_to_iso(now), anonymous_name=self.anonymous_name)
        entry = make_entry(alert, ingested_ms=now, sequence=next(self._seq))

        self.scheduler.enqueue(entry)
        if self.play_sound is not None:
            self.play_sound()
        self.history.record(entry)
        if entry.status != PaymentStatus.UNKNOWN:
            self.charges.update_status_if_exists(entry.payment_id, entry.status)

        logger.info(
            "Alert %s ingested (payment=%s status=%s amount=%.2f)",
            entry.id, entry.payment_id, entry.raw_status, entry.amount,
        )
        return entry
