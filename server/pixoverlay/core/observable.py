from __future__ import annotations
"""server/pixoverlay/core/observable.py
~~~~~~~~~~~~~~~~~~~~~~~~
Abonnement minimal aux changements d'état d'un composant.

Chaque composant reste seul propriétaire de son état ; l'extérieur (lifecycle
des charges, flux SSE vers l'overlay) s'abonne au lieu de partager des
références mutables.
"""
import logging
from typing import Callable

log = logging.getLogger(__name__)

Listener = Callable[[str], None]


class Observable:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Enregistre `listener(topic)` ; retourne la fonction de désabonnement."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, topic: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(topic)
            except Exception:
                # Un abonné défaillant ne doit pas casser la mutation en cours.
                log.exception("Listener failed on %s", topic)
