from __future__ import annotations
"""server/pixoverlay/application/services/display_scheduler.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Planificateur d'affichage des alertes : une seule alerte à l'écran à la fois,
dans l'ordre d'arrivée strict (FIFO), chacune visible DISPLAY ms puis suivie
d'un blanc de GAP ms.

Machine à états :

    IDLE ──enqueue──► SHOWING ──DISPLAY──► BLANK ──GAP──► SHOWING | IDLE

Pas d'annulation en cours d'affichage, sauf `dispose()` (teardown).
"""
import logging
from collections import deque
from typing import Optional

from pixoverlay.core.clock import Clock, TimerGroup
from pixoverlay.core.observable import Observable
from pixoverlay.domain.alerts import AlertEntry

log = logging.getLogger(__name__)


class DisplayState:
    IDLE = "idle"
    SHOWING = "showing"
    BLANK = "blank"


class DisplayScheduler(Observable):
    def __init__(self, clock: Clock, *, display_ms: int = 6000, gap_ms: int = 250):
        super().__init__()
        self.display_ms = display_ms
        self.gap_ms = gap_ms
        self._timers = TimerGroup(clock)
        self._queue: deque[AlertEntry] = deque()
        self._showing = False
        self._current: Optional[AlertEntry] = None
        self._disposed = False

    # --- Lecture --------------------------------------------------------------

    @property
    def current(self) -> Optional[AlertEntry]:
        return self._current

    @property
    def showing(self) -> bool:
        return self._showing

    @property
    def state(self) -> str:
        if not self._showing:
            return DisplayState.IDLE
        return DisplayState.SHOWING if self._current is not None else DisplayState.BLANK

    @property
    def pending(self) -> tuple[AlertEntry, ...]:
        return tuple(self._queue)

    # --- Transitions ----------------------------------------------------------

    def enqueue(self, entry: AlertEntry) -> None:
        if self._disposed:
            log.debug("Scheduler disposed, alert %s ignored", entry.id)
            return
        self._queue.append(entry)
        if not self._showing:
            self.advance()

    def advance(self) -> None:
        if self._disposed:
            return
        if not self._queue:
            was_showing = self._showing
            self._showing = False
            self._current = None
            if was_showing:
                self._emit("display")
            return

        entry = self._queue.popleft()
        self._showing = True
        self._set_current(entry)
        self._timers.call_later(self.display_ms, self._end_display)

    def _end_display(self) -> None:
        self._set_current(None)
        self._timers.call_later(self.gap_ms, self.advance)

    def _set_current(self, entry: Optional[AlertEntry]) -> None:
        changed = entry is not self._current
        self._current = entry
        if changed:
            self._emit("display")

    def dispose(self) -> None:
        """Annule tous les timers ; plus aucun changement de `current` ensuite."""
        self._disposed = True
        self._timers.cancel_all()
