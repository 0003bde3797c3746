from __future__ import annotations
"""server/pixoverlay/core/clock.py
~~~~~~~~~~~~~~~~~~~~~~~~
Horloge + timers injectables.

Tous les délais (affichage/gap, throttle du son, settle/grace, ticks du compte
à rebours) passent par un `Clock`. On a deux implémentations :

- LoopClock   : temps réel, timers posés sur la boucle asyncio (`call_later`)
- ManualClock : temps simulé, avancé explicitement via `advance(ms)` (tests)

`TimerGroup` garde la trace des timers posés par un composant afin de pouvoir
tous les annuler d'un coup au teardown.
"""

import asyncio
import heapq
import itertools
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now_ms(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


def now_iso(clock: Clock) -> str:
    """Instant courant de l'horloge en ISO-8601 UTC."""
    return ms_to_iso(clock.now_ms())


def ms_to_iso(ms: float) -> str:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).isoformat()


def iso_to_ms(value: str | None) -> Optional[float]:
    """
    Convertit une date ISO-8601 en epoch millisecondes.
    Tolère le suffixe "Z" ; une date naïve est considérée UTC.
    Retourne None si la valeur est absente ou illisible.
    """
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        d = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if d.tzinfo is None:
        d = d.replace(tzinfo=timezone.utc)
    return d.timestamp() * 1000.0


# ──────────────────────────────────────────────────────────────────────────────
# Temps réel (asyncio)
# ──────────────────────────────────────────────────────────────────────────────

class LoopClock:
    """Horloge murale ; les callbacks sont exécutés par la boucle asyncio."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def now_ms(self) -> float:
        return time.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)


# ──────────────────────────────────────────────────────────────────────────────
# Temps simulé
# ──────────────────────────────────────────────────────────────────────────────

class _ManualTimer:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """
    Horloge pilotée à la main : rien ne se passe tant qu'on n'appelle pas
    `advance()`. Les timers dus sont exécutés dans l'ordre (échéance, pose),
    y compris ceux posés par un callback pendant l'avance.
    """

    DEFAULT_START_MS = 1_700_000_000_000.0

    def __init__(self, start_ms: float = DEFAULT_START_MS):
        self._now = float(start_ms)
        self._heap: list[tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._heap, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        """Nombre de timers encore armés."""
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    def advance(self, ms: float) -> None:
        target = self._now + ms
        while self._heap and self._heap[0][0] <= target:
            due, _, timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            self._now = due
            timer.callback()
        self._now = target


# ──────────────────────────────────────────────────────────────────────────────
# Regroupement pour le teardown
# ──────────────────────────────────────────────────────────────────────────────

class TimerGroup:
    """Timers d'un composant ; `cancel_all()` les annule tous."""

    def __init__(self, clock: Clock):
        self.clock = clock
        self._handles: set = set()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = None

        def _fire() -> None:
            self._handles.discard(handle)
            callback()

        handle = self.clock.call_later(delay_ms, _fire)
        self._handles.add(handle)
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None:
            return
        handle.cancel()
        self._handles.discard(handle)

    def cancel_all(self) -> None:
        for h in list(self._handles):
            h.cancel()
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)
