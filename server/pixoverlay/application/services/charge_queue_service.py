from __future__ import annotations
"""server/pixoverlay/application/services/charge_queue_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
File des cobranças Pix en attente + transitions automatiques.

ChargeQueue : liste ordonnée + pointeur `active_payment_id` (seul propriétaire).
    - enqueue / set_active / update_status / update_status_if_exists
    - close_active() : SEUL chemin de suppression
    - navigation précédent/suivant sans bouclage

ChargeLifecycle : s'abonne à la file et pilote, sur une horloge :
    - APPROVED actif  -> close_active() après APPROVED_SETTLE_MS
    - expires_at      -> compte à rebours (tick COUNTDOWN_TICK_MS), à zéro : EXPIRED
    - EXPIRED actif   -> close_active() après EXPIRED_GRACE_MS
"""
import logging
from typing import Optional

from pixoverlay.core.clock import Clock, TimerGroup, TimerHandle, iso_to_ms
from pixoverlay.core.observable import Observable
from pixoverlay.domain.charges import PixCharge, format_countdown
from pixoverlay.domain.status import PaymentStatus

log = logging.getLogger(__name__)


class ChargeQueue(Observable):
    def __init__(self) -> None:
        super().__init__()
        self._charges: list[PixCharge] = []
        self.active_payment_id: Optional[int] = None

    # --- Lecture --------------------------------------------------------------

    @property
    def charges(self) -> tuple[PixCharge, ...]:
        return tuple(self._charges)

    def __len__(self) -> int:
        return len(self._charges)

    def find(self, payment_id: int) -> Optional[PixCharge]:
        return next((c for c in self._charges if c.payment_id == payment_id), None)

    def get_active(self) -> Optional[PixCharge]:
        if self.active_payment_id is None:
            return None
        return self.find(self.active_payment_id)

    @property
    def is_open(self) -> bool:
        """Un QR est affiché (pointeur actif non nul)."""
        return self.active_payment_id is not None

    def _active_index(self) -> int:
        if self.active_payment_id is None:
            return -1
        for i, c in enumerate(self._charges):
            if c.payment_id == self.active_payment_id:
                return i
        return -1

    @property
    def previous_id(self) -> Optional[int]:
        i = self._active_index()
        return self._charges[i - 1].payment_id if i > 0 else None

    @property
    def next_id(self) -> Optional[int]:
        i = self._active_index()
        if 0 <= i < len(self._charges) - 1:
            return self._charges[i + 1].payment_id
        return None

    # --- Mutations ------------------------------------------------------------

    def enqueue(self, charge: PixCharge) -> None:
        for i, c in enumerate(self._charges):
            if c.payment_id == charge.payment_id:
                # Un seul QR par paymentId : on remplace sur place.
                log.info("Charge %s already queued, replaced", charge.payment_id)
                self._charges[i] = charge
                break
        else:
            self._charges.append(charge)
        if self.active_payment_id is None:
            self.active_payment_id = charge.payment_id
        self._emit("charges")

    def set_active(self, payment_id: Optional[int]) -> None:
        # Pas de validation : l'appelant navigue parmi des ids connus.
        self.active_payment_id = payment_id
        self._emit("charges")

    def select_previous(self) -> bool:
        target = self.previous_id
        if target is None:
            return False
        self.set_active(target)
        return True

    def select_next(self) -> bool:
        target = self.next_id
        if target is None:
            return False
        self.set_active(target)
        return True

    def update_status(self, payment_id: int, status: str) -> None:
        changed = False
        for c in self._charges:
            if c.payment_id == payment_id and c.status != status:
                c.status = status
                changed = True
        if changed:
            self._emit("charges")

    def update_status_if_exists(self, payment_id: int, status: str) -> bool:
        if self.find(payment_id) is None:
            return False
        self.update_status(payment_id, status)
        return True

    def close_active(self) -> None:
        if self.active_payment_id is None:
            return
        self._charges = [c for c in self._charges if c.payment_id != self.active_payment_id]
        self.active_payment_id = self._charges[0].payment_id if self._charges else None
        self._emit("charges")

    def snapshot(self) -> dict:
        return {
            "items": [c.to_dict() for c in self._charges],
            "active_payment_id": self.active_payment_id,
            "previous_id": self.previous_id,
            "next_id": self.next_id,
            "open": self.is_open,
        }


class ChargeLifecycle:
    """
    Transitions automatiques de la charge active.

    Les timers sont (ré)armés quand la charge active ou son statut change ;
    une fermeture différée ne s'applique que si son paymentId est toujours
    l'actif (un close opérateur ou l'autre délai l'a peut-être devancée).
    """

    def __init__(
        self,
        queue: ChargeQueue,
        clock: Clock,
        *,
        settle_ms: int = 1400,
        grace_ms: int = 1200,
        tick_ms: int = 300,
    ):
        self.queue = queue
        self.clock = clock
        self.settle_ms = settle_ms
        self.grace_ms = grace_ms
        self.tick_ms = tick_ms
        self._timers = TimerGroup(clock)
        self._unsubscribe = None

        self._settle_for: Optional[int] = None
        self._settle_timer: Optional[TimerHandle] = None
        self._grace_for: Optional[int] = None
        self._grace_timer: Optional[TimerHandle] = None
        self._countdown_for: Optional[tuple[int, str]] = None
        self._tick_timer: Optional[TimerHandle] = None
        self.remaining_ms: Optional[float] = None

    @property
    def countdown(self) -> Optional[str]:
        return format_countdown(self.remaining_ms)

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.queue.subscribe(lambda _topic: self.reconcile())
        self.reconcile()

    def dispose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._timers.cancel_all()
        self._settle_for = self._grace_for = None
        self._settle_timer = self._grace_timer = self._tick_timer = None
        self._countdown_for = None

    # --- Réconciliation -------------------------------------------------------

    def reconcile(self) -> None:
        active = self.queue.get_active()
        pid = active.payment_id if active is not None else None
        status = active.status if active is not None else None

        want_settle = pid if status == PaymentStatus.APPROVED else None
        if want_settle != self._settle_for:
            self._timers.cancel(self._settle_timer)
            self._settle_timer = None
            self._settle_for = want_settle
            if want_settle is not None:
                self._settle_timer = self._timers.call_later(
                    self.settle_ms, lambda: self._close_if_active(want_settle)
                )

        want_grace = pid if status == PaymentStatus.EXPIRED else None
        if want_grace != self._grace_for:
            self._timers.cancel(self._grace_timer)
            self._grace_timer = None
            self._grace_for = want_grace
            if want_grace is not None:
                self._grace_timer = self._timers.call_later(
                    self.grace_ms, lambda: self._close_if_active(want_grace)
                )

        want_countdown = None
        if active is not None and active.expires_at and iso_to_ms(active.expires_at) is not None:
            want_countdown = (active.payment_id, active.expires_at)
        if want_countdown != self._countdown_for:
            self._timers.cancel(self._tick_timer)
            self._tick_timer = None
            self._countdown_for = want_countdown
            self.remaining_ms = None
            if want_countdown is not None:
                self._tick()
        elif want_countdown is not None and self._tick_timer is None and status != PaymentStatus.EXPIRED:
            # Échéance passée mais statut ré-écrit (évènement en retard) : on re-force EXPIRED.
            self._tick()

    def _tick(self) -> None:
        self._tick_timer = None
        key = self._countdown_for
        if key is None:
            return
        payment_id, expires_at = key
        expires_ms = iso_to_ms(expires_at)
        if expires_ms is None:
            return

        remaining = expires_ms - self.clock.now_ms()
        if remaining <= 0:
            self.remaining_ms = 0.0
            log.info("Charge %s expired", payment_id)
            # Idempotent si déjà EXPIRED ; le tick s'arrête ici.
            self.queue.update_status(payment_id, PaymentStatus.EXPIRED)
            return

        self.remaining_ms = remaining
        # Dernier tick raccourci pour tomber pile sur l'échéance.
        self._tick_timer = self._timers.call_later(min(self.tick_ms, remaining), self._tick)

    def _close_if_active(self, payment_id: int) -> None:
        if payment_id == self._settle_for:
            self._settle_for, self._settle_timer = None, None
        if payment_id == self._grace_for:
            self._grace_for, self._grace_timer = None, None
        if self.queue.active_payment_id != payment_id:
            return
        log.info("Auto-closing charge %s", payment_id)
        self.queue.close_active()

    def snapshot(self) -> dict:
        return {"remaining_ms": self.remaining_ms, "countdown": self.countdown}
