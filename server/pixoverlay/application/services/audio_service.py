from __future__ import annotations
"""server/pixoverlay/application/services/audio_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Son des alertes + machine à états de « déverrouillage » audio.

États :
- init    : aucune tentative encore
- ready   : lecture vérifiée
- blocked : tentative de déverrouillage échouée, aucun son en attente
- pending : un vrai son d'alerte a échoué, il sera joué au déverrouillage

Les échecs de lecture ne remontent jamais à l'appelant : ils deviennent un
état + un message (`hint`) destiné à l'opérateur.
"""
import logging
from typing import Optional

from pixoverlay.core.clock import Clock
from pixoverlay.core.observable import Observable
from pixoverlay.infrastructure.audio.playback import PlaybackDevice, PlaybackError

log = logging.getLogger(__name__)

HINT_BLOCKED = "Som bloqueado pelo navegador. Clique/tecla 1x para liberar."
HINT_PENDING = "Som bloqueado. Clique/tecla 1x para liberar e tocar os próximos."


class AudioState:
    INIT = "init"
    READY = "ready"
    BLOCKED = "blocked"
    PENDING = "pending"


class AudioUnlock(Observable):
    def __init__(self, device: PlaybackDevice, clock: Clock, *, throttle_ms: int = 450):
        super().__init__()
        self.device = device
        self.clock = clock
        self.throttle_ms = throttle_ms
        self.state = AudioState.INIT
        self.hint = ""
        self._owed = False
        self._last_play_at: Optional[float] = None

    @property
    def sound_owed(self) -> bool:
        return self._owed

    def _set(self, state: str, hint: str) -> None:
        changed = (state, hint) != (self.state, self.hint)
        self.state = state
        self.hint = hint
        if changed:
            self._emit("audio")

    async def try_unlock(self) -> bool:
        """Essai muet (play/pause à volume nul) pour obtenir le droit de jouer."""
        d = self.device
        try:
            d.position = 0.0
            d.muted = True
            d.volume = 0.0
            await d.play()
            d.pause()
            d.muted = False
            d.volume = 1.0
        except PlaybackError as exc:
            log.info("Audio unlock failed: %s", exc)
            state = AudioState.PENDING if self.state == AudioState.PENDING else AudioState.BLOCKED
            self._set(state, self.hint or HINT_BLOCKED)
            return False

        self._set(AudioState.READY, "")
        if self._owed:
            # Le son dû est joué tout de suite, sans passer par le throttle.
            self._owed = False
            self._last_play_at = self.clock.now_ms()
            await self._play()
        return True

    async def play_alert_sound(self) -> bool:
        """
        Joue le son d'alerte. Appels rapprochés (< throttle_ms) ignorés sans
        erreur ni mise en file. Retourne True si la lecture a démarré.
        """
        now = self.clock.now_ms()
        if self._last_play_at is not None and now - self._last_play_at < self.throttle_ms:
            return False
        self._last_play_at = now
        return await self._play()

    async def _play(self) -> bool:
        d = self.device
        try:
            d.position = 0.0
            d.muted = False
            d.volume = 1.0
            await d.play()
        except PlaybackError as exc:
            log.info("Alert sound blocked: %s", exc)
            self._owed = True
            self._set(AudioState.PENDING, HINT_PENDING)
            return False

        self._set(AudioState.READY, "")
        return True

    def snapshot(self) -> dict:
        return {"state": self.state, "hint": self.hint, "sound_owed": self._owed}
