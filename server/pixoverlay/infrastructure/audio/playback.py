from __future__ import annotations
"""server/pixoverlay/infrastructure/audio/playback.py
~~~~~~~~~~~~~~~~~~~~~~~~
Périphérique de lecture du son d'alerte (un seul fichier, handle réutilisable).

Le volume et le mute ne sont manipulés que par AudioUnlock.
Toute impossibilité de jouer est remontée en PlaybackError ; c'est
l'équivalent d'un autoplay bloqué côté navigateur.
"""
import asyncio
import logging
import os
import shlex
import shutil
from typing import Optional, Protocol

log = logging.getLogger(__name__)


class PlaybackError(Exception):
    """Lecture refusée ou impossible (player absent, fichier manquant, spawn KO)."""


class PlaybackDevice(Protocol):
    muted: bool
    volume: float
    position: float

    async def play(self) -> None: ...

    def pause(self) -> None: ...

    async def stop(self) -> None: ...


class CommandPlaybackDevice:
    """
    Joue `sound_path` via un player externe (ffplay, paplay, afplay...).

    - Lecture mutée : essai « à blanc », on vérifie seulement que le player et
      le fichier sont disponibles (rien n'est lancé).
    - Lecture normale : on (re)lance le player depuis le début ; une lecture
      encore en cours est interrompue.
    """

    def __init__(self, sound_path: str, command: str):
        self.sound_path = sound_path
        self.argv = shlex.split(command or "")
        self.muted = False
        self.volume = 1.0
        self.position = 0.0
        self._proc: Optional[asyncio.subprocess.Process] = None

    def _check_available(self) -> str:
        if not self.argv:
            raise PlaybackError("Aucun player audio configuré")
        exe = shutil.which(self.argv[0])
        if exe is None:
            raise PlaybackError(f"Player introuvable : {self.argv[0]}")
        if not os.path.isfile(self.sound_path):
            raise PlaybackError(f"Fichier son introuvable : {self.sound_path}")
        return exe

    async def play(self) -> None:
        exe = self._check_available()
        if self.muted or self.volume <= 0:
            return
        await self.stop()
        try:
            self._proc = await asyncio.create_subprocess_exec(
                exe,
                *self.argv[1:],
                self.sound_path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise PlaybackError(str(exc)) from exc

    def pause(self) -> None:
        proc = self._proc
        self._proc = None
        if proc is not None and proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass

    async def stop(self) -> None:
        """Interrompt la lecture en cours et attend la fin du process (teardown)."""
        proc = self._proc
        self.pause()
        if proc is not None:
            await proc.wait()
