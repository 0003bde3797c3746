# server/tests/conftest.py
"""
Conftest *global* pour toute la suite de tests.

Points clés :
- Pose des ENV sûres AVANT tout import pixoverlay.* (pas de flux SSE réel,
  DB SQLite in-memory) pour que Settings() les voie.
- Fournit les fixtures communes :
  - clock       : ManualClock (temps simulé, rien ne s'exécute sans advance())
  - kv_storage  : stockage clé/valeur SQLAlchemy sur SQLite in-memory
  - device      : faux périphérique audio (bloquable, compte les lectures)
  - make_entry  : fabrique d'AlertEntry
  - run         : exécute une coroutine sans pytest-asyncio
"""

import asyncio
import os
import sys
import importlib

import pytest


def pytest_configure(config) -> None:
    """S'exécute avant la collecte → parfait pour poser les ENV lues par Settings()."""
    os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    os.environ.setdefault("STREAM_ENABLED", "0")
    os.environ.setdefault("API_BASE_URL", "http://backend.invalid")

    # Si la config a déjà été importée, on la recharge avec ces ENV.
    if "pixoverlay.core.config" in sys.modules:
        importlib.reload(sys.modules["pixoverlay.core.config"])


# ============================================================================
# Helpers
# ============================================================================
def _run(coro):
    """
    Exécute une coroutine sans nécessiter pytest-anyio/trio.
    - Essaye d'abord asyncio.run()
    - Si un event loop est déjà actif (rare selon config), fallback sur run_until_complete
    """
    try:
        return asyncio.run(coro)
    except RuntimeError:
        loop = asyncio.get_event_loop()
        return loop.run_until_complete(coro)


@pytest.fixture
def run():
    return _run


# ============================================================================
# Horloge simulée
# ============================================================================
@pytest.fixture
def clock():
    from pixoverlay.core.clock import ManualClock

    return ManualClock()


# ============================================================================
# Stockage durable : SQLite in-memory partagée + create_all
# ============================================================================
@pytest.fixture
def kv_storage():
    from pixoverlay.infrastructure.persistence.database import session as db_session
    from pixoverlay.infrastructure.persistence.repositories.kv_repository import DatabaseKeyValueStorage

    db_session.dispose_engine()
    db_session.init_engine("sqlite+pysqlite:///:memory:")
    db_session.init_db()
    try:
        yield DatabaseKeyValueStorage()
    finally:
        db_session.dispose_engine()


# ============================================================================
# Faux périphérique audio
# ============================================================================
class FakeDevice:
    """
    - `blocked=True` : chaque play() lève PlaybackError (autoplay refusé)
    - `plays`        : (muted, volume) de chaque play() réussi
    """

    def __init__(self, blocked: bool = False):
        self.blocked = blocked
        self.muted = False
        self.volume = 1.0
        self.position = 0.0
        self.plays: list[tuple[bool, float]] = []
        self.attempts = 0
        self.paused = 0
        self.stopped = 0

    async def play(self) -> None:
        from pixoverlay.infrastructure.audio.playback import PlaybackError

        self.attempts += 1
        if self.blocked:
            raise PlaybackError("autoplay blocked")
        self.plays.append((self.muted, self.volume))

    def pause(self) -> None:
        self.paused += 1

    async def stop(self) -> None:
        self.stopped += 1

    @property
    def audible_plays(self) -> int:
        return sum(1 for muted, volume in self.plays if not muted and volume > 0)


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def blocked_device():
    return FakeDevice(blocked=True)


# ============================================================================
# Fabrique d'alertes
# ============================================================================
@pytest.fixture
def make_entry():
    from pixoverlay.domain.alerts import AlertEntry

    def _make(sequence: int, payment_id: int | None = None, **overrides) -> AlertEntry:
        pid = payment_id if payment_id is not None else 1000 + sequence
        data = dict(
            id=f"{pid}-1700000000000-{sequence}",
            sequence=sequence,
            payment_id=pid,
            status="APPROVED",
            raw_status="APPROVED",
            payer_name=f"Doador {sequence}",
            amount=10.0,
            message="",
            occurred_at="2024-01-01T12:00:00+00:00",
        )
        data.update(overrides)
        return AlertEntry(**data)

    return _make
