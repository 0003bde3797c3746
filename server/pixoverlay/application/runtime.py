from __future__ import annotations
"""server/pixoverlay/application/runtime.py
~~~~~~~~~~~~~~~~~~~~~~~~
Assemblage des composants de l'overlay + teardown unique.

    flux SSE ──► AlertIngestion.on_event ──► DisplayScheduler
                                         ├─► AudioUnlock (tâche asyncio)
                                         ├─► HistoryStore
                                         └─► ChargeQueue.update_status_if_exists

    POST /overlay/charges ──► ChargeService ──► ChargeQueue ◄── ChargeLifecycle (timers)

Chaque composant possède son état ; le runtime ne fait que câbler.
`aclose()` arrête le flux, annule les sons en cours et TOUS les timers.
"""
import asyncio
import logging
from typing import Callable, Optional

from pixoverlay.application.services.audio_service import AudioUnlock
from pixoverlay.application.services.charge_queue_service import ChargeLifecycle, ChargeQueue
from pixoverlay.application.services.charge_service import ChargeService
from pixoverlay.application.services.display_scheduler import DisplayScheduler
from pixoverlay.application.services.history_service import HistoryStore
from pixoverlay.application.services.ingestion_service import AlertIngestion
from pixoverlay.core.clock import Clock
from pixoverlay.core.config import Settings, settings as default_settings
from pixoverlay.infrastructure.audio.playback import PlaybackDevice
from pixoverlay.infrastructure.http.pix_api_client import PixApiClient
from pixoverlay.infrastructure.persistence.repositories.kv_repository import KeyValueStorage
from pixoverlay.infrastructure.stream.sse_client import ConnectionState, EventStreamClient

logger = logging.getLogger(__name__)


class OverlayRuntime:
    def __init__(
        self,
        *,
        clock: Clock,
        storage: KeyValueStorage,
        device: PlaybackDevice,
        api_client: PixApiClient,
        settings: Settings = default_settings,
    ):
        self.settings = settings
        self.clock = clock
        self.api_client = api_client

        self.scheduler = DisplayScheduler(clock, display_ms=settings.DISPLAY_MS, gap_ms=settings.GAP_MS)
        self.audio = AudioUnlock(device, clock, throttle_ms=settings.SOUND_THROTTLE_MS)
        self.history = HistoryStore(storage, key=settings.HISTORY_STORAGE_KEY, limit=settings.HISTORY_LIMIT)
        self.charges = ChargeQueue()
        self.lifecycle = ChargeLifecycle(
            self.charges,
            clock,
            settle_ms=settings.APPROVED_SETTLE_MS,
            grace_ms=settings.EXPIRED_GRACE_MS,
            tick_ms=settings.COUNTDOWN_TICK_MS,
        )
        self.ingestion = AlertIngestion(
            clock=clock,
            scheduler=self.scheduler,
            history=self.history,
            charges=self.charges,
            play_sound=self.request_sound,
            anonymous_name=settings.ANONYMOUS_PAYER_NAME,
        )
        self.charge_service = ChargeService(api_client, self.charges, clock)

        self.stream: Optional[EventStreamClient] = None
        self._stream_task: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    # --- Cycle de vie ---------------------------------------------------------

    async def start(self, *, stream: Optional[bool] = None) -> None:
        loaded = self.history.load()
        logger.info("History loaded: %d record(s)", loaded)
        self.lifecycle.start()
        await self.audio.try_unlock()

        enabled = self.settings.STREAM_ENABLED if stream is None else stream
        if enabled:
            url = self.settings.API_BASE_URL.rstrip("/") + self.settings.ALERTS_STREAM_PATH
            self.stream = EventStreamClient(
                url,
                {self.settings.ALERTS_EVENT_NAME: self.ingestion.on_event},
                reconnect_delay=self.settings.STREAM_RECONNECT_SECONDS,
                max_backoff=self.settings.STREAM_MAX_BACKOFF_SECONDS,
                connect_timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            )
            self._stream_task = asyncio.create_task(self.stream.run())
            logger.info("Subscribed to %s (event=%s)", url, self.settings.ALERTS_EVENT_NAME)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.stream is not None:
            self.stream.stop()
        if self._stream_task is not None:
            self._stream_task.cancel()
            await asyncio.gather(self._stream_task, return_exceptions=True)
        for t in list(self._tasks):
            t.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        # Un son encore en cours ne doit pas survivre au teardown.
        await self.audio.device.stop()

        self.scheduler.dispose()
        self.lifecycle.dispose()
        await self.api_client.aclose()
        logger.info("Overlay runtime closed")

    # --- Son ------------------------------------------------------------------

    def request_sound(self) -> None:
        """Lance la lecture sans bloquer l'ingestion."""
        self._spawn(self.audio.play_alert_sound())

    def _spawn(self, coro) -> None:
        if self._closed:
            coro.close()
            return
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            # Pas de boucle (appel synchrone hors serveur) : on abandonne la lecture.
            coro.close()
            logger.debug("No running loop, sound request dropped")
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # --- Vues -----------------------------------------------------------------

    @property
    def connection_state(self) -> str:
        return self.stream.state if self.stream is not None else ConnectionState.CONNECTING

    def subscribe_all(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Abonne `listener` à tous les composants ; retourne le désabonnement global."""
        sources = [self.scheduler, self.audio, self.history, self.charges]
        if self.stream is not None:
            sources.append(self.stream)
        unsubs = [s.subscribe(listener) for s in sources]

        def _unsubscribe() -> None:
            for u in unsubs:
                u()

        return _unsubscribe

    def snapshot(self) -> dict:
        current = self.scheduler.current
        return {
            "connection": self.connection_state,
            "display": {
                "state": self.scheduler.state,
                "current": current.model_dump(mode="json") if current else None,
                "pending": len(self.scheduler.pending),
            },
            "audio": self.audio.snapshot(),
            "history": {
                "unread": self.history.unread_count,
                "count": len(self.history.records),
            },
            "charges": {**self.charges.snapshot(), **self.lifecycle.snapshot()},
        }
