from __future__ import annotations
"""server/pixoverlay/infrastructure/stream/sse_client.py
~~~~~~~~~~~~~~~~~~~~~~~~
Client Server-Sent Events (httpx, asyncio) pour le flux d'alertes Pix.

- Parse `event:` / `data:` / `id:` / `retry:` et ignore les commentaires (`:`)
- Dispatch par nom d'évènement vers des handlers `handler(data: str)`
- Expose un état de connexion : connecting / connected / error
- Reconnexion automatique avec backoff exponentiel plafonné + jitter ;
  un `retry:` envoyé par le serveur remplace le délai de base

Le client ne fait aucune déduplication : un évènement rejoué après
reconnexion est redélivré tel quel.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import httpx

from pixoverlay.core.observable import Observable

logger = logging.getLogger(__name__)

Handler = Callable[[str], None]


class ConnectionState:
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class ServerSentEvent:
    event: str
    data: str
    id: Optional[str] = None
    retry_ms: Optional[int] = None


class SseParser:
    """Assemble les lignes reçues en évènements (séparateur : ligne vide)."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._id: Optional[str] = None
        self._retry: Optional[int] = None
        self.last_event_id: Optional[str] = None

    def feed_line(self, line: str) -> Optional[ServerSentEvent]:
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        return None

    def _dispatch(self) -> Optional[ServerSentEvent]:
        if self._id is not None:
            self.last_event_id = self._id
        retry = self._retry
        if not self._data:
            self._event = ""
            self._retry = None
            if retry is not None:
                return ServerSentEvent(event="", data="", id=self.last_event_id, retry_ms=retry)
            return None
        ev = ServerSentEvent(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self.last_event_id,
            retry_ms=retry,
        )
        self._event = ""
        self._data = []
        self._retry = None
        return ev


class EventStreamClient(Observable):
    def __init__(
        self,
        url: str,
        handlers: Mapping[str, Handler],
        *,
        reconnect_delay: float = 3.0,
        max_backoff: float = 30.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.url = url
        self.handlers = dict(handlers)
        self._base_delay = reconnect_delay
        self._max_backoff = max_backoff
        self._timeout = httpx.Timeout(connect_timeout, read=None)
        self._transport = transport
        self._stop = asyncio.Event()
        self._attempt = 0
        self.state = ConnectionState.CONNECTING
        self.last_event_id: Optional[str] = None

    def _set_state(self, state: str) -> None:
        if state != self.state:
            self.state = state
            self._emit("connection")

    def _next_backoff(self) -> float:
        # Backoff exponentiel + jitter, plafonné à max_backoff.
        if self._attempt == 0:
            self._attempt = 1
            return self._base_delay
        prev = self._base_delay * (2 ** (self._attempt - 1))
        cap = min(self._max_backoff, prev * 2)
        self._attempt += 1
        return min(random.uniform(self._base_delay, max(cap, self._base_delay)), self._max_backoff)

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            while not self._stop.is_set():
                self._set_state(ConnectionState.CONNECTING)
                try:
                    await self._consume(client)
                    if self._stop.is_set():
                        break
                    logger.info("SSE stream closed by server, reconnecting")
                except httpx.HTTPError as exc:
                    logger.warning("SSE stream error: %s", exc)
                self._set_state(ConnectionState.ERROR)
                await self._sleep(self._next_backoff())
        logger.info("SSE client stopped")

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _consume(self, client: httpx.AsyncClient) -> None:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id

        async with client.stream("GET", self.url, headers=headers) as resp:
            if resp.status_code != 200:
                raise httpx.HTTPStatusError(
                    f"SSE non-200 status={resp.status_code}", request=resp.request, response=resp
                )
            self._attempt = 0
            self._set_state(ConnectionState.CONNECTED)
            parser = SseParser()
            async for line in resp.aiter_lines():
                if self._stop.is_set():
                    return
                ev = parser.feed_line(line)
                if ev is not None:
                    self._handle(ev)

    def _handle(self, ev: ServerSentEvent) -> None:
        if ev.retry_ms is not None:
            self._base_delay = ev.retry_ms / 1000.0
        if ev.id is not None:
            self.last_event_id = ev.id
        if not ev.event:
            return
        if ev.event == "connected":
            self._set_state(ConnectionState.CONNECTED)
        handler = self.handlers.get(ev.event)
        if handler is None:
            return
        try:
            handler(ev.data)
        except Exception:
            # Un handler défaillant ne doit pas couper le flux.
            logger.exception("SSE handler failed for event %s", ev.event)
