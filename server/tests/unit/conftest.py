# ─────────────────────────────────────────────────────────────────────────────
# Conftest pour les TESTS UNITAIRES.
#
# Objectifs :
# - Fournir `pix_backend` : un faux backend Pix (httpx.MockTransport) qui
#   enregistre les requêtes reçues et répond ce que le test a configuré.
# - Fournir `runtime_factory` : fabrique d'OverlayRuntime câblé sur des
#   doublures (ManualClock, SQLite in-memory, FakeDevice, faux backend).
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import json

import httpx
import pytest


class FakePixBackend:
    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: object = {
            "paymentId": 42,
            "status": "pendente",
            "qrCode": "00020126...",
            "qrCodeBase64": "iVBORw0KGgo=",
            "expiresAt": None,
        }
        self.raise_exc: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=str(self.body))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def pix_backend():
    return FakePixBackend()


@pytest.fixture
def api_client(pix_backend):
    from pixoverlay.infrastructure.http.pix_api_client import PixApiClient

    return PixApiClient("http://backend.invalid", transport=pix_backend.transport)


@pytest.fixture
def runtime_factory(clock, kv_storage, device, pix_backend):
    from pixoverlay.application.runtime import OverlayRuntime
    from pixoverlay.core.config import Settings
    from pixoverlay.infrastructure.http.pix_api_client import PixApiClient

    def _factory() -> OverlayRuntime:
        return OverlayRuntime(
            clock=clock,
            storage=kv_storage,
            device=device,
            api_client=PixApiClient("http://backend.invalid", transport=pix_backend.transport),
            settings=Settings(STREAM_ENABLED=False),
        )

    return _factory
