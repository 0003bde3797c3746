from __future__ import annotations
"""server/pixoverlay/infrastructure/http/pix_api_client.py
~~~~~~~~~~~~~~~~~~~~~~~~
Client HTTP du backend Pix (création de cobrança).

Serveur→serveur via httpx.AsyncClient. Le `transport` est injectable pour les
tests (httpx.MockTransport) : aucun appel réseau en unit.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class PixApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        create_path: str = "/pix/cobrar",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.create_path = create_path
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def create_charge(self, payload: dict[str, Any]) -> Any:
        """
        POST du formulaire ; lève httpx.HTTPStatusError si réponse non-2xx,
        httpx.RequestError si le backend est injoignable.
        """
        resp = await self._client.post(
            self.create_path,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
        return resp.json()

    async def aclose(self) -> None:
        await self._client.aclose()
