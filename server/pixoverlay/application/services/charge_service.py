from __future__ import annotations
"""server/pixoverlay/application/services/charge_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Création d'une cobrança Pix puis mise en file du QR code.

- Appel backend via PixApiClient
- Réponse -> PixCharge (statut normalisé, PENDING par défaut)
- En cas d'échec : ChargeCreationError (message court affichable),
  la file n'est PAS modifiée.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import ValidationError

from pixoverlay.api.schemas.charges import ChargeCreationResponse, ChargeRequest
from pixoverlay.application.services.charge_queue_service import ChargeQueue
from pixoverlay.core.clock import Clock, now_iso
from pixoverlay.domain.charges import PixCharge
from pixoverlay.domain.status import PaymentStatus, normalize_status
from pixoverlay.infrastructure.http.pix_api_client import PixApiClient

log = logging.getLogger(__name__)

WARNING_NO_QR_IMAGE = "Pix gerado, mas não veio o QR Code Base64. Verifique a resposta do backend."


class ChargeCreationError(Exception):
    """Échec visible par l'utilisateur (message court dans args[0])."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class ChargeResult:
    charge: PixCharge
    warning: Optional[str] = None


class ChargeService:
    def __init__(self, client: PixApiClient, queue: ChargeQueue, clock: Clock):
        self.client = client
        self.queue = queue
        self.clock = clock

    async def create_charge(self, request: ChargeRequest) -> ChargeResult:
        try:
            data = await self.client.create_charge(request.to_backend_payload())
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            body = (exc.response.text or "").strip()[:200]
            log.warning("Charge creation refused: HTTP %s %s", code, body)
            raise ChargeCreationError(f"Falha ao gerar Pix (HTTP {code}). {body}".strip(), status_code=code) from exc
        except httpx.RequestError as exc:
            log.warning("Charge creation failed (network): %s", exc)
            raise ChargeCreationError("API Pix indisponível, tente novamente.") from exc
        except ValueError as exc:
            # Corps non-JSON
            log.warning("Charge creation returned invalid JSON: %s", exc)
            raise ChargeCreationError("Resposta inválida do backend Pix.") from exc

        try:
            resp = ChargeCreationResponse.model_validate(data)
        except ValidationError as exc:
            log.warning("Charge creation response rejected: %s", exc.errors()[:3])
            raise ChargeCreationError("Resposta inválida do backend Pix.") from exc

        charge = PixCharge(
            payment_id=resp.payment_id,
            status=normalize_status(resp.status, None) if resp.status else PaymentStatus.PENDING,
            qr_text=resp.qr_text or None,
            qr_image_data=resp.qr_image_data or None,
            expires_at=resp.expires_at or None,
            created_at=now_iso(self.clock),
        )
        self.queue.enqueue(charge)
        log.info("Charge %s queued (status=%s)", charge.payment_id, charge.status)

        warning = None if charge.qr_image_data else WARNING_NO_QR_IMAGE
        return ChargeResult(charge=charge, warning=warning)
