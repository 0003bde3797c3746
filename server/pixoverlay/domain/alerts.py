from __future__ import annotations
"""server/pixoverlay/domain/alerts.py
~~~~~~~~~~~~~~~~~~~~~~~~
Modèles d'alerte + normalisation du payload brut reçu sur le flux.

- RawAlertEvent   : payload non fiable (tous les champs optionnels, typés Any)
- NormalizedAlert : record interne strict, toujours complet
- AlertEntry      : NormalizedAlert + identifiant local + ordre d'insertion
                    (élément de la file d'affichage ET de l'historique)
"""
import math
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pixoverlay.domain.status import normalize_status, to_known_status


class RawAlertEvent(BaseModel):
    """Accepte les clés anglaises et les clés historiques en portugais."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    payment_id: Any = Field(None, validation_alias=AliasChoices("paymentId", "payment_id"))
    status: Any = None
    ok: Any = None
    payer_name: Any = Field(None, validation_alias=AliasChoices("payerName", "payer_name", "nome"))
    amount: Any = Field(None, validation_alias=AliasChoices("amount", "valor"))
    message: Any = Field(None, validation_alias=AliasChoices("message", "mensagem"))
    occurred_at: Any = Field(None, validation_alias=AliasChoices("occurredAt", "occurred_at", "em"))


class NormalizedAlert(BaseModel):
    model_config = ConfigDict(frozen=True)

    payment_id: int
    status: str
    raw_status: str
    payer_name: str
    amount: float = Field(ge=0)
    message: str = ""
    occurred_at: str


class AlertEntry(NormalizedAlert):
    id: str
    sequence: int


# ──────────────────────────────────────────────────────────────────────────────
# Coercitions tolérantes
# ──────────────────────────────────────────────────────────────────────────────

def _coerce_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        f = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        # OverflowError : entier JSON trop grand pour un float
        return None
    return f if math.isfinite(f) else None


def _coerce_payment_id(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    n = _coerce_number(value)
    return int(n) if n is not None else 0


def _coerce_amount(value: Any) -> float:
    n = _coerce_number(value)
    if n is None or n < 0:
        return 0.0
    return n


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_alert(payload: Mapping[str, Any], *, now_iso: str, anonymous_name: str) -> NormalizedAlert:
    """
    Construit un NormalizedAlert à partir d'un objet JSON quelconque.
    Ne lève pas : chaque champ manquant/illisible retombe sur sa valeur par défaut.
    """
    raw = RawAlertEvent.model_validate(dict(payload))

    status_token = normalize_status(raw.status, raw.ok)
    occurred_at = _coerce_text(raw.occurred_at)

    return NormalizedAlert(
        payment_id=_coerce_payment_id(raw.payment_id),
        status=to_known_status(status_token),
        raw_status=status_token,
        payer_name=_coerce_text(raw.payer_name) or anonymous_name,
        amount=_coerce_amount(raw.amount),
        message=_coerce_text(raw.message),
        occurred_at=occurred_at or now_iso,
    )


def make_entry(alert: NormalizedAlert, *, ingested_ms: float, sequence: int) -> AlertEntry:
    """Identifiant local : paymentId + instant d'ingestion + numéro d'ordre."""
    return AlertEntry(
        **alert.model_dump(),
        id=f"{alert.payment_id}-{int(ingested_ms)}-{sequence}",
        sequence=sequence,
    )
