from __future__ import annotations
"""server/pixoverlay/domain/status.py
~~~~~~~~~~~~~~~~~~~~~~~~
Normalisation des statuts de paiement Pix.

Le backend envoie des statuts hétérogènes (anglais, portugais, suffixes :
"APROVADO", "APPROVED_PIX", "pendente"...) et parfois seulement un drapeau
`ok`. On ramène tout ça à un vocabulaire fermé.

Fonction pure : ne lève jamais, renvoie toujours une chaîne.
"""
import unicodedata
from typing import Any


class PaymentStatus:
    """Statuts canoniques."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    ALL = frozenset({PENDING, APPROVED, EXPIRED, CANCELLED, UNKNOWN})


_CANONICAL = frozenset({
    PaymentStatus.APPROVED,
    PaymentStatus.PENDING,
    PaymentStatus.CANCELLED,
    PaymentStatus.EXPIRED,
})

# Ordre de priorité figé : le premier motif trouvé gagne.
_CONTAINS_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("APPROV", "APROV"), PaymentStatus.APPROVED),
    (("PEND",), PaymentStatus.PENDING),
    (("CANCEL",), PaymentStatus.CANCELLED),
    (("EXPIR",), PaymentStatus.EXPIRED),
)


def is_truthy_flag(ok: Any) -> bool:
    """`ok` peut arriver en bool, nombre ou chaîne : true / 1 / "1" (casse ignorée)."""
    if ok is True:
        return True
    if isinstance(ok, bool) or ok is None:
        return False
    if isinstance(ok, (int, float)):
        return ok == 1
    if isinstance(ok, str):
        return ok.strip().lower() in ("true", "1")
    return False


def _strip_accents(s: str) -> str:
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_status(raw_status: Any = None, ok: Any = None) -> str:
    s = "" if raw_status is None else str(raw_status).strip().upper()

    if not s and is_truthy_flag(ok):
        return PaymentStatus.APPROVED

    folded = _strip_accents(s)
    for needles, status in _CONTAINS_RULES:
        if any(n in folded for n in needles):
            return status

    if s in _CANONICAL:
        return s

    return s or PaymentStatus.UNKNOWN


def to_known_status(value: str) -> str:
    """Rabat toute valeur hors vocabulaire fermé sur UNKNOWN."""
    return value if value in PaymentStatus.ALL else PaymentStatus.UNKNOWN
