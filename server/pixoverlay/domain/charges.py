from __future__ import annotations
"""server/pixoverlay/domain/charges.py
~~~~~~~~~~~~~~~~~~~~~~~~
Cobrança Pix en attente de paiement (QR code affiché à l'utilisateur).
"""
from dataclasses import asdict, dataclass
from typing import Any, Optional


@dataclass
class PixCharge:
    payment_id: int
    status: str
    qr_text: Optional[str]
    qr_image_data: Optional[str]  # PNG encodé en base64
    expires_at: Optional[str]
    created_at: str

    @property
    def qr_image_src(self) -> Optional[str]:
        """Data-URI prête pour une balise <img>."""
        if not self.qr_image_data:
            return None
        return f"data:image/png;base64,{self.qr_image_data}"

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["qr_image_src"] = self.qr_image_src
        return d


def format_countdown(ms: float | None) -> Optional[str]:
    """
    Durée restante au format MM:SS (secondes tronquées, jamais négative).
        5000   -> "00:05"
        65_999 -> "01:05"
    """
    if ms is None:
        return None
    total = max(0, int(ms // 1000))
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"
