from __future__ import annotations
"""server/pixoverlay/api/schemas/charges.py
~~~~~~~~~~~~~~~~~~~~~~~~
Schémas cobrança Pix (formulaire entrant + réponse du backend).
"""
import math
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def parse_brl_amount(value: Any) -> float:
    """
    "10,00" -> 10.0 ; "1.234,56" -> 1234.56 ; 12.5 -> 12.5
    Lève ValueError si illisible.
    """
    if isinstance(value, bool):
        raise ValueError("valor inválido")
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        normalized = value.strip().replace(".", "").replace(",", ".", 1)
        n = float(normalized)
    else:
        raise ValueError("valor inválido")
    if not math.isfinite(n):
        raise ValueError("valor inválido")
    return n


class ChargeRequest(BaseModel):
    payer_name: str = Field(max_length=60)
    amount: float
    email: str
    message: Optional[str] = Field(default=None, max_length=140)

    @field_validator("payer_name", mode="before")
    @classmethod
    def validate_payer_name(cls, v):
        v = (v or "").strip() if isinstance(v, str) or v is None else v
        if not v:
            raise ValueError("Informe o nome.")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        v = (v or "").strip() if isinstance(v, str) or v is None else v
        if not isinstance(v, str) or "@" not in v:
            raise ValueError("Informe um e-mail válido.")
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        try:
            n = parse_brl_amount(v)
        except ValueError:
            raise ValueError("Informe um valor válido (ex: 10,00).") from None
        if n <= 0:
            raise ValueError("Informe um valor válido (ex: 10,00).")
        return round(n, 2)

    @field_validator("message", mode="before")
    @classmethod
    def blank_message_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None

    def to_backend_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"nome": self.payer_name, "valor": self.amount, "email": self.email}
        if self.message:
            payload["mensagem"] = self.message
        return payload


class ChargeCreationResponse(BaseModel):
    """Réponse du backend ; seules `paymentId` est obligatoire."""
    model_config = ConfigDict(extra="ignore")

    payment_id: int = Field(validation_alias=AliasChoices("paymentId", "payment_id"))
    status: Optional[str] = None
    qr_text: Optional[str] = Field(None, validation_alias=AliasChoices("qrCode", "qrText", "qr_text"))
    qr_image_data: Optional[str] = Field(
        None, validation_alias=AliasChoices("qrCodeBase64", "qrImageData", "qr_image_data")
    )
    expires_at: Optional[str] = Field(None, validation_alias=AliasChoices("expiresAt", "expires_at"))


class ActiveChargeUpdate(BaseModel):
    payment_id: Optional[int] = None


class NavigateRequest(BaseModel):
    direction: Literal["previous", "next"]

