"""Webhook da AbacatePay: valida o segredo e repassa PIX pagos para a reconciliação."""

import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from privebank.errors import AccountInactiveError, AccountNotFoundError
from privebank.payments.gateway.base import PixStatus, from_cents
from privebank.security import secrets_match

logger = logging.getLogger(__name__)

BILLING_PAID = "billing.paid"

router = APIRouter()


class _PixQrCodeEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    status: Optional[str] = None
    amount: Optional[Decimal] = None  # centavos, só conferência

    @field_validator("amount", mode="before")
    @classmethod
    def loose_amount(cls, v):
        """Valor inválido vira None: o crédito usa o valor registrado no depósito."""
        if v is None or isinstance(v, bool):
            return None
        try:
            value = Decimal(str(v))
        except (InvalidOperation, ValueError):
            return None
        return value if value.is_finite() else None


class _EventData(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    pix_qr_code: Optional[_PixQrCodeEvent] = Field(default=None, alias="pixQrCode")


class WebhookEvent(BaseModel):
    """Formato reconhecido: billing.paid com data.pixQrCode.status == PAID."""

    model_config = ConfigDict(extra="ignore")

    event: Optional[str] = None
    data: Optional[_EventData] = None

    def paid_pix(self) -> Optional[_PixQrCodeEvent]:
        pix = self.data.pix_qr_code if self.data else None
        if self.event != BILLING_PAID or pix is None:
            return None
        if PixStatus.parse(pix.status) != PixStatus.PAID:
            return None
        return pix


def _parse_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


@router.post("/abacatepay/webhook")
async def abacatepay_webhook(
    request: Request,
    webhook_secret: Optional[str] = Query(default=None, alias="webhookSecret"),
) -> Any:
    """
    Recebe notificação da AbacatePay.
    Responde sempre 200 (exceto 401 para segredo inválido) para o provedor
    não reenviar eventos que foram ignorados de propósito.
    """
    settings = request.app.state.settings
    if not secrets_match(webhook_secret, settings.webhook_secret):
        logger.warning("Webhook recusado: webhookSecret ausente ou inválido")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    body = _parse_body(await request.body())
    if not body:
        logger.info("Webhook recebido sem corpo válido")
        return {"message": "no body"}

    try:
        pix = WebhookEvent.model_validate(body).paid_pix()
    except PydanticValidationError:
        pix = None
    if pix is None:
        logger.info("Webhook recebido mas não processado: %s", body.get("event") if isinstance(body, dict) else None)
        return {"message": "Webhook received but not processed"}

    logger.info("Webhook: PIX %s foi pago", pix.id)
    service = request.app.state.service
    try:
        result = await asyncio.to_thread(service.check_and_settle, pix.id, PixStatus.PAID)
    except (AccountNotFoundError, AccountInactiveError) as e:
        return {"message": "PIX paid but not credited", "error": e.message}

    if not result.processed:
        logger.info("Webhook: PIX %s já foi processado anteriormente", pix.id)
        return {"message": "PIX already processed", **result.to_dict()}

    reported = from_cents(pix.amount) if pix.amount is not None else None
    if reported is not None and reported != result.amount:
        logger.warning(
            "Webhook: valor do PIX %s (R$ %s) difere do depósito registrado (R$ %s)",
            pix.id, reported, result.amount,
        )
    return {"message": "PIX processed successfully", **result.to_dict()}
