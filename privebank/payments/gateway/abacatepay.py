"""Gateway PIX AbacatePay (API REST v1, QR Code PIX)."""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from privebank.errors import GatewayError
from privebank.payments.gateway.base import (
    DEFAULT_CUSTOMER_CELLPHONE,
    DEFAULT_CUSTOMER_NAME,
    PIX_EXPIRES_IN_SECONDS,
    CreateChargeResult,
    Customer,
    PixStatus,
    default_description,
    require_tax_id,
    to_cents,
)

logger = logging.getLogger(__name__)


class _PixQrCodeData(BaseModel):
    """Bloco `data` da resposta de criação (campos que usamos)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: Optional[str] = None
    br_code: str = Field(alias="brCode")
    br_code_base64: Optional[str] = Field(default=None, alias="brCodeBase64")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")


class _PixStatusData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None


class _Envelope(BaseModel):
    """Envelope padrão da AbacatePay: {"data": ..., "error": ...}."""

    model_config = ConfigDict(extra="ignore")

    data: Optional[dict[str, Any]] = None
    error: Any = None


class AbacatePayGateway:
    """Cliente HTTP síncrono da AbacatePay (cria cobrança e consulta status)."""

    name = "abacatepay"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.abacatepay.com/v1",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> tuple[int, Any]:
        try:
            resp = self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Erro de rede ao chamar AbacatePay %s %s: %s", method, path, e)
            raise GatewayError(
                "Payment gateway unreachable", http_status=500, detail=str(e)
            ) from e
        try:
            body = resp.json()
        except ValueError:
            body = {"error": resp.text[:500]}
        return resp.status_code, body

    def create_charge(
        self,
        amount: Decimal,
        customer: Customer,
        user_id: str,
        description: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> CreateChargeResult:
        tax_id = require_tax_id(customer)

        payload = {
            "amount": to_cents(amount),
            "expiresIn": PIX_EXPIRES_IN_SECONDS,
            "description": description or default_description(amount),
            "customer": {
                "name": customer.name or DEFAULT_CUSTOMER_NAME,
                "cellphone": customer.cellphone or DEFAULT_CUSTOMER_CELLPHONE,
                "email": customer.email,
                "taxId": tax_id,
            },
            "metadata": {
                "externalId": external_id or f"deposit_{user_id}_{int(time.time() * 1000)}",
                "userId": user_id,
            },
        }
        status_code, body = self._request("POST", "/pixQrCode/create", payload)

        if not 200 <= status_code < 300:
            logger.error("AbacatePay recusou a criação do PIX (%s): %s", status_code, body)
            error = body.get("error") if isinstance(body, dict) else None
            raise GatewayError(
                "Failed to create PIX QR Code",
                payload=body,
                detail=str(error or "Unknown error"),
            )

        try:
            envelope = _Envelope.model_validate(body)
            if envelope.data is None:
                raise GatewayError("Invalid response from payment gateway", payload=body, http_status=500)
            data = _PixQrCodeData.model_validate(envelope.data)
        except PydanticValidationError as e:
            logger.error("Resposta inesperada da AbacatePay: %s", body)
            raise GatewayError(
                "Invalid response from payment gateway", payload=body, http_status=500
            ) from e

        expires_at = data.expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        logger.info("PIX %s criado na AbacatePay (R$ %.2f, status %s)", data.id, amount, data.status)
        return CreateChargeResult(
            charge_id=data.id,
            status=PixStatus.parse(data.status),
            br_code=data.br_code,
            br_code_base64=data.br_code_base64,
            expires_at=expires_at,
        )

    def check_status(self, charge_id: str) -> PixStatus:
        status_code, body = self._request("GET", f"/pixQrCode/{charge_id}")
        if not 200 <= status_code < 300:
            logger.error("Erro ao consultar status do PIX %s (%s): %s", charge_id, status_code, body)
            raise GatewayError("Failed to check PIX status", payload=body)
        try:
            envelope = _Envelope.model_validate(body)
            data = _PixStatusData.model_validate(envelope.data or {})
        except PydanticValidationError:
            return PixStatus.UNKNOWN
        return PixStatus.parse(data.status)
