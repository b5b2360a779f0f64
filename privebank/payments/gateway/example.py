"""Gateway PIX de exemplo, em memória e sem API externa."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from privebank.errors import GatewayError
from privebank.payments.gateway.base import (
    PIX_EXPIRES_IN_SECONDS,
    CreateChargeResult,
    Customer,
    PixStatus,
    require_tax_id,
    to_cents,
)


class ExampleGateway:
    """Gateway em memória: cobra de mentira para desenvolver/testar o fluxo."""

    name = "example"

    def __init__(self) -> None:
        self._statuses: dict[str, PixStatus] = {}
        self.calls: list[tuple[str, str]] = []

    def create_charge(
        self,
        amount: Decimal,
        customer: Customer,
        user_id: str,
        description: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> CreateChargeResult:
        require_tax_id(customer)
        charge_id = f"pix_char_{uuid.uuid4().hex[:16]}"
        self.calls.append(("create", charge_id))
        self._statuses[charge_id] = PixStatus.PENDING
        return CreateChargeResult(
            charge_id=charge_id,
            status=PixStatus.PENDING,
            br_code=f"00020126580014br.gov.bcb.pix0136{charge_id}5204000053039865406{to_cents(amount)}",
            br_code_base64="data:image/png;base64,",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=PIX_EXPIRES_IN_SECONDS),
        )

    def check_status(self, charge_id: str) -> PixStatus:
        self.calls.append(("status", charge_id))
        if charge_id not in self._statuses:
            raise GatewayError("Failed to check PIX status", payload={"error": "Not found"})
        return self._statuses[charge_id]

    def mark_paid(self, charge_id: str) -> None:
        """Simula o pagamento da cobrança (usado em testes e no modo example)."""
        self._statuses[charge_id] = PixStatus.PAID

    def mark_expired(self, charge_id: str) -> None:
        self._statuses[charge_id] = PixStatus.EXPIRED
