"""Interface base do gateway de pagamento PIX (desacoplada)."""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Protocol, Union

from privebank.errors import ValidationError

PLACEHOLDER_TAX_ID = "000.000.000-00"
PIX_EXPIRES_IN_SECONDS = 1800  # 30 minutos
DEFAULT_CUSTOMER_NAME = "Cliente PriveBank"
DEFAULT_CUSTOMER_CELLPHONE = "(11) 9999-9999"


class PixStatus(str, Enum):
    """Status normalizado de uma cobrança PIX."""

    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "PixStatus":
        """Converte o status do provedor; valores desconhecidos viram UNKNOWN."""
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Customer:
    """Dados do pagador enviados ao gateway (CPF obrigatório)."""

    tax_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    cellphone: Optional[str] = None


@dataclass(frozen=True)
class CreateChargeResult:
    """Resultado da criação de uma cobrança PIX."""

    charge_id: str
    status: PixStatus
    br_code: str
    br_code_base64: Optional[str] = None
    expires_at: Optional[datetime] = None


def to_cents(amount: Decimal) -> int:
    """Valor em reais -> centavos (arredondamento half-up)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: Union[int, Decimal]) -> Decimal:
    """Centavos -> reais (sem arredondar, para conferência de valores)."""
    return Decimal(cents) / 100


def require_tax_id(customer: Optional[Customer]) -> str:
    """CPF é obrigatório para gerar PIX; o placeholder não conta."""
    tax_id = (customer.tax_id or "").strip() if customer else ""
    if not tax_id or tax_id == PLACEHOLDER_TAX_ID:
        raise ValidationError(
            "tax id required",
            detail="CPF é obrigatório para gerar PIX. Cadastre seu CPF em Minha Conta > Dados Pessoais.",
        )
    return tax_id


def default_description(amount: Decimal) -> str:
    return f"Depósito PriveBank - R$ {Decimal(amount):.2f}"


class PaymentGatewayProtocol(Protocol):
    """Protocolo do gateway de pagamento PIX."""

    name: str

    def create_charge(
        self,
        amount: Decimal,
        customer: Customer,
        user_id: str,
        description: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> CreateChargeResult:
        """Cria uma cobrança PIX e retorna dados para pagamento (código/QR)."""
        ...

    def check_status(self, charge_id: str) -> PixStatus:
        """Consulta o status atual da cobrança."""
        ...
