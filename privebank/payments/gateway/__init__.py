"""Gateway de pagamento PIX (interface base + implementações)."""

from privebank.payments.gateway.abacatepay import AbacatePayGateway
from privebank.payments.gateway.base import (
    CreateChargeResult,
    Customer,
    PaymentGatewayProtocol,
    PixStatus,
)
from privebank.payments.gateway.example import ExampleGateway
from privebank.payments.gateway.factory import get_gateway

__all__ = [
    "AbacatePayGateway",
    "CreateChargeResult",
    "Customer",
    "ExampleGateway",
    "PaymentGatewayProtocol",
    "PixStatus",
    "get_gateway",
]
