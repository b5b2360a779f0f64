"""Factory do gateway de pagamento (retorna implementação conforme config)."""

from privebank.config import Settings
from privebank.payments.gateway.abacatepay import AbacatePayGateway
from privebank.payments.gateway.base import PaymentGatewayProtocol
from privebank.payments.gateway.example import ExampleGateway


def get_gateway(settings: Settings) -> PaymentGatewayProtocol:
    """
    Retorna a implementação do gateway conforme PAYMENT_GATEWAY.
    'abacatepay' (default) usa a API real; 'example' é o stub em memória.
    """
    if settings.payment_gateway == "example":
        return ExampleGateway()
    return AbacatePayGateway(
        api_key=settings.abacatepay_api_key,
        base_url=settings.abacatepay_base_url,
        timeout=settings.http_timeout,
    )
