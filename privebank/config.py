"""Configuração do serviço lida do ambiente (.env via python-dotenv)."""

import os
from dataclasses import dataclass

from privebank.errors import ConfigurationError

GATEWAYS = ("abacatepay", "example")
DEFAULT_DATABASE_URL = "sqlite:///./data/privebank.db"
DEFAULT_ABACATEPAY_BASE_URL = "https://api.abacatepay.com/v1"


@dataclass(frozen=True)
class Settings:
    """Configuração injetada no app, no gateway e no webhook."""

    webhook_secret: str
    auth_secret: str
    payment_gateway: str = "abacatepay"
    abacatepay_api_key: str = ""
    abacatepay_base_url: str = DEFAULT_ABACATEPAY_BASE_URL
    admin_token: str = ""
    database_url: str = DEFAULT_DATABASE_URL
    http_timeout: float = 15.0
    port: int = 8080
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if self.payment_gateway not in GATEWAYS:
            raise ConfigurationError(
                f"PAYMENT_GATEWAY inválido: {self.payment_gateway!r} (use {', '.join(GATEWAYS)})"
            )
        if self.payment_gateway == "abacatepay" and not self.abacatepay_api_key:
            raise ConfigurationError("ABACATEPAY_API_KEY ausente no ambiente/.env")
        if not self.webhook_secret:
            raise ConfigurationError("ABACATEPAY_WEBHOOK_SECRET ausente no ambiente/.env")
        if not self.auth_secret:
            raise ConfigurationError("AUTH_SECRET_KEY ausente no ambiente/.env")
        if self.http_timeout <= 0:
            raise ConfigurationError("HTTP_TIMEOUT_SECONDS deve ser maior que zero")

    @classmethod
    def from_env(cls) -> "Settings":
        """Monta a configuração a partir das variáveis de ambiente."""
        try:
            http_timeout = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))
            port = int(os.getenv("PORT", "8080"))
        except ValueError as e:
            raise ConfigurationError(f"Valor numérico inválido na configuração: {e}") from e

        return cls(
            payment_gateway=(os.getenv("PAYMENT_GATEWAY") or "abacatepay").strip().lower(),
            abacatepay_api_key=(os.getenv("ABACATEPAY_API_KEY") or "").strip(),
            abacatepay_base_url=(
                os.getenv("ABACATEPAY_BASE_URL") or DEFAULT_ABACATEPAY_BASE_URL
            ).strip().rstrip("/"),
            webhook_secret=(os.getenv("ABACATEPAY_WEBHOOK_SECRET") or "").strip(),
            auth_secret=(os.getenv("AUTH_SECRET_KEY") or "").strip(),
            admin_token=(os.getenv("ADMIN_TOKEN") or "").strip(),
            database_url=(os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL).strip(),
            http_timeout=http_timeout,
            port=port,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        )
