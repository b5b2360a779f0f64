"""Hierarquia de exceções do PriveBank (depósitos PIX e carteira)."""

from typing import Any, Optional


class PriveBankError(Exception):
    """Base de todos os erros do PriveBank."""

    http_status = 500

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(PriveBankError):
    """Entrada inválida (valor <= 0, CPF ausente)."""

    http_status = 400


class GatewayError(PriveBankError):
    """Falha no gateway PIX (resposta não-2xx, resposta inválida ou rede)."""

    def __init__(
        self,
        message: str,
        *,
        payload: Any = None,
        http_status: int = 400,
        detail: Optional[str] = None,
    ):
        super().__init__(message, detail=detail)
        self.payload = payload
        self.http_status = http_status


class AuthError(PriveBankError):
    """Credencial ausente/inválida (bearer ou segredo do webhook)."""

    http_status = 401


class AccountNotFoundError(PriveBankError):
    """Usuário sem conta PriveBank."""

    http_status = 404


class AccountInactiveError(PriveBankError):
    """Conta PriveBank existe mas está desativada."""

    http_status = 409


class DepositNotFoundError(PriveBankError):
    """Depósito PIX desconhecido (ou de outro usuário)."""

    http_status = 404


class ConfigurationError(PriveBankError):
    """Configuração obrigatória ausente ou inválida (falha no startup)."""
