"""Serviço de domínio: depósitos PIX (criação, conferência e crédito único)."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from privebank.db.ledger import LedgerStore, as_utc
from privebank.db.models import BankAccount, BankTransaction, PixDeposit
from privebank.errors import (
    AccountInactiveError,
    AccountNotFoundError,
    DepositNotFoundError,
    ValidationError,
)
from privebank.payments.gateway.base import Customer, PaymentGatewayProtocol, PixStatus, to_cents

logger = logging.getLogger(__name__)

DEPOSIT_PIX = "deposit_pix"
ALREADY_PROCESSED_NOTE = "already processed or not found"
# colunas numeric(14,2): no máximo 12 dígitos inteiros
MAX_AMOUNT_BRL = Decimal("1000000000000")


@dataclass(frozen=True)
class DepositIntentView:
    """Campos públicos de um depósito recém-criado (o que o modal exibe)."""

    id: str
    amount: Decimal
    status: PixStatus
    br_code: str
    br_code_base64: Optional[str]
    expires_at: Optional[datetime]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": float(self.amount),
            "status": self.status.value,
            "brCode": self.br_code,
            "brCodeBase64": self.br_code_base64,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class SettlementResult:
    """Resultado de check_and_settle (processed=True só para quem creditou)."""

    status: PixStatus
    processed: bool
    amount: Optional[Decimal] = None
    user_id: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "processed": self.processed}
        if self.amount is not None:
            data["amount"] = float(self.amount)
        if self.user_id is not None:
            data["userId"] = self.user_id
        if self.note:
            data["note"] = self.note
        return data


def format_time_remaining(expires_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Contagem regressiva do modal: "m:ss" ou "Expirado"."""
    if expires_at is None:
        return "Expirado"
    now = as_utc(now) if now else datetime.now(timezone.utc)
    remaining = int((as_utc(expires_at) - now).total_seconds())
    if remaining <= 0:
        return "Expirado"
    minutes, seconds = divmod(remaining, 60)
    return f"{minutes}:{seconds:02d}"


def _parse_amount(amount: Any) -> Decimal:
    try:
        value = Decimal(str(amount))
        if not value.is_finite() or value <= 0 or value >= MAX_AMOUNT_BRL:
            raise ValidationError("Invalid amount")
        if to_cents(value) <= 0:
            raise ValidationError("Invalid amount")
        return value.quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount")


class ReconciliationService:
    """
    Cria depósitos PIX e converte pagamentos confirmados em crédito na carteira.

    check_and_settle é o único ponto de convergência entre a consulta do
    usuário (pull) e o webhook do gateway (push).
    """

    def __init__(self, gateway: PaymentGatewayProtocol, ledger: LedgerStore):
        self._gateway = gateway
        self._ledger = ledger

    def create(
        self,
        user_id: str,
        amount: Any,
        customer: Customer,
        description: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> DepositIntentView:
        """Cria a cobrança no gateway e registra o depósito pendente. Sem retry."""
        value = _parse_amount(amount)
        charge = self._gateway.create_charge(
            amount=value,
            customer=customer,
            user_id=user_id,
            description=description,
            external_id=external_id,
        )
        deposit = self._ledger.create_intent(user_id, charge, value)
        logger.info(
            "Depósito PIX %s registrado para o usuário %s (R$ %s, status %s)",
            deposit.pix_id, user_id, deposit.amount, deposit.status,
        )
        return DepositIntentView(
            id=charge.charge_id,
            amount=value,
            status=charge.status,
            br_code=charge.br_code,
            br_code_base64=charge.br_code_base64,
            expires_at=charge.expires_at,
        )

    def check_and_settle(
        self, charge_id: str, reported_status: Optional[PixStatus] = None
    ) -> SettlementResult:
        """
        Confere o status e credita o depósito uma única vez.

        Sem reported_status consulta o gateway; com ele (webhook validado)
        confia no status recebido. Marcação, crédito e lançamento rodam na
        mesma transação: se a conta não existir ou estiver inativa, nada é
        gravado e o depósito pode ser creditado numa próxima conferência.
        """
        if reported_status is None:
            status = self._gateway.check_status(charge_id)
        else:
            status = reported_status
        if status != PixStatus.PAID:
            logger.info("PIX %s ainda não pago (status %s)", charge_id, status.value)
            return SettlementResult(status=status, processed=False)

        deposit = self._ledger.find_intent_by_charge_id(charge_id, unprocessed_only=True)
        if deposit is None:
            logger.info("PIX %s já foi processado anteriormente (ou não existe)", charge_id)
            return SettlementResult(status=PixStatus.PAID, processed=False, note=ALREADY_PROCESSED_NOTE)

        try:
            with self._ledger.settlement() as session:
                if not self._ledger.mark_processed(session, deposit.id):
                    logger.info("PIX %s processado por outra requisição em paralelo", charge_id)
                    return SettlementResult(
                        status=PixStatus.PAID, processed=False, note=ALREADY_PROCESSED_NOTE
                    )
                account = self._ledger.credit_account(session, deposit.user_id, deposit.amount)
                self._ledger.append_transaction(
                    session,
                    account.id,
                    deposit.amount,
                    DEPOSIT_PIX,
                    f"Depósito PIX - R$ {deposit.amount:.2f}",
                    deposit_id=deposit.id,
                )
        except (AccountNotFoundError, AccountInactiveError) as e:
            logger.error(
                "PIX %s pago mas não creditado (usuário %s): %s", charge_id, deposit.user_id, e
            )
            raise
        except IntegrityError:
            logger.warning("PIX %s já possui lançamento; crédito ignorado", charge_id)
            return SettlementResult(status=PixStatus.PAID, processed=False, note=ALREADY_PROCESSED_NOTE)

        logger.info(
            "PIX processado com sucesso! Valor R$ %s creditado na conta do usuário %s",
            deposit.amount, deposit.user_id,
        )
        return SettlementResult(
            status=PixStatus.PAID, processed=True, amount=deposit.amount, user_id=deposit.user_id
        )

    def poll(self, user_id: str, charge_id: str) -> SettlementResult:
        """Conferência manual ("já paguei") feita pelo dono do depósito."""
        deposit = self._ledger.find_intent_by_charge_id(charge_id)
        if deposit is not None and deposit.user_id != user_id:
            raise DepositNotFoundError("PIX deposit not found")
        return self.check_and_settle(charge_id)

    def list_deposits(self, user_id: str) -> list[PixDeposit]:
        return self._ledger.list_user_deposits(user_id)

    def get_account(self, user_id: str) -> BankAccount:
        account = self._ledger.get_account(user_id)
        if account is None:
            raise AccountNotFoundError("PrivaBank account not found")
        return account

    def list_transactions(self, user_id: str) -> list[BankTransaction]:
        account = self.get_account(user_id)
        return self._ledger.list_transactions(account.id)
