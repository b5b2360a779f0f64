"""Ledger do PriveBank: intenções de depósito, saldo das contas e lançamentos.

As escritas concorrentes são protegidas no banco, não em memória:
`mark_processed` é um UPDATE condicional (processed=false) e `credit_account`
é um incremento atômico (`balance_brl = balance_brl + valor`). Ambos recebem a
sessão de `settlement()` para que marcação, crédito e lançamento sejam
commitados (ou desfeitos) juntos.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator, Optional

from sqlalchemy import or_, update
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from privebank.db.models import BankAccount, BankTransaction, PixDeposit, utcnow
from privebank.db.session import get_session
from privebank.errors import AccountInactiveError, AccountNotFoundError
from privebank.payments.gateway.base import CreateChargeResult, PixStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Datas sem fuso (SQLite) são tratadas como UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LedgerStore:
    """Persistência de PixDeposit, BankAccount e BankTransaction."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @contextmanager
    def settlement(self) -> Generator[Session, None, None]:
        """Uma transação de banco: commit no sucesso, rollback em qualquer erro."""
        with Session(self._engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    # -------- Depósitos PIX --------

    def create_intent(self, user_id: str, charge: CreateChargeResult, amount: Decimal) -> PixDeposit:
        with get_session(self._engine) as session:
            deposit = PixDeposit(
                pix_id=charge.charge_id,
                user_id=user_id,
                amount=Decimal(amount).quantize(CENT),
                br_code=charge.br_code,
                br_code_base64=charge.br_code_base64,
                expires_at=as_utc(charge.expires_at),
                status=charge.status.value,
            )
            session.add(deposit)
            session.commit()
            session.refresh(deposit)
            return deposit

    def find_intent_by_charge_id(self, charge_id: str, unprocessed_only: bool = False) -> Optional[PixDeposit]:
        with get_session(self._engine) as session:
            stmt = select(PixDeposit).where(PixDeposit.pix_id == charge_id)
            if unprocessed_only:
                stmt = stmt.where(PixDeposit.processed == False)  # noqa: E712
            return session.exec(stmt).first()

    def mark_processed(self, session: Session, intent_id: int) -> bool:
        """Marca como PAID/processado só se ainda não foi. True se alterou a linha."""
        result = session.exec(
            update(PixDeposit)
            .where(PixDeposit.id == intent_id, PixDeposit.processed == False)  # noqa: E712
            .values(processed=True, status=PixStatus.PAID.value, updated_at=utcnow())
        )
        return result.rowcount == 1

    def list_user_deposits(self, user_id: str, limit: int = 50) -> list[PixDeposit]:
        with get_session(self._engine) as session:
            return list(
                session.exec(
                    select(PixDeposit)
                    .where(PixDeposit.user_id == user_id)
                    .order_by(PixDeposit.created_at.desc(), PixDeposit.id.desc())
                    .limit(limit)
                )
            )

    # -------- Contas --------

    def credit_account(self, session: Session, user_id: str, amount: Decimal) -> BankAccount:
        result = session.exec(
            update(BankAccount)
            .where(BankAccount.user_id == user_id, BankAccount.is_active == True)  # noqa: E712
            .values(balance_brl=BankAccount.balance_brl + amount, updated_at=utcnow())
        )
        account = session.exec(select(BankAccount).where(BankAccount.user_id == user_id)).first()
        if result.rowcount != 1:
            if account is None:
                raise AccountNotFoundError(f"PrivaBank account not found for user {user_id}")
            raise AccountInactiveError(f"PrivaBank account for user {user_id} is inactive")
        session.refresh(account)
        return account

    def get_account(self, user_id: str) -> Optional[BankAccount]:
        with get_session(self._engine) as session:
            return session.exec(select(BankAccount).where(BankAccount.user_id == user_id)).first()

    def open_account(self, user_id: str, initial_balance: Decimal = Decimal("0")) -> BankAccount:
        """Cria a conta (ou reativa a existente). Saldo inicial gera lançamento."""
        initial_balance = Decimal(initial_balance).quantize(CENT)
        with self.settlement() as session:
            account = session.exec(select(BankAccount).where(BankAccount.user_id == user_id)).first()
            if account:
                if not account.is_active:
                    account.is_active = True
                    account.updated_at = utcnow()
                    session.add(account)
                    logger.info("Conta PriveBank do usuário %s reativada", user_id)
                session.flush()
                session.refresh(account)
                return account
            account = BankAccount(user_id=user_id, is_active=True)
            session.add(account)
            session.flush()
            if initial_balance > 0:
                self.credit_account(session, user_id, initial_balance)
                self.append_transaction(
                    session,
                    account.id,
                    initial_balance,
                    "admin_deposit",
                    f"Saldo inicial - R$ {initial_balance:.2f}",
                )
            session.refresh(account)
            logger.info("Conta PriveBank criada para o usuário %s", user_id)
            return account

    def set_account_active(self, user_id: str, active: bool) -> BankAccount:
        with self.settlement() as session:
            account = session.exec(select(BankAccount).where(BankAccount.user_id == user_id)).first()
            if account is None:
                raise AccountNotFoundError(f"PrivaBank account not found for user {user_id}")
            account.is_active = active
            account.updated_at = utcnow()
            session.add(account)
            session.flush()
            session.refresh(account)
            return account

    # -------- Lançamentos --------

    def append_transaction(
        self,
        session: Session,
        account_id: int,
        amount: Decimal,
        transaction_type: str,
        description: str,
        deposit_id: Optional[int] = None,
    ) -> BankTransaction:
        tx = BankTransaction(
            to_account_id=account_id,
            deposit_id=deposit_id,
            amount=Decimal(amount).quantize(CENT),
            transaction_type=transaction_type,
            description=description,
            status="completed",
            currency="BRL",
        )
        session.add(tx)
        session.flush()
        return tx

    def list_transactions(self, account_id: int, limit: int = 50) -> list[BankTransaction]:
        with get_session(self._engine) as session:
            return list(
                session.exec(
                    select(BankTransaction)
                    .where(
                        or_(
                            BankTransaction.from_account_id == account_id,
                            BankTransaction.to_account_id == account_id,
                        )
                    )
                    .order_by(BankTransaction.created_at.desc(), BankTransaction.id.desc())
                    .limit(limit)
                )
            )
