"""Modelos SQLModel: depósitos PIX, contas PriveBank e transações."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BankAccount(SQLModel, table=True):
    """Conta PriveBank (carteira em reais) de um usuário."""

    __tablename__ = "privabank_accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(unique=True, index=True, max_length=64)
    balance_brl: Decimal = Field(default=Decimal("0.00"), max_digits=14, decimal_places=2)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PixDeposit(SQLModel, table=True):
    """Intenção de depósito PIX (uma cobrança no gateway). Nunca é apagada."""

    __tablename__ = "pix_deposits"

    id: Optional[int] = Field(default=None, primary_key=True)
    pix_id: str = Field(unique=True, index=True, max_length=128)
    user_id: str = Field(index=True, max_length=64)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    br_code: Optional[str] = Field(default=None)
    br_code_base64: Optional[str] = Field(default=None)
    expires_at: Optional[datetime] = Field(default=None)
    status: str = Field(default="PENDING", max_length=16)  # PENDING, PAID, EXPIRED, UNKNOWN
    processed: bool = Field(default=False)  # só vai de False para True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class BankTransaction(SQLModel, table=True):
    """Lançamento na carteira (append-only)."""

    __tablename__ = "privabank_transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    from_account_id: Optional[int] = Field(default=None, foreign_key="privabank_accounts.id")
    to_account_id: Optional[int] = Field(default=None, foreign_key="privabank_accounts.id", index=True)
    # um lançamento por depósito PIX, além da guarda do `processed`
    deposit_id: Optional[int] = Field(default=None, foreign_key="pix_deposits.id", unique=True)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    transaction_type: str = Field(max_length=32)  # deposit_pix, ...
    description: Optional[str] = Field(default=None, max_length=256)
    status: str = Field(default="completed", max_length=16)
    currency: str = Field(default="BRL", max_length=8)
    created_at: datetime = Field(default_factory=utcnow)
