"""Camada de persistência (SQLModel): depósitos PIX, contas e lançamentos."""

from privebank.db.models import BankAccount, BankTransaction, PixDeposit
from privebank.db.session import create_all_tables, create_db_engine, get_session
from privebank.db.ledger import LedgerStore

__all__ = [
    "BankAccount",
    "BankTransaction",
    "LedgerStore",
    "PixDeposit",
    "create_all_tables",
    "create_db_engine",
    "get_session",
]
