"""Fixtures compartilhadas: banco SQLite temporário, gateway em memória e app."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from privebank.api import create_app
from privebank.config import Settings
from privebank.db.ledger import LedgerStore
from privebank.db.models import BankAccount
from privebank.db.session import create_all_tables, create_db_engine
from privebank.payments.gateway.base import Customer
from privebank.payments.gateway.example import ExampleGateway
from privebank.payments.service import ReconciliationService
from privebank.security import make_token

USER_ID = "user-001"
OTHER_USER_ID = "user-002"
TAX_ID = "123.456.789-00"
WEBHOOK_SECRET = "whsec-test"
AUTH_SECRET = "auth-test"
ADMIN_TOKEN = "admin-test"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        webhook_secret=WEBHOOK_SECRET,
        auth_secret=AUTH_SECRET,
        payment_gateway="example",
        admin_token=ADMIN_TOKEN,
    )


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'privebank.db'}")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(engine) -> LedgerStore:
    return LedgerStore(engine)


@pytest.fixture
def gateway() -> ExampleGateway:
    return ExampleGateway()


@pytest.fixture
def service(gateway: ExampleGateway, ledger: LedgerStore) -> ReconciliationService:
    return ReconciliationService(gateway, ledger)


@pytest.fixture
def customer() -> Customer:
    return Customer(tax_id=TAX_ID, name="Cliente Teste", email="cliente@teste.com")


@pytest.fixture
def account(ledger: LedgerStore) -> BankAccount:
    """Conta ativa e zerada do USER_ID."""
    return ledger.open_account(USER_ID)


@pytest.fixture
def client(settings: Settings, gateway: ExampleGateway, engine):
    app = create_app(settings, gateway=gateway, engine=engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(USER_ID, AUTH_SECRET)}"}


def balance_of(ledger: LedgerStore, user_id: str = USER_ID) -> Decimal:
    account = ledger.get_account(user_id)
    assert account is not None
    return account.balance_brl
