"""App FastAPI do PriveBank: depósito PIX, consulta de status, carteira e webhook."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Engine

from privebank.config import Settings
from privebank.db.ledger import LedgerStore
from privebank.db.models import BankAccount, BankTransaction, PixDeposit
from privebank.db.session import create_all_tables, create_db_engine
from privebank.errors import AuthError, PriveBankError, ValidationError
from privebank.payments.gateway.base import Customer, PaymentGatewayProtocol
from privebank.payments.gateway.factory import get_gateway
from privebank.payments.service import MAX_AMOUNT_BRL, ReconciliationService
from privebank.security import parse_token, secrets_match
from privebank.webhook import router as webhook_router

logger = logging.getLogger(__name__)


# ---------- Schemas de entrada ----------

class CustomerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    cellphone: Optional[str] = None
    tax_id: Optional[str] = Field(default=None, alias="taxId")


class MetadataIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_id: Optional[str] = Field(default=None, alias="externalId")


class CreatePixRequest(BaseModel):
    action: Literal["create"]
    amount: Optional[Decimal] = None  # validado no serviço (> 0)
    description: Optional[str] = None
    customer: Optional[CustomerIn] = None
    metadata: Optional[MetadataIn] = None


class StatusPixRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["status"]
    pix_id: str = Field(alias="pixId", min_length=1)


class OpenAccountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    initial_balance: Decimal = Field(default=Decimal("0"), alias="initialBalance", ge=0, lt=MAX_AMOUNT_BRL)


class AccountStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(alias="isActive")


# ---------- Serialização ----------

def deposit_to_dict(d: PixDeposit) -> dict[str, Any]:
    return {
        "id": d.id,
        "pixId": d.pix_id,
        "amount": float(d.amount),
        "status": d.status,
        "brCode": d.br_code,
        "expiresAt": d.expires_at.isoformat() if d.expires_at else None,
        "processed": d.processed,
        "createdAt": d.created_at.isoformat(),
    }


def account_to_dict(a: BankAccount) -> dict[str, Any]:
    return {
        "id": a.id,
        "userId": a.user_id,
        "balanceBrl": float(a.balance_brl),
        "isActive": a.is_active,
    }


def transaction_to_dict(t: BankTransaction) -> dict[str, Any]:
    return {
        "id": t.id,
        "fromAccountId": t.from_account_id,
        "toAccountId": t.to_account_id,
        "amount": float(t.amount),
        "type": t.transaction_type,
        "description": t.description,
        "status": t.status,
        "currency": t.currency,
        "createdAt": t.created_at.isoformat(),
    }


# ---------- Dependências ----------

def get_service(request: Request) -> ReconciliationService:
    return request.app.state.service


def get_ledger(request: Request) -> LedgerStore:
    return request.app.state.ledger


def current_user(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization:
        raise AuthError("Missing authorization header")
    if not authorization.startswith("Bearer "):
        raise AuthError("Unauthorized")
    user_id = parse_token(authorization.replace("Bearer ", "", 1).strip(), request.app.state.settings.auth_secret)
    if not user_id:
        raise AuthError("Unauthorized")
    return user_id


def require_admin(request: Request, token: Optional[str] = Query(default=None)) -> None:
    if not secrets_match(token, request.app.state.settings.admin_token):
        raise HTTPException(status_code=403, detail="Forbidden")


# ---------- Rotas ----------

pix_router = APIRouter()
bank_router = APIRouter()
admin_router = APIRouter(prefix="/__admin", dependencies=[Depends(require_admin)])


@pix_router.post("/pix")
def pix(
    body: dict[str, Any] = Body(default={}),
    user_id: str = Depends(current_user),
    service: ReconciliationService = Depends(get_service),
) -> dict[str, Any]:
    """
    Ações do modal de depósito:
    {"action": "create", "amount": 50, "customer": {"taxId": ...}} ou
    {"action": "status", "pixId": "pix_char_..."}.
    """
    action = body.get("action")
    if action == "create":
        try:
            req = CreatePixRequest.model_validate(body)
        except PydanticValidationError:
            raise ValidationError("Invalid request")
        c = req.customer or CustomerIn()
        view = service.create(
            user_id,
            req.amount,
            Customer(tax_id=c.tax_id, name=c.name, email=c.email, cellphone=c.cellphone),
            description=req.description,
            external_id=req.metadata.external_id if req.metadata else None,
        )
        return view.to_dict()
    if action == "status":
        try:
            req = StatusPixRequest.model_validate(body)
        except PydanticValidationError:
            raise ValidationError("Invalid request")
        return service.poll(user_id, req.pix_id).to_dict()
    raise ValidationError("Invalid action")


@pix_router.get("/pix/deposits")
def list_deposits(
    user_id: str = Depends(current_user),
    service: ReconciliationService = Depends(get_service),
) -> list[dict[str, Any]]:
    return [deposit_to_dict(d) for d in service.list_deposits(user_id)]


@bank_router.get("/bank/account")
def get_account(
    user_id: str = Depends(current_user),
    service: ReconciliationService = Depends(get_service),
) -> dict[str, Any]:
    return account_to_dict(service.get_account(user_id))


@bank_router.get("/bank/transactions")
def list_transactions(
    user_id: str = Depends(current_user),
    service: ReconciliationService = Depends(get_service),
) -> list[dict[str, Any]]:
    return [transaction_to_dict(t) for t in service.list_transactions(user_id)]


@admin_router.post("/accounts")
def open_account(
    body: OpenAccountRequest,
    ledger: LedgerStore = Depends(get_ledger),
) -> dict[str, Any]:
    """Ativa a conta PriveBank de um usuário (cria se não existir)."""
    return account_to_dict(ledger.open_account(body.user_id, body.initial_balance))


@admin_router.put("/accounts/{user_id}")
def update_account(
    user_id: str,
    body: AccountStatusRequest,
    ledger: LedgerStore = Depends(get_ledger),
) -> dict[str, Any]:
    return account_to_dict(ledger.set_account_active(user_id, body.is_active))


def _error_response(request: Request, exc: PriveBankError) -> JSONResponse:
    content = {"error": exc.message}
    if exc.detail:
        content["message"] = exc.detail
    if exc.http_status >= 500:
        logger.error("Erro em %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=content)


def create_app(
    settings: Settings,
    gateway: Optional[PaymentGatewayProtocol] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    """Monta o app com configuração, gateway e banco injetados."""
    engine = engine if engine is not None else create_db_engine(settings.database_url)
    gateway = gateway if gateway is not None else get_gateway(settings)
    ledger = LedgerStore(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_all_tables(engine)
        yield
        close = getattr(gateway, "close", None)
        if close:
            close()

    app = FastAPI(title="PriveBank PIX", lifespan=lifespan)
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.service = ReconciliationService(gateway, ledger)

    app.add_exception_handler(PriveBankError, _error_response)
    app.include_router(pix_router)
    app.include_router(bank_router)
    app.include_router(admin_router)
    app.include_router(webhook_router)

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    return app
