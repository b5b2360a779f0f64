"""Tests for the HTTP API: /pix actions, wallet reads and admin account routes."""

from decimal import Decimal

import pytest

from privebank.db.ledger import LedgerStore
from privebank.errors import GatewayError
from privebank.payments.gateway.example import ExampleGateway
from privebank.security import make_token

from conftest import ADMIN_TOKEN, AUTH_SECRET, OTHER_USER_ID, TAX_ID, USER_ID, balance_of

CREATE = {"action": "create", "amount": 50, "customer": {"taxId": TAX_ID}}


def create_pix(client, auth_headers) -> str:
    response = client.post("/pix", json=CREATE, headers=auth_headers)
    assert response.status_code == 200
    return response.json()["id"]


class TestAuth:
    def test_missing_header(self, client) -> None:
        response = client.post("/pix", json=CREATE)

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}

    @pytest.mark.parametrize(
        "header",
        ["Token abc", "Bearer ", f"Bearer {USER_ID}.deadbeef", f"Bearer {make_token(USER_ID, 'other')}"],
    )
    def test_invalid_token(self, client, gateway: ExampleGateway, header: str) -> None:
        response = client.post("/pix", json=CREATE, headers={"Authorization": header})

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert gateway.calls == []


class TestCreateAction:
    def test_creates_deposit(self, client, auth_headers, ledger: LedgerStore) -> None:
        response = client.post("/pix", json=CREATE, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"].startswith("pix_char_")
        assert data["amount"] == 50.0
        assert data["status"] == "PENDING"
        assert data["brCode"]
        assert data["expiresAt"]
        assert [d.pix_id for d in ledger.list_user_deposits(USER_ID)] == [data["id"]]

    @pytest.mark.parametrize("amount", [0, -5, None, 1e30, 1000000000000])
    def test_invalid_amount(self, client, auth_headers, gateway: ExampleGateway, amount) -> None:
        body = {**CREATE, "amount": amount}

        response = client.post("/pix", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount"}
        assert gateway.calls == []

    def test_unparseable_amount(self, client, auth_headers) -> None:
        response = client.post("/pix", json={**CREATE, "amount": "abc"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request"}

    @pytest.mark.parametrize("customer", [None, {}, {"taxId": "000.000.000-00"}])
    def test_tax_id_required(self, client, auth_headers, gateway: ExampleGateway, customer) -> None:
        body = {"action": "create", "amount": 50}
        if customer is not None:
            body["customer"] = customer

        response = client.post("/pix", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "tax id required"
        assert "CPF" in response.json()["message"]
        assert gateway.calls == []

    def test_gateway_failure_is_reported(self, client, auth_headers, gateway: ExampleGateway, monkeypatch) -> None:
        def fail(**kwargs):
            raise GatewayError(
                "Failed to create PIX QR Code", payload={"error": "Invalid taxId"}, detail="Invalid taxId"
            )

        monkeypatch.setattr(gateway, "create_charge", fail)

        response = client.post("/pix", json=CREATE, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Failed to create PIX QR Code", "message": "Invalid taxId"}

    @pytest.mark.parametrize("body", [{}, {"action": "refund"}, {"amount": 50}])
    def test_invalid_action(self, client, auth_headers, body) -> None:
        response = client.post("/pix", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid action"}


class TestStatusAction:
    def test_pending_then_paid(self, client, auth_headers, gateway: ExampleGateway, ledger: LedgerStore, account) -> None:
        pix_id = create_pix(client, auth_headers)

        pending = client.post("/pix", json={"action": "status", "pixId": pix_id}, headers=auth_headers)
        assert pending.status_code == 200
        assert pending.json() == {"status": "PENDING", "processed": False}

        gateway.mark_paid(pix_id)
        paid = client.post("/pix", json={"action": "status", "pixId": pix_id}, headers=auth_headers)

        assert paid.json() == {"status": "PAID", "processed": True, "amount": 50.0, "userId": USER_ID}
        assert balance_of(ledger) == Decimal("50.00")

        again = client.post("/pix", json={"action": "status", "pixId": pix_id}, headers=auth_headers)
        assert again.json()["processed"] is False
        assert balance_of(ledger) == Decimal("50.00")

    def test_missing_pix_id(self, client, auth_headers) -> None:
        response = client.post("/pix", json={"action": "status"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request"}

    def test_other_users_deposit(self, client, auth_headers) -> None:
        pix_id = create_pix(client, auth_headers)
        other = {"Authorization": f"Bearer {make_token(OTHER_USER_ID, AUTH_SECRET)}"}

        response = client.post("/pix", json={"action": "status", "pixId": pix_id}, headers=other)

        assert response.status_code == 404
        assert response.json() == {"error": "PIX deposit not found"}

    def test_unknown_charge_is_gateway_error(self, client, auth_headers) -> None:
        response = client.post("/pix", json={"action": "status", "pixId": "pix_char_nope"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Failed to check PIX status"}

    def test_paid_without_account(self, client, auth_headers, gateway: ExampleGateway, ledger: LedgerStore) -> None:
        pix_id = create_pix(client, auth_headers)
        gateway.mark_paid(pix_id)

        response = client.post("/pix", json={"action": "status", "pixId": pix_id}, headers=auth_headers)

        assert response.status_code == 404
        assert ledger.find_intent_by_charge_id(pix_id).processed is False


class TestWallet:
    def test_list_deposits(self, client, auth_headers) -> None:
        first = create_pix(client, auth_headers)
        second = create_pix(client, auth_headers)

        response = client.get("/pix/deposits", headers=auth_headers)

        assert response.status_code == 200
        assert [d["pixId"] for d in response.json()] == [second, first]
        assert all(d["processed"] is False for d in response.json())

    def test_account_not_found(self, client, auth_headers) -> None:
        response = client.get("/bank/account", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "PrivaBank account not found"}

    def test_account_and_transactions_after_deposit(
        self, client, auth_headers, gateway: ExampleGateway, account
    ) -> None:
        pix_id = create_pix(client, auth_headers)
        gateway.mark_paid(pix_id)
        client.post("/pix", json={"action": "status", "pixId": pix_id}, headers=auth_headers)

        acc = client.get("/bank/account", headers=auth_headers).json()
        txs = client.get("/bank/transactions", headers=auth_headers).json()

        assert acc == {"id": account.id, "userId": USER_ID, "balanceBrl": 50.0, "isActive": True}
        assert len(txs) == 1
        assert txs[0]["type"] == "deposit_pix"
        assert txs[0]["amount"] == 50.0
        assert txs[0]["toAccountId"] == account.id
        assert txs[0]["description"] == "Depósito PIX - R$ 50.00"


class TestAdmin:
    def test_requires_token(self, client) -> None:
        response = client.post("/__admin/accounts", json={"userId": USER_ID})
        assert response.status_code == 403

        response = client.post("/__admin/accounts", params={"token": "wrong"}, json={"userId": USER_ID})
        assert response.status_code == 403

    def test_open_account_with_initial_balance(self, client, ledger: LedgerStore) -> None:
        response = client.post(
            "/__admin/accounts", params={"token": ADMIN_TOKEN}, json={"userId": USER_ID, "initialBalance": 10}
        )

        assert response.status_code == 200
        assert response.json()["balanceBrl"] == 10.0
        assert response.json()["isActive"] is True
        assert balance_of(ledger) == Decimal("10.00")

    @pytest.mark.parametrize("initial_balance", [-1, 1e30, 1000000000000])
    def test_out_of_range_initial_balance_rejected(self, client, ledger: LedgerStore, initial_balance) -> None:
        response = client.post(
            "/__admin/accounts",
            params={"token": ADMIN_TOKEN},
            json={"userId": USER_ID, "initialBalance": initial_balance},
        )

        assert response.status_code == 422
        assert ledger.get_account(USER_ID) is None

    def test_deactivate_account(self, client, account, ledger: LedgerStore) -> None:
        response = client.put(
            f"/__admin/accounts/{USER_ID}", params={"token": ADMIN_TOKEN}, json={"isActive": False}
        )

        assert response.status_code == 200
        assert response.json()["isActive"] is False
        assert ledger.get_account(USER_ID).is_active is False

    def test_update_missing_account(self, client) -> None:
        response = client.put(
            f"/__admin/accounts/{USER_ID}", params={"token": ADMIN_TOKEN}, json={"isActive": False}
        )
        assert response.status_code == 404


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
