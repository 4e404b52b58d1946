"""
Integration tests for the Debt Engine API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from debt_engine.api import create_app
from debt_engine.config import load_config
from debt_engine.engine import DebtEngine
from debt_engine.storage import InMemoryStorage


LOAN = {
    "name": "Personal Loan",
    "terms": {
        "original_balance": {"amount": "1000.00", "currency": "USD"},
        "apr_rate": "0.12",
        "term_months": 3,
        "payment_type": "fixed",
        "origination_date": "2024-01-15"
    },
    "auto_update_enabled": True
}


@pytest.fixture
def client():
    """Create a test client backed by a fresh in-memory engine"""
    engine = DebtEngine(storage=InMemoryStorage(), config=load_config())
    return TestClient(create_app(engine))


@pytest.fixture
def account_id(client):
    r = client.post("/accounts", json=LOAN)
    assert r.status_code == 201
    return r.json()["id"]


class TestHealthEndpoints:
    """Test basic health endpoint"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestAccountEndpoints:
    """Test account creation and reads"""

    def test_create_account(self, client):
        r = client.post("/accounts", json=LOAN)
        assert r.status_code == 201
        data = r.json()
        assert data["current_balance"] == {"amount": "1000.00", "currency": "USD"}
        assert data["remaining_months"] == 3
        assert data["terms"]["apr_rate"] == "0.12"

    def test_get_account(self, client, account_id):
        r = client.get(f"/accounts/{account_id}")
        assert r.status_code == 200
        assert r.json()["name"] == "Personal Loan"

    def test_unknown_account(self, client):
        r = client.get("/accounts/missing")
        assert r.status_code == 404
        assert r.json()["error"] == "NotFoundError"

    def test_invalid_terms(self, client):
        """Test validation errors name the field"""
        body = {**LOAN, "terms": {**LOAN["terms"], "term_months": 0}}
        r = client.post("/accounts", json=body)
        assert r.status_code == 400
        assert r.json()["field"] == "term_months"

    def test_bad_origination_date(self, client):
        body = {**LOAN, "terms": {**LOAN["terms"], "origination_date": "15/01/2024"}}
        r = client.post("/accounts", json=body)
        assert r.status_code == 400
        assert r.json()["field"] == "origination_date"

    def test_amortization(self, client, account_id):
        r = client.get(f"/accounts/{account_id}/amortization")
        assert r.status_code == 200
        data = r.json()
        assert data["monthly_payment"]["amount"] == "340.02"
        assert data["total_interest"]["amount"] == "20.07"
        assert len(data["schedule"]) == 3
        assert data["next_payment"]["interest_payment"]["amount"] == "10.00"
        assert data["schedule"][-1]["remaining_balance_after"]["amount"] == "0.00"

    def test_non_amortizing_terms(self, client):
        """Test negative amortization maps to 422"""
        body = {**LOAN, "terms": {
            **LOAN["terms"], "fixed_monthly_payment": {"amount": "5.00", "currency": "USD"}
        }}
        account = client.post("/accounts", json=body).json()
        r = client.get(f"/accounts/{account['id']}/amortization")
        assert r.status_code == 422
        assert r.json()["error"] == "ComputationError"


class TestPaymentEndpoints:
    """Test recording and listing payments"""

    def test_record_payment(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/payment", json={
            "amount": {"amount": "340.02", "currency": "USD"},
            "date": "2024-02-15"
        })
        assert r.status_code == 200
        data = r.json()
        assert data["principal_paid"]["amount"] == "330.02"
        assert data["interest_paid"]["amount"] == "10.00"
        assert data["new_balance"]["amount"] == "669.98"

    def test_record_split_payment(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/payment", json={
            "amount": {"amount": "220.00", "currency": "USD"},
            "date": "2024-02-15",
            "principal_amount": {"amount": "200.00", "currency": "USD"},
            "interest_amount": {"amount": "20.00", "currency": "USD"},
            "notes": "Split payment"
        })
        assert r.status_code == 200
        assert r.json()["new_balance"]["amount"] == "800.00"

    def test_half_split_rejected(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/payment", json={
            "amount": {"amount": "220.00", "currency": "USD"},
            "date": "2024-02-15",
            "principal_amount": {"amount": "200.00", "currency": "USD"}
        })
        assert r.status_code == 400
        assert r.json()["field"] == "split"

    def test_split_exceeding_amount_rejected(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/payment", json={
            "amount": {"amount": "100.00", "currency": "USD"},
            "date": "2024-02-15",
            "principal_amount": {"amount": "900.00", "currency": "USD"},
            "interest_amount": {"amount": "0.00", "currency": "USD"}
        })
        assert r.status_code == 400
        assert r.json()["field"] == "split"
        r = client.get(f"/accounts/{account_id}")
        assert r.json()["current_balance"]["amount"] == "1000.00"

    def test_non_positive_amount(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/payment", json={
            "amount": {"amount": "0", "currency": "USD"},
            "date": "2024-02-15"
        })
        assert r.status_code == 400
        assert r.json()["field"] == "amount"

    def test_payment_history(self, client, account_id):
        for day, amount in (("01", "10.00"), ("02", "20.00")):
            client.post(f"/accounts/{account_id}/payment", json={
                "amount": {"amount": amount, "currency": "USD"},
                "date": f"2024-02-{day}",
                "payment_type": "principal"
            })

        r = client.get(f"/accounts/{account_id}/payment")
        assert r.status_code == 200
        payments = r.json()["payments"]
        assert [p["amount"]["amount"] for p in payments] == ["20.00", "10.00"]

        r = client.get(f"/accounts/{account_id}/payment", params={"limit": 1})
        assert len(r.json()["payments"]) == 1


class TestAutoUpdateEndpoints:
    """Test the monthly update endpoints"""

    def test_apply_auto_update(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/auto-update", json={"billing_date": "2024-02-15"})
        assert r.status_code == 200
        data = r.json()
        assert data["applied"] is True
        assert data["interest_added"]["amount"] == "10.00"
        assert data["payment_date"] == "2024-02-15"

        r = client.post(f"/accounts/{account_id}/auto-update", json={"billing_date": "2024-02-20"})
        assert r.json()["applied"] is False

    def test_too_early_is_conflict(self, client, account_id):
        r = client.post(f"/accounts/{account_id}/auto-update", json={"billing_date": "2024-02-01"})
        assert r.status_code == 409
        assert r.json()["error"] == "StateError"

    def test_batch_run(self, client, account_id):
        r = client.post("/debts/auto-update", json={"billing_date": "2024-02-15"})
        assert r.status_code == 200
        assert r.json()["updated"] == [account_id]


class TestSummaryEndpoint:
    """Test the portfolio summary"""

    def test_summary(self, client, account_id):
        client.post(f"/accounts/{account_id}/payment", json={
            "amount": {"amount": "500.00", "currency": "USD"},
            "date": "2024-01-20",
            "payment_type": "principal"
        })

        r = client.get("/debts/summary")
        assert r.status_code == 200
        data = r.json()
        assert len(data["debts"]) == 1
        assert data["debts"][0]["percent_paid_off"] == "0.5000"
        assert data["debts"][0]["projected_payoff_date"] == "2024-04-15"
        assert data["totals"]["total_current_balance"] == "500.00"

    def test_summary_for_selected_accounts(self, client, account_id):
        client.post("/accounts", json={**LOAN, "name": "Other Loan"})

        r = client.get("/debts/summary", params={"account_id": account_id})
        assert r.status_code == 200
        assert [d["account_id"] for d in r.json()["debts"]] == [account_id]

    def test_summary_unknown_account(self, client):
        r = client.get("/debts/summary", params={"account_id": "missing"})
        assert r.status_code == 404
