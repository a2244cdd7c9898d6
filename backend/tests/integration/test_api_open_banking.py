"""Integration tests for the open-banking client endpoints."""

import pytest
from fastapi.testclient import TestClient

from api.helpers import get_open_banking_client
from database import get_db
from main import app
from models import CustomerMapping, LinkageStatus
from tests.fixtures import SAMPLE_ACCOUNTS, create_bank_account, create_mapping
from tests.fixtures.mocks import MockOpenBankingClient

INVITE_BODY = {"client_email": "jane@example.com", "client_name": "Jane Doe"}


@pytest.fixture
def failing_client(db):
    """Test client whose aggregator fails in the requested way."""

    def _make(failure_type: str) -> TestClient:
        def override_get_db():
            yield db

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_open_banking_client] = lambda: MockOpenBankingClient(
            should_fail=True, failure_type=failure_type
        )
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


class TestSendInvitation:
    def test_creates_customer_and_sends_email(self, client, db, mock_open_banking_client):
        response = client.post("/api/open-banking/clients/client-1/invitations", json=INVITE_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["aggregator_customer_id"] == "cust-1001"
        assert data["data"]["link"] == "https://connect.test/abc"

        email = mock_open_banking_client.sent_emails[0]
        assert email["customerId"] == "cust-1001"
        assert email["email"]["to"] == "jane@example.com"
        assert email["email"]["firstName"] == "Jane"

        mapping = db.query(CustomerMapping).one()
        assert mapping.platform_client_id == "client-1"
        assert mapping.status == "not_linked"

    def test_second_invitation_reuses_customer(self, client, db, mock_open_banking_client):
        client.post("/api/open-banking/clients/client-1/invitations", json=INVITE_BODY)
        response = client.post("/api/open-banking/clients/client-1/invitations", json=INVITE_BODY)

        assert response.json()["aggregator_customer_id"] == "cust-1001"
        assert len(mock_open_banking_client.created_usernames) == 1
        assert len(mock_open_banking_client.sent_emails) == 2
        assert db.query(CustomerMapping).count() == 1

    def test_invitation_does_not_change_status(self, client, db):
        create_mapping(db, status=LinkageStatus.ERROR)
        client.post("/api/open-banking/clients/client-1/invitations", json=INVITE_BODY)
        assert client.get("/api/open-banking/clients/client-1/status").json()["status"] == "error"

    def test_redirect_uri_override(self, client, mock_open_banking_client):
        body = {**INVITE_BODY, "redirect_uri": "https://firm.test/after-link"}
        client.post("/api/open-banking/clients/client-1/invitations", json=body)
        assert mock_open_banking_client.sent_emails[0]["redirectUri"] == "https://firm.test/after-link"

    def test_invalid_email_rejected(self, client, mock_open_banking_client):
        response = client.post(
            "/api/open-banking/clients/client-1/invitations",
            json={"client_email": "not-an-email", "client_name": "Jane"},
        )
        assert response.status_code == 422
        assert mock_open_banking_client.created_usernames == []

    def test_auth_failure_returns_502(self, failing_client, db):
        response = failing_client("auth").post(
            "/api/open-banking/clients/client-1/invitations", json=INVITE_BODY
        )
        assert response.status_code == 502
        assert "partner credentials" in response.json()["detail"]
        assert db.query(CustomerMapping).count() == 0

    def test_aggregator_error_returns_502(self, failing_client):
        response = failing_client("generic").post(
            "/api/open-banking/clients/client-1/invitations", json=INVITE_BODY
        )
        assert response.status_code == 502
        assert "Open banking provider error" in response.json()["detail"]


class TestGetStatus:
    def test_unknown_client_not_linked(self, client):
        response = client.get("/api/open-banking/clients/nobody/status")
        assert response.status_code == 200
        assert response.json() == {
            "status": "not_linked",
            "aggregator_customer_id": None,
            "linked_at": None,
            "account_count": 0,
            "accounts": [],
        }

    def test_linked_client(self, client, db):
        create_mapping(db, status=LinkageStatus.LINKED)
        create_bank_account(db, account_id="a1", name="Checking")

        data = client.get("/api/open-banking/clients/client-1/status").json()

        assert data["status"] == "linked"
        assert data["aggregator_customer_id"] == "cust-1001"
        assert data["account_count"] == 1
        assert data["accounts"][0]["id"] == "a1"
        assert data["accounts"][0]["balance"] == "100.00"
        assert data["linked_at"] is not None


class TestGetLiveAccounts:
    def test_returns_aggregator_accounts(self, db, mapping):
        def override_get_db():
            yield db

        aggregator = MockOpenBankingClient(accounts={"cust-1001": SAMPLE_ACCOUNTS})
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_open_banking_client] = lambda: aggregator
        try:
            response = TestClient(app).get("/api/open-banking/clients/client-1/accounts/live")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        data = response.json()
        assert data["aggregator_customer_id"] == "cust-1001"
        assert data["account_count"] == 2
        assert data["has_accounts"] is True
        assert data["accounts"][0]["id"] == "5011648377"

    def test_no_linked_accounts(self, client, mapping):
        data = client.get("/api/open-banking/clients/client-1/accounts/live").json()
        assert data["has_accounts"] is False
        assert data["accounts"] == []

    def test_live_check_does_not_store(self, client, db, mapping):
        client.get("/api/open-banking/clients/client-1/accounts/live")
        assert client.get("/api/open-banking/clients/client-1/status").json()["status"] == "not_linked"

    def test_unknown_client_404(self, client):
        response = client.get("/api/open-banking/clients/nobody/accounts/live")
        assert response.status_code == 404

    def test_connection_failure_returns_502(self, failing_client, mapping):
        response = failing_client("connection").get("/api/open-banking/clients/client-1/accounts/live")
        assert response.status_code == 502
