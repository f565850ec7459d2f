"""
Tests for API Endpoints

This test suite verifies:
- Health check and root endpoints
- POST /verify-user authentication, success and error mapping
- GET /records/{account}

Run with: pytest tests/test_api_endpoints.py -v

The ledger is replaced by an in-memory ledger so no database file is touched.
"""

import os
import sys
import pytest
from unittest.mock import MagicMock, patch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from core.admin_relay import AdminRelay
from core.exceptions import LedgerUnavailable
from core.ledger import InMemoryIdentityLedger
from core.signature_codec import encode, to_hex

ADMIN = "relay-admin"
RELAY_KEY = "test-relay-key"
AUTH_HEADERS = {"X-Relay-Key": RELAY_KEY}


@pytest.fixture
def ledger():
    return InMemoryIdentityLedger(admin_identity=ADMIN)


@pytest.fixture
def client(ledger, monkeypatch):
    """Create test client backed by an in-memory ledger."""
    monkeypatch.setenv("FACELEDGER_RELAY_KEY", RELAY_KEY)

    with patch("api.app.get_ledger", return_value=ledger), \
            patch("api.routes.records.get_ledger", return_value=ledger), \
            patch("api.routes.relay.get_admin_relay", return_value=AdminRelay(ledger, ADMIN)):
        # Import app after patching
        from api.app import app
        yield TestClient(app)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_status(self, client):
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["ledger_available"] is True
        assert data["relay_key_configured"] is True

    def test_health_degraded_without_relay_key(self, client, monkeypatch):
        monkeypatch.delenv("FACELEDGER_RELAY_KEY", raising=False)

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["relay_key_configured"] is False

    def test_health_reports_enrolled_count(self, client):
        sqlite_like = MagicMock()
        sqlite_like.count_enrolled.return_value = 3

        with patch("api.app.get_ledger", return_value=sqlite_like):
            data = client.get("/health").json()

        assert data["enrolled_accounts"] == 3

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert "name" in data
        assert "version" in data
        assert "docs" in data


class TestVerifyUserEndpoint:
    """Tests for the operator override endpoint."""

    def test_override_sets_flag(self, client, ledger):
        response = client.post(
            "/verify-user",
            json={"userAddress": "0xA1", "isVerified": True},
            headers=AUTH_HEADERS,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert ledger.get_record("0xA1").verified is True

    def test_override_clears_flag(self, client, ledger):
        ledger.set_verified(ADMIN, "0xA1", True)

        response = client.post(
            "/verify-user",
            json={"userAddress": "0xA1", "isVerified": False},
            headers=AUTH_HEADERS,
        )

        assert response.status_code == 200
        assert ledger.get_record("0xA1").verified is False

    def test_missing_key_rejected(self, client, ledger):
        response = client.post("/verify-user", json={"userAddress": "0xA1", "isVerified": True})

        assert response.status_code == 401
        assert "error" in response.json()
        assert ledger.get_record("0xA1").verified is False

    def test_wrong_key_rejected(self, client, ledger):
        response = client.post(
            "/verify-user",
            json={"userAddress": "0xA1", "isVerified": True},
            headers={"X-Relay-Key": "guess"},
        )

        assert response.status_code == 401
        assert ledger.get_record("0xA1").verified is False

    def test_unconfigured_key_refuses_everything(self, client, monkeypatch):
        monkeypatch.delenv("FACELEDGER_RELAY_KEY", raising=False)

        response = client.post(
            "/verify-user",
            json={"userAddress": "0xA1", "isVerified": True},
            headers=AUTH_HEADERS,
        )

        assert response.status_code == 503
        assert "not configured" in response.json()["error"]

    def test_ledger_unauthorized_maps_to_403(self, client, ledger):
        with patch("api.routes.relay.get_admin_relay",
                   return_value=AdminRelay(ledger, admin_identity="impostor")):
            response = client.post(
                "/verify-user",
                json={"userAddress": "0xA1", "isVerified": True},
                headers=AUTH_HEADERS,
            )

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "UNAUTHORIZED"
        assert "administrative" in body["error"]

    def test_ledger_unavailable_maps_to_503(self, client):
        relay = MagicMock()
        relay.set_verified.side_effect = LedgerUnavailable("ledger node unreachable")

        with patch("api.routes.relay.get_admin_relay", return_value=relay):
            response = client.post(
                "/verify-user",
                json={"userAddress": "0xA1", "isVerified": True},
                headers=AUTH_HEADERS,
            )

        assert response.status_code == 503
        assert response.json()["error"] == "ledger node unreachable"
        relay.set_verified.assert_called_once()

    @pytest.mark.parametrize("body", [
        {"userAddress": "0xA1"},
        {"isVerified": True},
        {"userAddress": "", "isVerified": True},
        {"userAddress": "0xA1", "isVerified": "yes"},
    ])
    def test_invalid_body(self, client, body):
        response = client.post("/verify-user", json=body, headers=AUTH_HEADERS)

        assert response.status_code == 422
        assert "error" in response.json()

    def test_blank_address_rejected(self, client):
        response = client.post(
            "/verify-user",
            json={"userAddress": "   ", "isVerified": True},
            headers=AUTH_HEADERS,
        )

        assert response.status_code == 400


class TestRecordsEndpoint:
    """Tests for the record lookup endpoint."""

    def test_unknown_account_reads_default(self, client):
        response = client.get("/records/0xnew", headers=AUTH_HEADERS)
        assert response.status_code == 200

        data = response.json()
        assert data["account"] == "0xnew"
        assert data["enrolled"] is False
        assert data["verified"] is False
        assert data["signature"] is None

    def test_enrolled_account(self, client, ledger):
        signature = encode([0.1, 0.2, 0.3, 0.4])
        ledger.enroll("0xA1", "0xA1", signature)
        ledger.set_verified(ADMIN, "0xA1", True)

        data = client.get("/records/0xA1", headers=AUTH_HEADERS).json()

        assert data["enrolled"] is True
        assert data["verified"] is True
        assert data["signature"] == to_hex(signature)
        assert data["embedding_dim"] == 4

    def test_record_requires_key(self, client, ledger):
        ledger.enroll("0xA1", "0xA1", encode([0.1, 0.2, 0.3, 0.4]))

        missing = client.get("/records/0xA1")
        wrong = client.get("/records/0xA1", headers={"X-Relay-Key": "guess"})

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert "signature" not in missing.json()

    def test_record_escaped_account(self, client, ledger):
        ledger.set_verified(ADMIN, "0xab?c", True)

        data = client.get("/records/0xab%3Fc", headers=AUTH_HEADERS).json()

        assert data["account"] == "0xab?c"
        assert data["verified"] is True


class TestSchemas:
    """Tests for Pydantic schemas."""

    def test_verify_user_request_aliases(self):
        from api.schemas import VerifyUserRequest

        request = VerifyUserRequest.model_validate({"userAddress": "0xA1", "isVerified": True})

        assert request.user_address == "0xA1"
        assert request.is_verified is True

    def test_verify_user_request_by_field_name(self):
        from api.schemas import VerifyUserRequest

        request = VerifyUserRequest(user_address="0xA1", is_verified=False)
        assert request.model_dump(by_alias=True) == {"userAddress": "0xA1", "isVerified": False}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
