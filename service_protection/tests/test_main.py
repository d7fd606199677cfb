"""
Unit tests for Protection main service.
"""

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import get_config
from service_protection.app.documents import InMemoryDocumentProvider
from service_protection.app.entitlements import LedgerEntitlementOracle
from service_protection.app.main import ProtectionService, create_app
from service_protection.app.policy.models import Document
from service_protection.app.store import InMemorySettingsStore

FALLBACK_URL = "https://example.com/"
JOIN_URL = "https://example.com/join"


class TestProtectionService:
    """Test cases for ProtectionService."""

    @pytest.fixture
    def ledger(self):
        """Create order ledger."""
        return LedgerEntitlementOracle()

    @pytest.fixture
    def protection_service(self, ledger):
        """Create ProtectionService over A(1) -> B(2) -> C(3)."""
        documents = InMemoryDocumentProvider([
            Document(1, title="Members"),
            Document(2, parent_id=1),
            Document(3, parent_id=2),
        ])
        config = get_config("protection", 8013, fallback_redirect_url=FALLBACK_URL)
        return ProtectionService(config=config, documents=documents, store=InMemorySettingsStore(), oracle=ledger)

    @pytest.fixture
    def client(self, protection_service):
        """Create test client."""
        return TestClient(protection_service.app)

    @pytest.fixture
    def protected_root(self, client):
        """Protect document 1 and cascade to its descendants."""
        response = client.put("/protection/documents/1/settings", json={
            "inheritance": "override",
            "required_items": [5],
            "identity_state": "logged_in",
            "redirect_target": JOIN_URL,
            "cascades_to_children": True
        })
        assert response.status_code == 200
        return response

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert data["service"] == "protection"
        assert "access_check" in data["capabilities"]

    def test_health_endpoint(self, client):
        """Test health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"]["settings_store"] == "ok"
        assert data["dependencies"]["commerce"] == "ok"

    def test_health_reports_unavailable_commerce(self, client, ledger):
        ledger.available = False

        response = client.get("/health")
        assert response.json()["dependencies"]["commerce"] == "unavailable"

    def test_unprotected_document(self, client):
        response = client.post("/protection/check", json={"document_id": 3})
        assert response.status_code == 200

        data = response.json()
        assert data["prohibited"] is False
        assert data["protected"] is False
        assert data["reason"] == "granted"
        assert data["redirect_url"] is None

    def test_edit_response(self, protected_root):
        data = protected_root.json()

        assert data["document_id"] == 1
        assert data["rejected"] == {}
        assert data["summary"]["is_protected"] is True
        assert data["summary"]["policy"]["cascades_to_children"] is True

    def test_inherited_protection_denies_anonymous(self, client, protected_root):
        """Test an anonymous visitor is sent to the inherited redirect."""
        response = client.post("/protection/check", json={"document_id": 3})
        assert response.status_code == 200

        data = response.json()
        assert data["prohibited"] is True
        assert data["protected"] is True
        assert data["reason"] == "missing_items"
        assert data["redirect_url"] == JOIN_URL
        assert data["inherited_from"] == 1

    def test_inherited_protection_allows_owner(self, client, ledger, protected_root):
        ledger.record_order("o1", ["buyer@example.com"], [(5, 1)])

        response = client.post("/protection/check", json={
            "document_id": 3,
            "visitor": {"user_id": "u1", "email": "buyer@example.com"}
        })

        data = response.json()
        assert data["prohibited"] is False
        assert data["reason"] == "granted"

    def test_authenticated_visitor_without_item(self, client, protected_root):
        response = client.post("/protection/check", json={
            "document_id": 3,
            "visitor": {"user_id": "u1"}
        })

        assert response.json()["reason"] == "missing_items"

    def test_admin_bypass(self, client, protected_root):
        response = client.post("/protection/check", json={
            "document_id": 3,
            "visitor": {"user_id": "admin", "is_admin": True}
        })

        data = response.json()
        assert data["prohibited"] is False
        assert data["reason"] == "admin_bypass"

    def test_check_unknown_document(self, client):
        """Test unknown documents fail fast with 404."""
        response = client.post("/protection/check", json={"document_id": 404},
                               headers={"X-Request-ID": "req-404"})
        assert response.status_code == 404

        data = response.json()
        assert data["code"] == "DOCUMENT_NOT_FOUND"
        assert data["request_id"] == "req-404"
        assert response.headers["X-Request-ID"] == "req-404"

    def test_check_invalid_request(self, client):
        response = client.post("/protection/check", json={"document_id": 0})
        assert response.status_code == 422

    def test_get_protection_summary(self, client, protected_root):
        response = client.get("/protection/documents/3")
        assert response.status_code == 200

        data = response.json()
        assert data["protector_id"] == 1
        assert data["inheritance_mode"] == "inherit"
        assert data["default_redirect_url"] == JOIN_URL

    def test_get_unknown_document(self, client):
        response = client.get("/protection/documents/99")
        assert response.status_code == 404

    def test_update_rejects_invalid_values(self, client):
        response = client.put("/protection/documents/2/settings", json={
            "inheritance": "override",
            "identity_state": "members_only"
        })
        assert response.status_code == 200
        assert "identity_state" in response.json()["rejected"]

    def test_delete_settings(self, client, protected_root):
        response = client.delete("/protection/documents/1/settings")
        assert response.status_code == 200
        assert "required_items" in response.json()["deleted"]

        check = client.post("/protection/check", json={"document_id": 3})
        assert check.json()["prohibited"] is False

    def test_metrics_endpoint(self, client, protected_root):
        client.post("/protection/check", json={"document_id": 3})

        response = client.get("/metrics")
        assert response.status_code == 200
        assert "protection_checks_total" in response.text
        assert "protection_ancestor_searches_total" in response.text

    def test_create_app(self):
        app = create_app(
            config=get_config("protection", 8013),
            documents=InMemoryDocumentProvider([Document(1)]),
            store=InMemorySettingsStore()
        )
        client = TestClient(app)

        response = client.post("/protection/check", json={"document_id": 1})
        assert response.status_code == 200

        health = client.get("/health").json()
        assert health["dependencies"]["commerce"] == "disabled"
