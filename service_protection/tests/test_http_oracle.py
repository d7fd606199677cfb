"""
Unit tests for the commerce service entitlement oracle.
"""

import pytest
import httpx
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from mocks.commerce.server import create_app as create_commerce_app
from service_protection.app.entitlements import HttpEntitlementOracle, LedgerEntitlementOracle
from service_protection.app.interfaces import EntitlementOracle
from service_protection.app.policy.models import QuantityKind
from shared.retry import RetryConfig


class TestHttpEntitlementOracle:
    """Test cases for HttpEntitlementOracle against the mock commerce service."""

    @pytest.fixture
    def ledger(self):
        """Create ledger served by the mock commerce app."""
        ledger = LedgerEntitlementOracle()
        ledger.record_order("o1", ["u1", "buyer@example.com"], [(5, 2)])
        ledger.record_refund("o1", 5, 1)
        return ledger

    @pytest.fixture
    def oracle(self, ledger):
        """Create oracle talking to the mock commerce app."""
        client = TestClient(create_commerce_app(ledger))
        return HttpEntitlementOracle("http://testserver", client=client)

    def test_satisfies_protocol(self, oracle):
        assert isinstance(oracle, EntitlementOracle)

    def test_is_available(self, oracle, ledger):
        assert oracle.is_available()

        ledger.available = False
        assert not oracle.is_available()

    def test_quantities(self, oracle):
        keys = {"u1", "buyer@example.com"}

        assert oracle.quantity(5, keys, QuantityKind.PURCHASED) == 2
        assert oracle.quantity(5, keys, QuantityKind.RETURNED) == 1
        assert oracle.quantity(5, keys) == 1

    def test_owns(self, oracle):
        assert oracle.owns(5, {"buyer@example.com"})
        assert not oracle.owns(6, {"buyer@example.com"})
        assert not oracle.owns(5, {"someone@example.com"})

    def test_unanswerable_queries_are_not_sent(self):
        client = MagicMock()
        oracle = HttpEntitlementOracle("http://commerce", client=client)

        assert oracle.quantity(0, {"u1"}) is None
        assert oracle.quantity(5, set()) is None
        client.get.assert_not_called()

    def test_http_error_yields_none(self):
        client = MagicMock()
        request = httpx.Request("GET", "http://commerce/commerce/quantity")
        client.get.return_value = httpx.Response(500, request=request)
        oracle = HttpEntitlementOracle("http://commerce", client=client)

        assert oracle.quantity(5, {"u1"}) is None
        assert not oracle.owns(5, {"u1"})

    def test_transport_errors_are_retried(self):
        client = MagicMock()
        client.get.side_effect = httpx.ConnectError("connection refused")
        oracle = HttpEntitlementOracle(
            "http://commerce",
            client=client,
            retry_config=RetryConfig(max_attempts=3, base_delay=0.0, jitter=False)
        )

        assert oracle.quantity(5, {"u1"}) is None
        assert client.get.call_count == 3
        assert not oracle.is_available()

    @staticmethod
    def _oracle_answering(handler):
        client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://commerce")
        return HttpEntitlementOracle("http://commerce", client=client)

    def test_non_json_health_body_is_unavailable(self):
        oracle = self._oracle_answering(lambda request: httpx.Response(200, text="OK"))

        assert oracle.is_available() is False

    def test_non_object_health_body_is_unavailable(self):
        oracle = self._oracle_answering(lambda request: httpx.Response(200, json=["ok"]))

        assert oracle.is_available() is False

    @pytest.mark.parametrize("body", [
        {"quantity": "n/a"},
        {"quantity": [1]},
        ["quantity"],
    ])
    def test_malformed_quantity_yields_none(self, body):
        oracle = self._oracle_answering(lambda request: httpx.Response(200, json=body))

        assert oracle.quantity(5, {"u1"}) is None
        assert not oracle.owns(5, {"u1"})

    def test_non_json_quantity_body_yields_none(self):
        oracle = self._oracle_answering(lambda request: httpx.Response(200, text="<html>"))

        assert oracle.quantity(5, {"u1"}) is None
