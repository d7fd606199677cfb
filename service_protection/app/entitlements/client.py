"""
Commerce service client acting as the entitlement oracle.
"""

from typing import Any, Dict, Iterable, Optional

import httpx

from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from ..policy.models import QuantityKind


class HttpEntitlementOracle:
    """Asks a remote commerce service how many units a customer owns."""

    def __init__(self, commerce_service_url: str, timeout: float = 5.0,
                 retry_attempts: int = 3, client: Optional[httpx.Client] = None,
                 retry_config: Optional[RetryConfig] = None):
        self.commerce_service_url = commerce_service_url.rstrip("/")
        self.logger = get_logger("protection.entitlements.client")
        self.client = client or httpx.Client(base_url=self.commerce_service_url, timeout=timeout)

        # Transport failures are retried; HTTP error statuses are not
        self._get = retry_on_exception(
            (httpx.TransportError,),
            config=retry_config or RetryConfig(max_attempts=retry_attempts)
        )(self._get_once)

    def _get_once(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return self.client.get(path, params=params)

    def is_available(self) -> bool:
        """Whether the commerce service answers its health check."""
        try:
            response = self._get("/health")
        except (RetryError, httpx.HTTPError) as e:
            self.logger.warning("Commerce service unavailable", error=str(e))
            return False

        if response.status_code != 200:
            self.logger.warning("Commerce service unhealthy", status_code=response.status_code)
            return False
        try:
            body = response.json()
        except ValueError:
            self.logger.warning("Commerce service returned a malformed health check")
            return False
        return isinstance(body, dict) and body.get("status") == "ok"

    def quantity(self, item_id: int, identity_keys: Iterable[str],
                 kind: QuantityKind = QuantityKind.OWNED) -> Optional[int]:
        keys = sorted({key for key in identity_keys if key})
        if item_id <= 0 or not keys:
            return None

        params = {"item_id": item_id, "kind": QuantityKind(kind).value, "identity": keys}
        try:
            response = self._get("/commerce/quantity", params=params)
            response.raise_for_status()
            quantity = response.json().get("quantity")
            if quantity is None:
                return None
            quantity = int(quantity)
        except (RetryError, httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            self.logger.error("Commerce quantity lookup failed", item_id=item_id, kind=params["kind"], error=str(e))
            return None

        return quantity if quantity >= 0 else None

    def owns(self, item_id: int, identity_keys: Iterable[str]) -> bool:
        owned = self.quantity(item_id, identity_keys, QuantityKind.OWNED)
        return owned is not None and owned > 0

    def close(self):
        self.client.close()
