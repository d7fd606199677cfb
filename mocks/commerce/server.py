"""
Mock commerce server answering entitlement quantity lookups from an order ledger.
"""

from typing import Dict, Any, Optional, List
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import sys
import os

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import ValidationError
from shared.logging import get_logger
from service_protection.app.entitlements.ledger import LedgerEntitlementOracle
from service_protection.app.policy.models import QuantityKind


class OrderLineModel(BaseModel):
    """Order line payload."""
    item_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)
    variation_id: Optional[int] = None


class OrderModel(BaseModel):
    """Order payload."""
    order_id: str
    customer_keys: List[str]
    status: str = "completed"
    lines: List[OrderLineModel] = Field(default_factory=list)


class RefundModel(BaseModel):
    """Refund payload."""
    item_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class MockCommerceServer:
    """Mock commerce server implementation."""

    def __init__(self, ledger: Optional[LedgerEntitlementOracle] = None, port: int = 8090):
        self.port = port
        self.logger = get_logger("mock.commerce")
        self.ledger = ledger or LedgerEntitlementOracle()
        self.app = FastAPI(title="Mock Commerce", version="1.0.0")

        self._setup_routes()

    def _setup_routes(self):
        """Set up mock commerce routes."""

        @self.app.get("/")
        def root():
            return {
                "service": "mock-commerce",
                "orders": len(self.ledger.orders)
            }

        @self.app.get("/health")
        def health():
            if not self.ledger.is_available():
                return JSONResponse(status_code=503, content={"status": "unavailable"})
            return {"status": "ok"}

        @self.app.get("/commerce/quantity")
        def quantity(
            item_id: int = Query(..., description="Item ID"),
            kind: QuantityKind = Query(QuantityKind.OWNED, description="Quantity kind"),
            identity: List[str] = Query(default=[], description="Customer identity keys")
        ) -> Dict[str, Any]:
            value = self.ledger.quantity(item_id, identity, kind)
            self.logger.info("Quantity lookup", item_id=item_id, kind=kind.value, quantity=value)
            return {"item_id": item_id, "kind": kind.value, "quantity": value}

        @self.app.post("/commerce/orders", status_code=201)
        def create_order(order: OrderModel):
            try:
                recorded = self.ledger.record_order(
                    order.order_id,
                    order.customer_keys,
                    [(line.item_id, line.quantity, line.variation_id) for line in order.lines],
                    status=order.status
                )
            except ValidationError as e:
                raise HTTPException(status_code=400, detail=e.message)
            return {"order_id": recorded.order_id, "status": recorded.status, "lines": len(recorded.lines)}

        @self.app.post("/commerce/orders/{order_id}/refunds", status_code=201)
        def refund_order(order_id: str, refund: RefundModel):
            try:
                line = self.ledger.record_refund(order_id, refund.item_id, refund.quantity)
            except ValidationError as e:
                raise HTTPException(status_code=404, detail=e.message)
            return {"order_id": order_id, "item_id": line.item_id, "quantity": line.quantity}


def create_app(ledger: Optional[LedgerEntitlementOracle] = None):
    """Create mock commerce application."""
    server = MockCommerceServer(ledger)
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
