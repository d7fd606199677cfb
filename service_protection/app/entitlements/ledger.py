"""
Order ledger entitlement oracle.

Counts how many units of an item a customer owns from the orders they
placed. A customer is matched by any of their identity keys (account ID,
billing email). Refunds are kept as negative quantities on the order they
refund, so owned = purchased - returned.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from shared.errors import ValidationError
from shared.logging import get_logger
from ..policy.models import QuantityKind

PAID_STATUSES: Tuple[str, ...] = ("processing", "completed")
REFUNDED_STATUS = "refunded"


@dataclass
class OrderLine:
    """A quantity of one item on an order; negative for refunds."""
    item_id: int
    quantity: int
    variation_id: Optional[int] = None

    def matches(self, item_id: int) -> bool:
        return item_id == self.item_id or item_id == self.variation_id


@dataclass
class Order:
    """A customer order with its line items and refunds."""
    order_id: str
    customer_keys: FrozenSet[str]
    status: str = "completed"
    lines: List[OrderLine] = field(default_factory=list)
    refunds: List[OrderLine] = field(default_factory=list)


class LedgerEntitlementOracle:
    """Entitlement oracle answering from an in-process order ledger."""

    def __init__(self, paid_statuses: Iterable[str] = PAID_STATUSES, available: bool = True):
        self.logger = get_logger("protection.entitlements.ledger")
        self.counted_statuses = set(paid_statuses) | {REFUNDED_STATUS}
        self.available = available
        self.orders: Dict[str, Order] = {}

    def record_order(self, order_id: str, customer_keys: Iterable[str],
                     lines: Iterable[Tuple[int, ...]], status: str = "completed") -> Order:
        """Record an order; ``lines`` holds (item_id, quantity[, variation_id]) tuples."""
        keys = _normalize_keys(customer_keys)
        if not keys:
            raise ValidationError("Order needs at least one customer key", {"order_id": order_id})

        order = Order(
            order_id=order_id,
            customer_keys=keys,
            status=status,
            lines=[OrderLine(*line) for line in lines],
        )
        self.orders[order_id] = order
        self.logger.debug("Order recorded", order_id=order_id, status=status, lines=len(order.lines))
        return order

    def record_refund(self, order_id: str, item_id: int, quantity: int) -> OrderLine:
        """Record the return of ``quantity`` units of an item from an order."""
        order = self.orders.get(order_id)
        if order is None:
            raise ValidationError("Unknown order", {"order_id": order_id})

        refund = OrderLine(item_id=item_id, quantity=-abs(quantity))
        order.refunds.append(refund)
        return refund

    def set_status(self, order_id: str, status: str):
        order = self.orders.get(order_id)
        if order is None:
            raise ValidationError("Unknown order", {"order_id": order_id})
        order.status = status

    def is_available(self) -> bool:
        return self.available

    def quantity(self, item_id: int, identity_keys: Iterable[str],
                 kind: QuantityKind = QuantityKind.OWNED) -> Optional[int]:
        """Count a customer's purchased, returned or owned units of an item.

        Returns None when the question cannot be answered: the ledger is
        unavailable, the item ID is not positive or no identity key is given.
        """
        if not self.available or item_id <= 0:
            return None

        keys = _normalize_keys(identity_keys)
        if not keys:
            return None

        purchased = 0
        returned = 0
        for order in self._orders_for(keys):
            purchased += sum(line.quantity for line in order.lines if line.matches(item_id))
            returned += sum(line.quantity for line in order.refunds if line.matches(item_id))

        kind = QuantityKind(kind)
        if kind == QuantityKind.PURCHASED:
            return purchased
        if kind == QuantityKind.RETURNED:
            return abs(returned)
        return purchased + returned

    def owns(self, item_id: int, identity_keys: Iterable[str]) -> bool:
        owned = self.quantity(item_id, identity_keys, QuantityKind.OWNED)
        return owned is not None and owned > 0

    def _orders_for(self, keys: FrozenSet[str]) -> List[Order]:
        return [
            order for order in self.orders.values()
            if order.status in self.counted_statuses and order.customer_keys & keys
        ]


def _normalize_keys(keys: Iterable[str]) -> FrozenSet[str]:
    return frozenset(str(key).strip().lower() for key in keys if key and str(key).strip())
