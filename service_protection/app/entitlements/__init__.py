"""
Entitlement oracles.

An oracle answers "does this customer own at least one unit of item X",
counting purchases minus returns. The policy engine only needs the
boolean; quantities stay available for diagnostics.

- ledger: in-process order ledger.
- client: HTTP client for a remote commerce service.
"""

from .client import HttpEntitlementOracle
from .ledger import LedgerEntitlementOracle, Order, OrderLine

__all__ = ["HttpEntitlementOracle", "LedgerEntitlementOracle", "Order", "OrderLine"]
