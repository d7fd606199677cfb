"""
Protection Service package for the Content Protection layer.

This package decides whether a visitor may view a protected document and
where to send them when they may not. It provides:

- app.main: API surface for access checks, protection settings and health.
- app.policy: Attribute schema, policy resolution and access evaluation.
- app.store: Settings stores (in-memory and Redis).
- app.documents: Document tree providers.
- app.entitlements: Entitlement oracles (order ledger and commerce client).

Guidelines:
- Reads of stored settings never fail; corrupt values are dropped and logged.
- Hierarchy problems fail open to "no inheritance" and are always logged.
- Keep evaluation deterministic and observable (metrics + logs).
"""
