"""
Access evaluation for the Protection Service.
"""

import time
from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..interfaces import EntitlementOracle, VisitorContext
from .attributes import is_redirect_target, sanitize_url
from .models import AccessDecision, DecisionReason, IdentityState, ItemMatchMode, Policy


class AccessEvaluator:
    """Decides whether a visitor may view a document under its policy.

    Admins always pass. Otherwise the entitlement gate and the identity
    gate are independent and both must pass. The entitlement gate is
    skipped when there is no oracle or the oracle is unavailable.
    """

    def __init__(self, fallback_redirect_url: str, oracle: Optional[EntitlementOracle] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.fallback_redirect_url = fallback_redirect_url
        self.oracle = oracle
        self.metrics = metrics
        self.logger = get_logger("protection.evaluator")

    def is_prohibited(self, policy: Policy, visitor: VisitorContext) -> bool:
        """Check if the visitor does not meet the policy's conditions."""
        return self._deny_reason(policy, visitor) is not None

    def evaluate(self, policy: Policy, visitor: VisitorContext) -> AccessDecision:
        """Evaluate a policy for a visitor and say where to send them if denied."""
        start_time = time.time()

        if visitor.is_admin():
            reason = DecisionReason.ADMIN_BYPASS
            prohibited = False
        else:
            denied = self._deny_reason(policy, visitor)
            prohibited = denied is not None
            reason = denied or DecisionReason.GRANTED

        decision = AccessDecision(
            document_id=policy.document_id,
            prohibited=prohibited,
            protected=self.is_protected(policy),
            reason=reason,
            redirect_url=self.usable_redirect_target(policy) if prohibited else None,
            inherited_from=policy.inherited_from.document_id if policy.inherited_from else None,
        )

        if self.metrics:
            self.metrics.increment_counter(
                "protection_checks_total",
                decision="deny" if prohibited else "allow"
            )
            self.metrics.observe_histogram("protection_check_duration_seconds", time.time() - start_time)

        self.logger.info(
            "Access evaluated",
            document_id=decision.document_id,
            prohibited=decision.prohibited,
            reason=decision.reason.value,
            inherited_from=decision.inherited_from
        )
        return decision

    @staticmethod
    def is_protected(policy: Policy) -> bool:
        """Check if access conditions exist."""
        return bool(policy.required_items) or policy.required_identity_state != IdentityState.ANY

    def usable_redirect_target(self, policy: Policy) -> str:
        """The policy's redirect target when usable, else the site fallback."""
        return self.usable_url(policy.redirect_target)

    def usable_url(self, url: Optional[str]) -> str:
        """Sanitize a redirect URL, falling back when the result is empty or invalid."""
        redirect_url = sanitize_url(url or "")
        if not redirect_url or not is_redirect_target(redirect_url):
            return self.fallback_redirect_url
        return redirect_url

    # Gates

    def _deny_reason(self, policy: Policy, visitor: VisitorContext) -> Optional[DecisionReason]:
        if visitor.is_admin():
            return None
        if self._entitlement_gate_fails(policy, visitor):
            return DecisionReason.MISSING_ITEMS
        if self._identity_gate_fails(policy, visitor):
            return DecisionReason.IDENTITY_STATE
        return None

    def _oracle_ready(self) -> bool:
        return self.oracle is not None and self.oracle.is_available()

    def _entitlement_gate_fails(self, policy: Policy, visitor: VisitorContext) -> bool:
        if not policy.required_items or not self._oracle_ready():
            return False

        identity_keys = visitor.identity_keys()
        items = sorted(policy.required_items)

        if policy.item_match_mode == ItemMatchMode.ALL:
            return not all(self.oracle.owns(item_id, identity_keys) for item_id in items)
        return not any(self.oracle.owns(item_id, identity_keys) for item_id in items)

    def _identity_gate_fails(self, policy: Policy, visitor: VisitorContext) -> bool:
        try:
            state = IdentityState(policy.required_identity_state)
        except ValueError:
            self.logger.error(
                "Unrecognized identity state condition. CONTENT MAY NOT BE PROPERLY PROTECTED! "
                "Resave the document's protection settings.",
                document_id=policy.document_id,
                identity_state=str(policy.required_identity_state)
            )
            return False

        if state == IdentityState.LOGGED_IN:
            return not visitor.is_authenticated()
        if state == IdentityState.LOGGED_OUT:
            return visitor.is_authenticated()
        if state == IdentityState.CAN_EDIT:
            return not visitor.can_edit(policy.document_id)
        return False
