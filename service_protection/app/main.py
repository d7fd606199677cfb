"""
Protection service for the Content Protection layer.
"""

import sys
import os
from typing import Dict, Any, Iterable, Optional

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import ValidationError
from shared.logging import set_evaluation_context

from .documents import InMemoryDocumentProvider, load_documents
from .entitlements import HttpEntitlementOracle
from .interfaces import DocumentProvider, EntitlementOracle, SettingsStore
from .policy.editor import ProtectionEditor
from .policy.evaluator import AccessEvaluator
from .policy.models import (
    AccessCheckRequest, AccessDecisionResponse, Document, EditResponse, ProtectionSettingsUpdate,
)
from .policy.resolver import HierarchyResolver, PolicyResolver
from .policy.settings import PolicySettings
from .store import InMemorySettingsStore, RedisSettingsStore
from .visitor import Visitor

SERVICE_NAME = "protection"
SERVICE_PORT = 8013


class ProtectionService(BaseService):
    """Protection service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 documents: Optional[DocumentProvider] = None,
                 store: Optional[SettingsStore] = None,
                 oracle: Optional[EntitlementOracle] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        # Initialize components
        self.documents = documents if documents is not None else self._load_documents()
        self.store = store if store is not None else self._create_store()
        self.oracle = oracle if oracle is not None else self._create_oracle()

        self.settings = PolicySettings(self.store, self.documents, metrics=self.metrics)
        self.hierarchy = HierarchyResolver(
            self.documents,
            self.settings,
            max_depth=self.config.max_ancestor_depth,
            metrics=self.metrics
        )
        self.resolver = PolicyResolver(self.documents, self.settings, self.hierarchy)
        self.evaluator = AccessEvaluator(self.config.fallback_redirect_url, self.oracle, metrics=self.metrics)
        self.editor = ProtectionEditor(self.settings, self.resolver, self.evaluator)

        self._setup_protection_routes()

    def _load_documents(self) -> InMemoryDocumentProvider:
        documents: Iterable[Document] = ()
        if self.config.documents_file:
            documents = load_documents(self.config.documents_file)
        provider = InMemoryDocumentProvider(documents, hierarchical_types=self.config.hierarchical_types)
        self.logger.info("Documents loaded", count=len(provider), source=self.config.documents_file)
        return provider

    def _create_store(self) -> SettingsStore:
        backend = self.config.settings_backend.lower()
        if backend == "redis":
            return RedisSettingsStore(self.config.redis_url, key_prefix=self.config.settings_key_prefix)
        if backend == "memory":
            return InMemorySettingsStore()
        raise ValidationError("Unknown settings backend", {"settings_backend": self.config.settings_backend})

    def _create_oracle(self) -> Optional[EntitlementOracle]:
        if not self.config.commerce_service_url:
            self.logger.warning("No commerce service configured, item conditions will not be enforced")
            return None
        return HttpEntitlementOracle(
            self.config.commerce_service_url,
            timeout=self.config.commerce_timeout_seconds,
            retry_attempts=self.config.commerce_retry_attempts
        )

    def _setup_protection_routes(self):
        """Set up protection-specific routes."""

        @self.app.get("/")
        def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Content Protection - Protection Service",
                "version": "1.0.0",
                "capabilities": ["access_check", "inheritance", "settings"]
            }

        @self.app.post("/protection/check", response_model=AccessDecisionResponse)
        def check_access(request: AccessCheckRequest):
            """Decide whether a visitor may view a document."""
            set_evaluation_context(request.document_id, request.visitor.user_id)

            visitor = Visitor.from_model(request.visitor)
            policy = self.resolver.resolve_id(request.document_id)
            decision = self.evaluator.evaluate(policy, visitor)

            return AccessDecisionResponse(
                document_id=decision.document_id,
                prohibited=decision.prohibited,
                protected=decision.protected,
                reason=decision.reason.value,
                redirect_url=decision.redirect_url,
                inherited_from=decision.inherited_from
            )

        @self.app.get("/protection/documents/{document_id}")
        def get_protection(document_id: int):
            """Get a document's protection summary."""
            set_evaluation_context(document_id)
            return self.editor.summarize(document_id).to_dict()

        @self.app.put("/protection/documents/{document_id}/settings", response_model=EditResponse)
        def update_protection(document_id: int, update: ProtectionSettingsUpdate):
            """Apply an edit to a document's protection settings."""
            set_evaluation_context(document_id)
            result = self.editor.apply(document_id, update)
            summary = self.editor.summarize(document_id)

            return EditResponse(
                document_id=result.document_id,
                saved=result.saved,
                deleted=result.deleted,
                rejected=result.rejected,
                summary=summary.to_dict()
            )

        @self.app.delete("/protection/documents/{document_id}/settings")
        def delete_protection(document_id: int):
            """Delete all of a document's protection settings."""
            set_evaluation_context(document_id)
            deleted = self.settings.delete_all(document_id)
            return {"document_id": document_id, "deleted": deleted}

    def _check_dependencies(self) -> Dict[str, Any]:
        """Check protection service dependencies."""
        dependencies: Dict[str, Any] = {}

        health_check = getattr(self.store, "health_check", None)
        dependencies["settings_store"] = "ok" if health_check is None or health_check() else "error"

        if self.oracle is None:
            dependencies["commerce"] = "disabled"
        else:
            dependencies["commerce"] = "ok" if self.oracle.is_available() else "unavailable"

        return dependencies

    def stop(self):
        """Release external clients."""
        if isinstance(self.oracle, HttpEntitlementOracle):
            self.oracle.close()
        self.logger.info("Protection service stopped")


def create_app(config: Optional[ServiceConfig] = None,
               documents: Optional[DocumentProvider] = None,
               store: Optional[SettingsStore] = None,
               oracle: Optional[EntitlementOracle] = None):
    """Create protection service application."""
    service = ProtectionService(config=config, documents=documents, store=store, oracle=oracle)
    return service.app


if __name__ == "__main__":
    service = ProtectionService(get_config(SERVICE_NAME, SERVICE_PORT))
    try:
        service.run()
    finally:
        service.stop()
