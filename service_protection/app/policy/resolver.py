"""
Policy resolution for the Protection Service.

A document's policy is its own stored settings, unless it inherits: when
the document does not override inheritance and an ancestor cascades its
protection to descendants, the nearest such ancestor's conditions replace
the local ones as a whole.
"""

import dataclasses
from typing import Optional, Set

from shared.errors import DocumentNotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..interfaces import DocumentProvider
from .attributes import (
    CASCADES_TO_CHILDREN, IDENTITY_STATE, ITEM_MATCH_MODE, OVERRIDES_INHERITANCE,
    REDIRECT_TARGET, REQUIRED_ITEMS,
)
from .models import AncestorSearch, Document, Policy, SearchOutcome
from .settings import PolicySettings

DEFAULT_MAX_DEPTH = 64


class HierarchyResolver:
    """Finds the nearest ancestor that cascades its protection."""

    def __init__(self, documents: DocumentProvider, settings: PolicySettings,
                 max_depth: int = DEFAULT_MAX_DEPTH, metrics: Optional[MetricsCollector] = None):
        self.documents = documents
        self.settings = settings
        self.max_depth = max_depth
        self.metrics = metrics
        self.logger = get_logger("protection.resolver.hierarchy")

    def find_protector(self, document: Document) -> Optional[Document]:
        """Get the ancestor whose conditions the document would inherit."""
        return self.search(document).protector

    def search(self, document: Document) -> AncestorSearch:
        """Walk up from ``document`` and report where and why the walk stopped.

        Only the cascade flag of each ancestor is read; no ancestor policy
        is resolved on the way. Every outcome other than FOUND means there
        is nothing to inherit.
        """
        result = self._walk(document)
        if self.metrics:
            self.metrics.increment_counter("protection_ancestor_searches_total", outcome=result.outcome.value)
        return result

    def _walk(self, document: Document) -> AncestorSearch:
        if not self.documents.is_hierarchical_type(document):
            return AncestorSearch(SearchOutcome.NOT_HIERARCHICAL)

        visited: Set[int] = {document.document_id}
        current = document
        depth = 0

        while True:
            if current.is_root:
                return AncestorSearch(SearchOutcome.ROOT_REACHED, depth=depth)

            if depth >= self.max_depth:
                self.logger.error(
                    "Ancestor search exceeded depth limit",
                    document_id=document.document_id,
                    max_depth=self.max_depth
                )
                return AncestorSearch(SearchOutcome.DEPTH_EXCEEDED, depth=depth)

            parent_id = current.parent_id
            parent = self.documents.parent_of(current)
            depth += 1

            if parent is None:
                self.logger.error(
                    "Failed to load parent document when searching for protective ancestor",
                    document_id=document.document_id,
                    child_id=current.document_id,
                    parent_id=parent_id
                )
                return AncestorSearch(SearchOutcome.BROKEN_LINK, depth=depth)

            if parent.document_id in visited:
                cascades = parent.document_id == document.document_id and \
                    self.settings.get(CASCADES_TO_CHILDREN, parent.document_id)
                if cascades:
                    # Walked back to the starting document: self-protection is not inheritance
                    self.logger.warning("Document is its own protective ancestor", document_id=document.document_id)
                    return AncestorSearch(SearchOutcome.SELF_REFERENCE, depth=depth)
                self.logger.error(
                    "Cycle in document hierarchy",
                    document_id=document.document_id,
                    repeated_id=parent.document_id
                )
                return AncestorSearch(SearchOutcome.CYCLE_DETECTED, depth=depth)
            visited.add(parent.document_id)

            if self.settings.get(CASCADES_TO_CHILDREN, parent.document_id):
                return AncestorSearch(SearchOutcome.FOUND, protector=parent, depth=depth)

            current = parent


class PolicyResolver:
    """Builds the effective policy of a document."""

    def __init__(self, documents: DocumentProvider, settings: PolicySettings,
                 hierarchy: Optional[HierarchyResolver] = None):
        self.documents = documents
        self.settings = settings
        self.hierarchy = hierarchy or HierarchyResolver(documents, settings)
        self.logger = get_logger("protection.resolver.policy")

    def resolve_id(self, document_id: int) -> Policy:
        """Resolve the policy of a document by ID, failing fast on unknown IDs."""
        document = self.documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return self.resolve(document)

    def resolve(self, document: Document) -> Policy:
        """Resolve the policy of a document, inheriting from its protector."""
        local = self.load_local(document)
        if local.overrides_inheritance:
            return local

        protector = self.hierarchy.find_protector(document)
        if protector is None:
            return local

        return self._inherit(local, self.load_local(protector))

    def load_local(self, document: Document) -> Policy:
        """Build a document's policy from its own settings only."""
        get = self.settings.get
        document_id = document.document_id
        return Policy(
            document=document,
            required_items=frozenset(get(REQUIRED_ITEMS, document_id)),
            item_match_mode=get(ITEM_MATCH_MODE, document_id),
            required_identity_state=get(IDENTITY_STATE, document_id),
            redirect_target=get(REDIRECT_TARGET, document_id),
            cascades_to_children=get(CASCADES_TO_CHILDREN, document_id),
            overrides_inheritance=get(OVERRIDES_INHERITANCE, document_id),
        )

    def effective_redirect(self, policy: Policy) -> str:
        """A policy's own redirect target, or the one its protectors would pass down."""
        depth = 0
        visited = {policy.document_id}
        while not policy.redirect_target and not policy.overrides_inheritance:
            if depth >= self.hierarchy.max_depth:
                break
            protector = self.hierarchy.find_protector(policy.document)
            if protector is None or protector.document_id in visited:
                break
            visited.add(protector.document_id)
            policy = self.load_local(protector)
            depth += 1
        return policy.redirect_target

    def _inherit(self, local: Policy, ancestor: Policy) -> Policy:
        changes = {
            "required_items": ancestor.required_items,
            "item_match_mode": ancestor.item_match_mode,
            "required_identity_state": ancestor.required_identity_state,
            "inherited_from": ancestor.document,
        }
        if not local.redirect_target:
            changes["redirect_target"] = self.effective_redirect(ancestor)
            changes["redirect_is_inherited"] = True

        self.logger.debug(
            "Inheriting protection conditions",
            document_id=local.document_id,
            protector_id=ancestor.document_id
        )
        return dataclasses.replace(local, **changes)
