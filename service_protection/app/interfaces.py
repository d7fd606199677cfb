"""
Collaborator interfaces consumed by the policy engine.

The engine never reaches for globals: the settings store, document
provider, entitlement oracle and visitor context are passed in by the
caller. Any object with the right methods will do.
"""

from typing import Any, Iterable, Optional, Protocol, Set, runtime_checkable

from .policy.models import Document, QuantityKind


@runtime_checkable
class SettingsStore(Protocol):
    """Raw per-document attribute storage. Values are returned unvalidated."""

    def get(self, key: str, document_id: int) -> Optional[Any]:
        ...

    def save(self, key: str, document_id: int, value: Any) -> bool:
        ...

    def delete(self, key: str, document_id: int, value: Optional[Any] = None) -> bool:
        ...


@runtime_checkable
class DocumentProvider(Protocol):
    """Lookup of documents and their place in the tree."""

    def get(self, document_id: int) -> Optional[Document]:
        ...

    def parent_of(self, document: Document) -> Optional[Document]:
        ...

    def is_hierarchical_type(self, document: Document) -> bool:
        ...


@runtime_checkable
class EntitlementOracle(Protocol):
    """Answers item ownership questions for a set of identity keys."""

    def is_available(self) -> bool:
        ...

    def quantity(self, item_id: int, identity_keys: Iterable[str],
                 kind: QuantityKind = QuantityKind.OWNED) -> Optional[int]:
        ...

    def owns(self, item_id: int, identity_keys: Iterable[str]) -> bool:
        ...


@runtime_checkable
class VisitorContext(Protocol):
    """Facts about the visitor requesting a document."""

    def is_admin(self) -> bool:
        ...

    def is_authenticated(self) -> bool:
        ...

    def can_edit(self, document_id: int) -> bool:
        ...

    def identity_keys(self) -> Set[str]:
        ...
