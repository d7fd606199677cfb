"""
Visitor context built from request data.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Set

from .policy.models import VisitorModel


@dataclass(frozen=True)
class Visitor:
    """The person asking to view a document."""
    user_id: Optional[str] = None
    email: Optional[str] = None
    admin: bool = False
    editable_document_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> "Visitor":
        return cls()

    @classmethod
    def from_model(cls, model: VisitorModel) -> "Visitor":
        return cls(
            user_id=model.user_id or None,
            email=model.email or None,
            admin=model.is_admin,
            editable_document_ids=frozenset(model.editable_document_ids),
        )

    def is_admin(self) -> bool:
        return self.admin

    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def can_edit(self, document_id: int) -> bool:
        if not self.is_authenticated():
            return False
        return self.admin or document_id in self.editable_document_ids

    def identity_keys(self) -> Set[str]:
        """Identifiers usable for entitlement lookup: account ID and email."""
        return {key for key in (self.user_id, self.email) if key}
