"""
Policy data models for the Protection Service.
"""

from typing import Dict, Any, Optional, List, FrozenSet, Union
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class ItemMatchMode(str, Enum):
    """How required items are matched against a visitor's entitlements."""
    ANY = "any"
    ALL = "all"


class IdentityState(str, Enum):
    """Identity states a document can require of its visitors."""
    LOGGED_IN = "logged_in"
    LOGGED_OUT = "logged_out"
    CAN_EDIT = "can_edit"
    ANY = "any"


class QuantityKind(str, Enum):
    """Kinds of item quantity known to an entitlement oracle."""
    PURCHASED = "purchased"
    RETURNED = "returned"
    OWNED = "owned"


class SearchOutcome(str, Enum):
    """Why an ancestor search stopped."""
    FOUND = "found"
    ROOT_REACHED = "root_reached"
    NOT_HIERARCHICAL = "not_hierarchical"
    BROKEN_LINK = "broken_link"
    CYCLE_DETECTED = "cycle_detected"
    DEPTH_EXCEEDED = "depth_exceeded"
    SELF_REFERENCE = "self_reference"


class DecisionReason(str, Enum):
    """Reason codes attached to access decisions."""
    ADMIN_BYPASS = "admin_bypass"
    MISSING_ITEMS = "missing_items"
    IDENTITY_STATE = "identity_state"
    GRANTED = "granted"


@dataclass(frozen=True)
class Document:
    """A node of the content tree."""
    document_id: int
    parent_id: int = 0
    doc_type: str = "page"
    title: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id <= 0


@dataclass(frozen=True)
class Policy:
    """Resolved access conditions and options for one document."""
    document: Document
    required_items: FrozenSet[int] = frozenset()
    item_match_mode: ItemMatchMode = ItemMatchMode.ANY
    required_identity_state: IdentityState = IdentityState.ANY
    redirect_target: str = ""
    redirect_is_inherited: bool = False
    cascades_to_children: bool = False
    overrides_inheritance: bool = False
    inherited_from: Optional[Document] = None

    @property
    def document_id(self) -> int:
        return self.document.document_id

    @property
    def is_inheriting(self) -> bool:
        return self.inherited_from is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and logs."""
        state = self.required_identity_state
        return {
            "document_id": self.document_id,
            "required_items": sorted(self.required_items),
            "item_match_mode": self.item_match_mode.value,
            "required_identity_state": state.value if isinstance(state, Enum) else str(state),
            "redirect_target": self.redirect_target,
            "redirect_is_inherited": self.redirect_is_inherited,
            "cascades_to_children": self.cascades_to_children,
            "overrides_inheritance": self.overrides_inheritance,
            "inherited_from": self.inherited_from.document_id if self.inherited_from else None,
        }


@dataclass(frozen=True)
class AncestorSearch:
    """Result of walking up the tree looking for a cascading ancestor."""
    outcome: SearchOutcome
    protector: Optional[Document] = None
    depth: int = 0

    @property
    def found(self) -> bool:
        return self.outcome == SearchOutcome.FOUND and self.protector is not None


@dataclass
class AccessDecision:
    """Verdict of an access check."""
    document_id: int
    prohibited: bool
    protected: bool
    reason: DecisionReason
    redirect_url: Optional[str] = None
    inherited_from: Optional[int] = None


@dataclass
class ProtectionSummary:
    """What an editor needs to know about a document's protection."""
    policy: Policy
    is_protected: bool
    is_inheriting: bool
    protector_id: Optional[int]
    inheritance_mode: Optional[str]
    usable_redirect_url: str
    default_redirect_url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": self.policy.to_dict(),
            "is_protected": self.is_protected,
            "is_inheriting": self.is_inheriting,
            "protector_id": self.protector_id,
            "inheritance_mode": self.inheritance_mode,
            "usable_redirect_url": self.usable_redirect_url,
            "default_redirect_url": self.default_redirect_url,
        }


@dataclass
class EditResult:
    """Outcome of applying a settings edit."""
    document_id: int
    saved: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)


class VisitorModel(BaseModel):
    """Visitor facts supplied by the rendering layer."""
    user_id: Optional[str] = Field(None, description="Account ID, absent for anonymous visitors")
    email: Optional[str] = Field(None, description="Account or billing email")
    is_admin: bool = Field(False, description="Holds administrative privilege")
    editable_document_ids: List[int] = Field(default_factory=list, description="Documents the visitor may edit")


class AccessCheckRequest(BaseModel):
    """Request model for an access check."""
    document_id: int = Field(..., gt=0, description="Document ID")
    visitor: VisitorModel = Field(default_factory=VisitorModel, description="Visitor facts")


class AccessDecisionResponse(BaseModel):
    """Response model for an access check."""
    document_id: int
    prohibited: bool
    protected: bool
    reason: str
    redirect_url: Optional[str] = None
    inherited_from: Optional[int] = None


class ProtectionSettingsUpdate(BaseModel):
    """Edit of a document's protection settings."""
    inheritance: Optional[str] = Field(None, description="'inherit' or 'override'")
    required_items: Optional[List[Union[int, str]]] = Field(None, description="Required item IDs")
    item_match_mode: Optional[str] = Field(None, description="'any' or 'all'")
    identity_state: Optional[str] = Field(None, description="Required identity state")
    redirect_target: Optional[str] = Field(None, description="Redirect URL, empty for the fallback")
    cascades_to_children: Optional[Union[bool, str]] = Field(None, description="Cascade to children")


class EditResponse(BaseModel):
    """Response model for a settings edit."""
    document_id: int
    saved: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    rejected: Dict[str, str] = Field(default_factory=dict)
    summary: Dict[str, Any] = Field(default_factory=dict)
