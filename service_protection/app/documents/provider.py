"""
Document provider backed by an in-memory tree.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from shared.errors import ValidationError
from shared.logging import get_logger
from ..policy.models import Document


class DocumentRecord(BaseModel):
    """One document entry of a documents file."""
    id: int = Field(..., gt=0)
    parent: int = Field(0, ge=0)
    type: str = "page"
    title: Optional[str] = None

    def to_document(self) -> Document:
        return Document(document_id=self.id, parent_id=self.parent, doc_type=self.type, title=self.title)


class InMemoryDocumentProvider:
    """Serves documents from memory; only well-formed documents get in."""

    def __init__(self, documents: Iterable[Document] = (),
                 hierarchical_types: Iterable[str] = ("page",)):
        self.logger = get_logger("protection.documents")
        self.hierarchical_types = set(hierarchical_types)
        self._documents: Dict[int, Document] = {}
        for document in documents:
            self.add(document)

    def add(self, document: Document) -> Document:
        if document.document_id <= 0:
            raise ValidationError("Document ID must be positive", {"document_id": document.document_id})
        self._documents[document.document_id] = document
        return document

    def remove(self, document_id: int) -> bool:
        return self._documents.pop(document_id, None) is not None

    def get(self, document_id: int) -> Optional[Document]:
        return self._documents.get(document_id)

    def parent_of(self, document: Document) -> Optional[Document]:
        if document.is_root:
            return None
        return self._documents.get(document.parent_id)

    def is_hierarchical_type(self, document: Document) -> bool:
        return document.doc_type in self.hierarchical_types

    def __len__(self) -> int:
        return len(self._documents)


def load_documents(path: Union[str, Path]) -> List[Document]:
    """Load documents from a YAML file holding a ``documents`` list."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    records = data.get("documents", []) if isinstance(data, dict) else data
    try:
        return [DocumentRecord.model_validate(record).to_document() for record in records]
    except PydanticValidationError as e:
        raise ValidationError("Invalid documents file", {"path": str(path), "errors": e.errors()})
