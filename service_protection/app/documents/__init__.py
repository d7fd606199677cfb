"""
Document provider package.

The policy engine only sees documents through the provider interface:
lookup by ID, parent lookup and whether a document's type takes part in
the hierarchy.
"""

from .provider import DocumentRecord, InMemoryDocumentProvider, load_documents

__all__ = ["DocumentRecord", "InMemoryDocumentProvider", "load_documents"]
