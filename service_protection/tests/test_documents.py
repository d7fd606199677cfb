"""
Unit tests for the document provider.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import ValidationError
from service_protection.app.documents import InMemoryDocumentProvider, load_documents
from service_protection.app.interfaces import DocumentProvider
from service_protection.app.policy.models import Document


class TestInMemoryDocumentProvider:
    """Test cases for InMemoryDocumentProvider."""

    @pytest.fixture
    def provider(self):
        """Create provider with a page tree and a post."""
        return InMemoryDocumentProvider([
            Document(1),
            Document(2, parent_id=1),
            Document(3, parent_id=1, doc_type="post"),
        ])

    def test_satisfies_protocol(self, provider):
        assert isinstance(provider, DocumentProvider)

    def test_get(self, provider):
        assert provider.get(2).parent_id == 1
        assert provider.get(99) is None
        assert len(provider) == 3

    def test_parent_of(self, provider):
        assert provider.parent_of(provider.get(2)).document_id == 1
        assert provider.parent_of(provider.get(1)) is None
        assert provider.parent_of(Document(4, parent_id=42)) is None

    def test_hierarchical_types(self, provider):
        assert provider.is_hierarchical_type(provider.get(2))
        assert not provider.is_hierarchical_type(provider.get(3))

    def test_rejects_non_positive_ids(self, provider):
        with pytest.raises(ValidationError):
            provider.add(Document(0))

    def test_remove(self, provider):
        assert provider.remove(2) is True
        assert provider.remove(2) is False
        assert provider.get(2) is None


class TestLoadDocuments:
    """Test cases for loading documents from YAML."""

    def test_load_documents(self, tmp_path):
        path = tmp_path / "documents.yaml"
        path.write_text(
            "documents:\n"
            "  - id: 1\n"
            "    title: Members\n"
            "  - id: 2\n"
            "    parent: 1\n"
            "  - id: 3\n"
            "    parent: 1\n"
            "    type: post\n"
        )

        documents = load_documents(path)

        assert [document.document_id for document in documents] == [1, 2, 3]
        assert documents[0].title == "Members"
        assert documents[0].is_root
        assert documents[2].doc_type == "post"

    def test_load_bare_list(self, tmp_path):
        path = tmp_path / "documents.yaml"
        path.write_text("- id: 7\n")

        assert load_documents(str(path)) == [Document(7)]

    def test_invalid_record(self, tmp_path):
        path = tmp_path / "documents.yaml"
        path.write_text("documents:\n  - id: 0\n")

        with pytest.raises(ValidationError):
            load_documents(path)
