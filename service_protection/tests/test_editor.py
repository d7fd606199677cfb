"""
Unit tests for ProtectionEditor.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import DocumentNotFoundError
from service_protection.app.documents import InMemoryDocumentProvider
from service_protection.app.policy.editor import ProtectionEditor
from service_protection.app.policy.evaluator import AccessEvaluator
from service_protection.app.policy.resolver import PolicyResolver
from service_protection.app.policy.settings import PolicySettings
from service_protection.app.policy.models import (
    Document, IdentityState, ItemMatchMode, ProtectionSettingsUpdate,
)
from service_protection.app.store import InMemorySettingsStore

FALLBACK_URL = "https://example.com/"
JOIN_URL = "https://example.com/join"


class TestProtectionEditor:
    """Test cases for ProtectionEditor over the tree A(1) -> B(2) -> C(3)."""

    @pytest.fixture
    def store(self):
        """Create settings store."""
        return InMemorySettingsStore()

    @pytest.fixture
    def settings(self, store):
        """Create PolicySettings over a three-level tree."""
        documents = InMemoryDocumentProvider([
            Document(1),
            Document(2, parent_id=1),
            Document(3, parent_id=2),
        ])
        return PolicySettings(store, documents)

    @pytest.fixture
    def editor(self, settings):
        """Create ProtectionEditor."""
        resolver = PolicyResolver(settings.documents, settings)
        return ProtectionEditor(settings, resolver, AccessEvaluator(FALLBACK_URL))

    @pytest.fixture
    def protected_root(self, editor):
        """Protect A and cascade to its descendants."""
        editor.apply(1, ProtectionSettingsUpdate(
            inheritance="override",
            required_items=[5],
            item_match_mode="all",
            identity_state="logged_in",
            redirect_target=JOIN_URL,
            cascades_to_children=True,
        ))

    def test_override_saves_conditions(self, editor, settings):
        result = editor.apply(1, ProtectionSettingsUpdate(
            inheritance="override",
            required_items=[5, "7"],
            item_match_mode="all",
            identity_state="logged_in",
            redirect_target=JOIN_URL,
            cascades_to_children="yes",
        ))

        assert result.rejected == {}
        assert set(result.saved) == {
            "cascades_to_children", "redirect_target", "overrides_inheritance",
            "item_match_mode", "required_items", "identity_state",
        }
        assert settings.get("required_items", 1) == frozenset({5, 7})
        assert settings.get("item_match_mode", 1) == ItemMatchMode.ALL
        assert settings.get("identity_state", 1) == IdentityState.LOGGED_IN
        assert settings.get("cascades_to_children", 1) is True
        assert settings.get("overrides_inheritance", 1) is True

    def test_inherit_clears_local_conditions(self, editor, settings, store):
        """Test choosing to inherit drops conditions and ignores new ones."""
        settings.save("required_items", 3, [8])
        settings.save("identity_state", 3, "logged_out")
        settings.save("cascades_to_children", 3, True)

        result = editor.apply(3, ProtectionSettingsUpdate(
            inheritance="inherit",
            required_items=[9],
            identity_state="logged_in",
            redirect_target=JOIN_URL,
        ))

        assert "required_items" in result.deleted
        assert "identity_state" in result.deleted
        assert "cascades_to_children" in result.deleted
        assert result.saved == ["redirect_target", "overrides_inheritance"]
        assert store.get("required_items", 3) is None
        assert store.get("identity_state", 3) is None
        assert settings.get("overrides_inheritance", 3) is False
        assert settings.get("redirect_target", 3) == JOIN_URL

    def test_missing_items_are_deleted(self, editor, settings):
        settings.save("required_items", 2, [4])

        result = editor.apply(2, ProtectionSettingsUpdate(inheritance="override"))

        assert "required_items" in result.deleted
        assert settings.get("required_items", 2) == frozenset()

    def test_invalid_values_are_rejected(self, editor, settings):
        result = editor.apply(2, ProtectionSettingsUpdate(
            inheritance="override",
            identity_state="members_only",
            redirect_target="javascript:alert(1)",
            required_items=[6],
        ))

        assert set(result.rejected) == {"identity_state", "redirect_target"}
        assert settings.get("required_items", 2) == frozenset({6})
        assert settings.get("identity_state", 2) == IdentityState.ANY

    def test_invalid_item_ids_do_not_keep_stale_items(self, editor, settings, store):
        """Test a mixed list replaces the stored items and rejects only the bad ids."""
        settings.save("required_items", 2, [4])

        result = editor.apply(2, ProtectionSettingsUpdate(inheritance="override", required_items=[5, "abc"]))

        assert "required_items" in result.saved
        assert "abc" in result.rejected["required_items"]
        assert settings.get("required_items", 2) == frozenset({5})
        assert store.get("required_items", 2) == ["5"]

    def test_only_invalid_item_ids_clear_items(self, editor, settings):
        settings.save("required_items", 2, [4])

        result = editor.apply(2, ProtectionSettingsUpdate(inheritance="override", required_items=["abc"]))

        assert "required_items" in result.deleted
        assert "required_items" in result.rejected
        assert settings.get("required_items", 2) == frozenset()

    def test_unknown_inheritance_option(self, editor):
        result = editor.apply(2, ProtectionSettingsUpdate(inheritance="sometimes"))
        assert "inheritance" in result.rejected

    def test_unknown_document(self, editor):
        with pytest.raises(DocumentNotFoundError):
            editor.apply(42, ProtectionSettingsUpdate(inheritance="override"))

    def test_summary_without_protector(self, editor):
        summary = editor.summarize(2)

        assert summary.protector_id is None
        assert summary.inheritance_mode is None
        assert summary.is_inheriting is False
        assert summary.is_protected is False
        assert summary.default_redirect_url == FALLBACK_URL
        assert summary.usable_redirect_url == FALLBACK_URL

    def test_summary_of_inheriting_document(self, editor, protected_root):
        summary = editor.summarize(3)

        assert summary.protector_id == 1
        assert summary.inheritance_mode == "inherit"
        assert summary.is_inheriting is True
        assert summary.is_protected is True
        assert summary.default_redirect_url == JOIN_URL
        assert summary.usable_redirect_url == JOIN_URL

    def test_summary_of_overriding_document(self, editor, protected_root):
        editor.apply(3, ProtectionSettingsUpdate(inheritance="override", identity_state="logged_out"))

        summary = editor.summarize(3)

        assert summary.protector_id == 1
        assert summary.inheritance_mode == "override"
        assert summary.is_inheriting is False
        assert summary.policy.required_identity_state == IdentityState.LOGGED_OUT
        assert summary.default_redirect_url == JOIN_URL
        assert summary.usable_redirect_url == FALLBACK_URL

    def test_summary_to_dict(self, editor, protected_root):
        data = editor.summarize(3).to_dict()

        assert data["protector_id"] == 1
        assert data["policy"]["inherited_from"] == 1
        assert data["inheritance_mode"] == "inherit"
