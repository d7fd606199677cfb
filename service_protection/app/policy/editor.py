"""
Editing and summarizing a document's protection settings.
"""

from typing import Any, Callable

from shared.errors import DocumentNotFoundError, InvalidSettingError
from shared.logging import get_logger
from .attributes import (
    CASCADES_TO_CHILDREN, CONDITION_ATTRIBUTES, IDENTITY_STATE, ITEM_MATCH_MODE, OVERRIDES_INHERITANCE,
    REDIRECT_TARGET, REQUIRED_ITEMS,
)
from .evaluator import AccessEvaluator
from .models import EditResult, ProtectionSettingsUpdate, ProtectionSummary
from .resolver import PolicyResolver
from .settings import PolicySettings

INHERIT = "inherit"
OVERRIDE = "override"


class ProtectionEditor:
    """Applies editor changes to protection settings."""

    def __init__(self, settings: PolicySettings, resolver: PolicyResolver, evaluator: AccessEvaluator):
        self.settings = settings
        self.resolver = resolver
        self.evaluator = evaluator
        self.logger = get_logger("protection.editor")

    def apply(self, document_id: int, update: ProtectionSettingsUpdate) -> EditResult:
        """Apply an edit.

        Choosing to inherit clears the document's own conditions and its
        cascade flag, and nothing else in the edit is applied. Refused
        values are reported in the result without stopping the edit.
        """
        if self.settings.documents.get(document_id) is None:
            raise DocumentNotFoundError(document_id)

        result = EditResult(document_id=document_id)
        save = self._saver(document_id, result)

        if update.cascades_to_children is not None:
            save(CASCADES_TO_CHILDREN, update.cascades_to_children)
        else:
            self._delete(document_id, CASCADES_TO_CHILDREN, result)

        if update.redirect_target is not None:
            save(REDIRECT_TARGET, update.redirect_target)

        inheritance = (update.inheritance or "").strip().lower()
        if inheritance == INHERIT:
            for name in CONDITION_ATTRIBUTES + (CASCADES_TO_CHILDREN,):
                self._delete(document_id, name, result)
            save(OVERRIDES_INHERITANCE, False)
            return self._done(result)
        if inheritance == OVERRIDE:
            save(OVERRIDES_INHERITANCE, True)
        elif inheritance:
            result.rejected["inheritance"] = f"Unknown inheritance option {update.inheritance!r}"

        if update.item_match_mode is not None:
            save(ITEM_MATCH_MODE, update.item_match_mode)

        if update.required_items is not None:
            self._replace_items(document_id, update.required_items, result)
        else:
            self._delete(document_id, REQUIRED_ITEMS, result)

        if update.identity_state is not None:
            save(IDENTITY_STATE, update.identity_state)

        return self._done(result)

    def summarize(self, document_id: int) -> ProtectionSummary:
        """Describe a document's protection the way an editor sees it."""
        policy = self.resolver.resolve_id(document_id)
        protector = self.resolver.hierarchy.find_protector(policy.document)

        is_inheriting = (
            policy.inherited_from is not None
            and self.settings.documents.get(policy.inherited_from.document_id) is not None
        )

        if protector is None:
            inheritance_mode = None
            default_redirect_url = self.evaluator.fallback_redirect_url
        else:
            inheritance_mode = INHERIT if is_inheriting else OVERRIDE
            protector_policy = self.resolver.load_local(protector)
            default_redirect_url = self.evaluator.usable_url(self.resolver.effective_redirect(protector_policy))

        return ProtectionSummary(
            policy=policy,
            is_protected=self.evaluator.is_protected(policy),
            is_inheriting=is_inheriting,
            protector_id=protector.document_id if protector else None,
            inheritance_mode=inheritance_mode,
            usable_redirect_url=self.evaluator.usable_redirect_target(policy),
            default_redirect_url=default_redirect_url,
        )

    # Helpers

    def _saver(self, document_id: int, result: EditResult) -> Callable[[str, Any], None]:
        def save(name: str, value: Any):
            try:
                self.settings.save(name, document_id, value)
                result.saved.append(name)
            except InvalidSettingError as e:
                self.logger.warning("Refused to save invalid protection setting",
                                    document_id=document_id, attribute=name, value=str(value))
                result.rejected[name] = e.message
        return save

    def _replace_items(self, document_id: int, items: Any, result: EditResult):
        had_items = bool(self.settings.get(REQUIRED_ITEMS, document_id))
        stored, refused = self.settings.save_each(REQUIRED_ITEMS, document_id, items)
        if stored:
            result.saved.append(REQUIRED_ITEMS)
        elif had_items:
            result.deleted.append(REQUIRED_ITEMS)
        if refused:
            result.rejected[REQUIRED_ITEMS] = "Refused item ids: " + ", ".join(sorted(refused))

    def _delete(self, document_id: int, name: str, result: EditResult):
        if self.settings.delete(name, document_id) and name not in result.deleted:
            result.deleted.append(name)

    def _done(self, result: EditResult) -> EditResult:
        self.logger.info(
            "Protection settings edited",
            document_id=result.document_id,
            saved=result.saved,
            deleted=result.deleted,
            rejected=sorted(result.rejected)
        )
        return result
