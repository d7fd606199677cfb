"""
Validated access to per-document protection settings.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from shared.errors import DocumentNotFoundError, InvalidSettingError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..interfaces import DocumentProvider, SettingsStore
from .attributes import ATTRIBUTES, AttributeSpec, get_attribute


class PolicySettings:
    """Reads and writes protection attributes through a settings store.

    Reads never fail: a stored value that does not survive sanitizing and
    validation is treated as absent, removed from the store and reported
    as a data-integrity warning. Writes refuse values that would be
    changed by sanitizing, or that are invalid, with InvalidSettingError.
    """

    def __init__(self, store: SettingsStore, documents: DocumentProvider,
                 metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.documents = documents
        self.metrics = metrics
        self.logger = get_logger("protection.settings")

    def get(self, name: str, document_id: int) -> Any:
        """Get the validated value of an attribute, or its default."""
        attribute = get_attribute(name)
        raw = self.store.get(attribute.key, document_id)

        if attribute.multiple:
            return self._get_many(attribute, document_id, raw)

        if raw is None or raw == "":
            return attribute.default

        value = self._clean(attribute, document_id, raw)
        if value is None:
            return attribute.default
        return attribute.decode(value)

    def save(self, name: str, document_id: int, value: Any, force: bool = False) -> bool:
        """Save an attribute value.

        Returns whether the stored value changed. Raises DocumentNotFoundError
        for unknown documents and InvalidSettingError for refused values.
        When ``force`` is set, values changed by sanitizing are saved in
        their sanitized form as long as that form is valid.
        """
        attribute = get_attribute(name)
        self._require_document(document_id)

        if attribute.multiple:
            return self._save_many(attribute, document_id, value, force)

        sanitized = self._prepare(attribute, value, force)
        if self.store.get(attribute.key, document_id) == sanitized:
            return False

        saved = self.store.save(attribute.key, document_id, sanitized)
        if saved:
            self.logger.info("Protection setting saved", attribute=name, document_id=document_id)
        return saved

    def save_each(self, name: str, document_id: int, values: Iterable[Any]) -> Tuple[List[str], Dict[str, str]]:
        """Replace a multiple-valued attribute one element at a time.

        The stored list is cleared, then every element that passes
        sanitizing and validation is saved. Returns the stored values and
        the refused elements with the reason each was refused.
        """
        attribute = get_attribute(name)
        if not attribute.multiple:
            raise ValueError(f"Attribute {name} holds a single value")
        self._require_document(document_id)
        if isinstance(values, (str, int)):
            values = [values]

        prepared: List[str] = []
        refused: Dict[str, str] = {}
        for value in values:
            try:
                sanitized = self._prepare(attribute, value, force=False)
            except InvalidSettingError as e:
                refused[str(value)] = e.message
                continue
            if sanitized not in prepared:
                prepared.append(sanitized)

        self.store.delete(attribute.key, document_id)
        if prepared and not self.store.save(attribute.key, document_id, prepared):
            prepared = []

        if refused:
            self.logger.warning("Refused invalid protection setting elements", attribute=name,
                                document_id=document_id, refused=sorted(refused))
        if prepared:
            self.logger.info("Protection setting saved", attribute=name,
                             document_id=document_id, count=len(prepared))
        return prepared, refused

    def delete(self, name: str, document_id: int) -> bool:
        """Delete an attribute's stored value."""
        attribute = get_attribute(name)
        return self.store.delete(attribute.key, document_id)

    def delete_all(self, document_id: int) -> List[str]:
        """Delete every protection attribute of a document."""
        self._require_document(document_id)
        deleted = [name for name in ATTRIBUTES if self.delete(name, document_id)]
        self.logger.info("Protection settings cleared", document_id=document_id, deleted=deleted)
        return deleted

    # Helpers

    def _require_document(self, document_id: int):
        if self.documents.get(document_id) is None:
            raise DocumentNotFoundError(document_id)

    def _prepare(self, attribute: AttributeSpec, value: Any, force: bool) -> str:
        encoded = attribute.encode(value)
        sanitized = attribute.sanitize(encoded)
        if sanitized != encoded and not force:
            raise InvalidSettingError(attribute.name, value, "Refused to save different value")
        if not attribute.validate(sanitized):
            raise InvalidSettingError(attribute.name, value)
        return sanitized

    def _save_many(self, attribute: AttributeSpec, document_id: int, values: Any, force: bool) -> bool:
        if isinstance(values, (str, int)):
            values = [values]

        prepared: List[str] = []
        for value in values:
            sanitized = self._prepare(attribute, value, force)
            if sanitized not in prepared:
                prepared.append(sanitized)

        if not prepared:
            return self.store.delete(attribute.key, document_id)

        if self.store.get(attribute.key, document_id) == prepared:
            return False

        saved = self.store.save(attribute.key, document_id, prepared)
        if saved:
            self.logger.info("Protection setting saved", attribute=attribute.name,
                             document_id=document_id, count=len(prepared))
        return saved

    def _get_many(self, attribute: AttributeSpec, document_id: int, raw: Any) -> frozenset:
        if raw is None:
            return attribute.default
        if not isinstance(raw, (list, tuple, set, frozenset)):
            raw = [raw]

        values = set()
        for element in list(raw):
            if element is None or element == "":
                continue
            value = self._clean(attribute, document_id, element)
            if value is not None:
                values.add(attribute.decode(value))
        return frozenset(values)

    def _clean(self, attribute: AttributeSpec, document_id: int, raw: Any) -> Optional[str]:
        """Sanitize and validate one raw stored value, healing the store if needed."""
        text = raw if isinstance(raw, str) else str(raw)
        sanitized = attribute.sanitize(text)
        if sanitized != text:
            self.logger.warning(
                "Sanitization occurred, stored value is corrupt",
                attribute=attribute.name,
                document_id=document_id
            )

        if attribute.validate(sanitized):
            return sanitized

        if self.metrics:
            self.metrics.increment_counter("protection_integrity_warnings_total", attribute=attribute.name)

        if self.store.delete(attribute.key, document_id, raw):
            self.logger.warning(
                "Deleted invalid stored value",
                attribute=attribute.name,
                document_id=document_id,
                value=text
            )
        else:
            self.logger.warning(
                "Ignored invalid stored value",
                attribute=attribute.name,
                document_id=document_id,
                value=text
            )
        return None
