"""
In-memory settings store.
"""

from typing import Any, Dict, Optional, Tuple

from shared.logging import get_logger


class InMemorySettingsStore:
    """Settings store keeping raw values in a dict keyed by document and key."""

    def __init__(self):
        self.logger = get_logger("protection.store.memory")
        self._values: Dict[Tuple[int, str], Any] = {}

    def get(self, key: str, document_id: int) -> Optional[Any]:
        value = self._values.get((document_id, key))
        if isinstance(value, list):
            return list(value)
        return value

    def save(self, key: str, document_id: int, value: Any) -> bool:
        self._values[(document_id, key)] = list(value) if isinstance(value, (list, tuple)) else value
        return True

    def delete(self, key: str, document_id: int, value: Optional[Any] = None) -> bool:
        slot = (document_id, key)
        if slot not in self._values:
            return False

        if value is None:
            del self._values[slot]
            return True

        stored = self._values[slot]
        if isinstance(stored, list):
            if value not in stored:
                return False
            remaining = [element for element in stored if element != value]
            if remaining:
                self._values[slot] = remaining
            else:
                del self._values[slot]
            return True

        if stored != value:
            return False
        del self._values[slot]
        return True

    def health_check(self) -> bool:
        return True
