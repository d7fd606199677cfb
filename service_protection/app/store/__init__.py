"""
Settings store package for the Protection Service.

Stores keep raw per-document attribute values and never validate them;
validation and self-healing happen in policy.settings.

- memory: dict-backed store for tests and single-process use.
- redis_store: one Redis hash per document, JSON-encoded values.
"""

from .memory import InMemorySettingsStore
from .redis_store import RedisSettingsStore

__all__ = ["InMemorySettingsStore", "RedisSettingsStore"]
