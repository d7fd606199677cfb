"""
Redis-backed settings store for the Protection Service.
"""

import json
from typing import Any, Optional

import redis

from shared.logging import get_logger
from shared.errors import ExternalServiceError


class RedisSettingsStore:
    """Settings store keeping one Redis hash per document.

    Each attribute is a hash field holding the JSON-encoded raw value, so
    list-valued attributes survive the round trip.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0",
                 key_prefix: str = "protection:settings",
                 client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.logger = get_logger("protection.store.redis")
        self.redis = client or redis.Redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30
        )

    def _document_key(self, document_id: int) -> str:
        return f"{self.key_prefix}:{document_id}"

    def get(self, key: str, document_id: int) -> Optional[Any]:
        try:
            raw = self.redis.hget(self._document_key(document_id), key)
        except redis.RedisError as e:
            self.logger.error("Error reading protection setting", key=key, document_id=document_id, error=str(e))
            raise ExternalServiceError("redis", str(e))

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            # Not written by this store; validation decides what to do with it
            return raw

    def save(self, key: str, document_id: int, value: Any) -> bool:
        try:
            self.redis.hset(self._document_key(document_id), key, json.dumps(value))
            return True
        except redis.RedisError as e:
            self.logger.error("Error saving protection setting", key=key, document_id=document_id, error=str(e))
            return False

    def delete(self, key: str, document_id: int, value: Optional[Any] = None) -> bool:
        document_key = self._document_key(document_id)
        try:
            if value is None:
                return bool(self.redis.hdel(document_key, key))

            stored = self.get(key, document_id)
            if isinstance(stored, list):
                if value not in stored:
                    return False
                remaining = [element for element in stored if element != value]
                if remaining:
                    self.redis.hset(document_key, key, json.dumps(remaining))
                else:
                    self.redis.hdel(document_key, key)
                return True

            if stored != value:
                return False
            return bool(self.redis.hdel(document_key, key))

        except redis.RedisError as e:
            self.logger.error("Error deleting protection setting", key=key, document_id=document_id, error=str(e))
            return False

    def health_check(self) -> bool:
        try:
            return bool(self.redis.ping())
        except redis.RedisError:
            return False
