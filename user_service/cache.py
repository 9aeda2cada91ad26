"""Key-value store for ephemeral token state.

Three key namespaces live here:

- ``blacklist:<accessToken>``  revoked access tokens
- ``refresh:<userId>``         the single current refresh token per account
- ``verification:<token>``     email verification token -> user id

``RedisStore`` is the production backend. ``MemoryStore`` keeps the same
semantics in-process and is selected with ``REDIS_URL=memory://``.
"""
import threading
import time
from typing import Dict, Optional, Tuple

import redis
from fastapi import Request

from user_service.utils.logger import logger


def blacklist_key(access_token: str) -> str:
    return f"blacklist:{access_token}"


def refresh_key(user_id: str) -> str:
    return f"refresh:{user_id}"


def verification_key(token: str) -> str:
    return f"verification:{token}"


class KeyValueStore:
    """String get/set/delete with optional per-key TTL."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        pass


class RedisStore(KeyValueStore):
    """Thin redis-py wrapper. Errors are logged and re-raised to the caller."""

    def __init__(self, redis_url: str, *, connect_timeout: float = 10.0, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=connect_timeout,
            socket_timeout=socket_timeout,
        )

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError:
            logger.error("Error getting Redis key", exc_info=True)
            raise

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            if ttl_seconds:
                self.client.set(key, value, ex=ttl_seconds)
            else:
                self.client.set(key, value)
        except redis.RedisError:
            logger.error("Error setting Redis key", exc_info=True)
            raise

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError:
            logger.error("Error deleting Redis key", exc_info=True)
            raise

    def ping(self) -> bool:
        return bool(self.client.ping())

    def close(self) -> None:
        self.client.close()
        logger.info("Redis connection closed")


class MemoryStore(KeyValueStore):
    """Process-local store with lazy TTL expiry."""

    def __init__(self):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        with self._lock:
            self._data.clear()


def create_store(url: str, *, connect_timeout: float = 10.0, socket_timeout: float = 5.0) -> KeyValueStore:
    """Build the store for ``url``; ``memory://`` selects the in-process backend"""
    if url.startswith("memory://"):
        logger.warning("Using in-process key-value store; token state is not shared between workers")
        return MemoryStore()
    return RedisStore(url, connect_timeout=connect_timeout, socket_timeout=socket_timeout)


def get_cache(request: Request) -> KeyValueStore:
    """FastAPI dependency returning the store created in the app lifespan"""
    return request.app.state.cache
