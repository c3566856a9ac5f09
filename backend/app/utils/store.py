"""
Key/value store with per-key TTL.

Injected wherever the engine needs to remember something between calls
(e.g. last-known OEE results for degraded reads). Production wiring uses
``RedisTTLStore`` so every engine instance sees the same entries; the
in-memory store backs the test suite.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, Type

import redis
from pydantic import BaseModel, ValidationError
from redis import ConnectionPool
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class RedisTTLStore:
    """Redis-backed store. Values go through ``SETEX`` as JSON.

    With ``model`` set, values are written with ``model_dump_json`` and read
    back through ``model_validate_json``, so callers get the same pydantic
    type they stored. Redis failures are logged and read as a miss.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[Any] = None,
        namespace: str = "factoryops",
        default_ttl: Optional[int] = None,
        model: Optional[Type[BaseModel]] = None,
        max_connections: int = 10,
    ):
        if client is None:
            if url is None:
                raise ValueError("RedisTTLStore needs a url or a client")
            pool = ConnectionPool.from_url(url, max_connections=max_connections, decode_responses=True)
            client = redis.Redis(connection_pool=pool)
        self._client = client
        self._namespace = namespace
        self._default_ttl = default_ttl
        self._model = model

    @property
    def client(self) -> Any:
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _dump(self, value: Any) -> str:
        if isinstance(value, BaseModel):
            return value.model_dump_json()
        return json.dumps(value, default=str)

    def _load(self, raw: str) -> Any:
        if self._model is not None:
            return self._model.model_validate_json(raw)
        return json.loads(raw)

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._client.get(self._make_key(key))
            if raw is None:
                return None
            return self._load(raw)
        except (RedisError, ValidationError, json.JSONDecodeError) as exc:
            logger.error("store_get_failed", extra={"key": key, "error": str(exc)})
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        try:
            payload = self._dump(value)
            if ttl:
                self._client.setex(self._make_key(key), int(ttl), payload)
            else:
                self._client.set(self._make_key(key), payload)
        except (RedisError, TypeError) as exc:
            logger.error("store_set_failed", extra={"key": key, "error": str(exc)})

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._make_key(key))
        except RedisError as exc:
            logger.error("store_delete_failed", extra={"key": key, "error": str(exc)})


class InMemoryTTLStore:
    """Per-process store for tests. Expired entries are dropped on every write."""

    def __init__(
        self,
        default_ttl: Optional[int] = None,
        timer: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ):
        self._default_ttl = default_ttl
        self._timer = timer
        self._max_entries = max_entries
        self._items: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and self._timer() >= expires_at:
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        now = self._timer()
        expires_at = now + ttl if ttl else None
        with self._lock:
            self._evict_expired(now)
            self._items.pop(key, None)
            if self._max_entries is not None:
                # dicts keep insertion order, so the first key is the oldest write
                while len(self._items) >= self._max_entries:
                    del self._items[next(iter(self._items))]
            self._items[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._items.items() if expires_at is not None and now >= expires_at]
        for key in expired:
            del self._items[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
