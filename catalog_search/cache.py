"""Result cache with Redis primary and in-memory fallback."""
from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import redis
import redis.asyncio as aioredis

from .config import Settings
from .errors import CacheError
from .models import WireQuery

logger = logging.getLogger(__name__)


def cache_key(wire: WireQuery) -> str:
    """Content hash of the cacheable fields of ``wire``."""
    canonical = json.dumps(wire.cache_fields(), sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


class CacheBackend(Protocol):
    name: str

    async def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    async def set(self, key: str, value: Dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


@dataclass
class RedisCache:
    client: aioredis.Redis
    namespace: str = "elasticCache"
    name: str = "redis"

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            data = await self.client.get(self._key(key))
        except redis.RedisError as exc:
            raise CacheError("get", str(exc)) from exc
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            await self.client.set(self._key(key), json.dumps(value))
        except redis.RedisError as exc:
            raise CacheError("set", str(exc)) from exc

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryCache:
    name = "memory"

    def __init__(self) -> None:
        self._store: Dict[str, str] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            payload = self._store.get(key)
        if payload is None:
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        payload = json.dumps(value)
        with self._lock:
            self._store[key] = payload

    async def close(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._store)


async def create_cache(config: Settings) -> CacheBackend:
    if config.cache_backend == "memory":
        logger.info("Using in-memory cache")
        return InMemoryCache()
    client = aioredis.Redis(host=config.redis_host, port=config.redis_port, db=config.redis_db, decode_responses=False)
    try:
        await client.ping()
    except (redis.RedisError, OSError):
        logger.warning("Redis not available, using in-memory cache")
        await client.aclose()
        return InMemoryCache()
    logger.info("Using Redis cache at %s:%s", config.redis_host, config.redis_port)
    return RedisCache(client, namespace=config.cache_namespace)
