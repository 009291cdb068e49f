"""
Merged configuration cache backends.

Keys embed the tenant's cache generation and the version of every constituent
template, so a profile change or a template version bump simply produces a
new key; stale entries are never read and just expire.
"""

import hashlib
import threading
import time
from typing import Any, Dict, Mapping, Optional, Sequence

import redis
import ujson as json

from bizcore import consts
from bizcore.env_var_injection import (
    merged_config_cache_backend, merged_config_cache_ttl_seconds, redis_db, redis_host, redis_port
)
from bizcore.utils.log import get_logger

logger = get_logger(__name__)


def build_cache_key(tenant_id: str, cache_generation: int, business_types: Sequence[str],
                    template_versions: Mapping[str, int]) -> str:
    """Key over (tenant, profile generation, ordered constituent versions)."""
    constituents = "|".join(f"{name}@{template_versions[name]}" for name in business_types)
    digest = hashlib.sha1(constituents.encode("utf-8")).hexdigest()[:16]
    max_version = max(template_versions[name] for name in business_types)
    return f"{consts.MERGED_CONFIG_CACHE_PREFIX}:{tenant_id}:g{cache_generation}:v{max_version}:{digest}"


class MergedConfigCache:
    """Interface: JSON-compatible dict payloads keyed by string."""

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class InMemoryConfigCache(MergedConfigCache):
    """Process-local cache with TTL; used in tests and single-process deployments."""

    def __init__(self, ttl_seconds: int = merged_config_cache_ttl_seconds, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return None
            return json.loads(payload)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            # Stored serialized so callers can't mutate cached state
            self._entries[key] = (expires_at, json.dumps(value))
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def __len__(self):
        return len(self._entries)


class RedisConfigCache(MergedConfigCache):
    """Redis-backed cache shared across service instances. Redis errors degrade to cache misses."""

    def __init__(self, host: str = redis_host, port: int = redis_port, db: int = redis_db,
                 ttl_seconds: int = merged_config_cache_ttl_seconds, client: Optional[redis.Redis] = None):
        self.redis_client = client or redis.Redis(host=host, port=port, db=db, decode_responses=True)
        self.ttl_seconds = ttl_seconds
        logger.info(f"🔌 Initialized Redis merged-config cache on {host}:{port}/{db}")

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            cached = self.redis_client.get(key)
        except redis.exceptions.RedisError as e:
            logger.warning(f"⚠️  Cache GET failed for {key}, treating as miss: {e}")
            return None
        if cached is None:
            logger.debug(f"Cache MISS: {key}")
            return None
        logger.debug(f"Cache HIT: {key}")
        return json.loads(cached)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            self.redis_client.set(key, json.dumps(value, escape_forward_slashes=False), ex=ttl or None)
        except redis.exceptions.RedisError as e:
            logger.warning(f"⚠️  Cache SET failed for {key}: {e}")
            return False
        logger.debug(f"Cache SET: {key}")
        return True

    def delete(self, key: str) -> bool:
        try:
            return bool(self.redis_client.delete(key))
        except redis.exceptions.RedisError as e:
            logger.warning(f"⚠️  Cache DELETE failed for {key}: {e}")
            return False


def build_config_cache(backend: str = merged_config_cache_backend) -> MergedConfigCache:
    """Cache backend by name: `redis` for shared deployments, `memory` for a single process."""
    if backend == "redis":
        return RedisConfigCache()
    if backend == "memory":
        return InMemoryConfigCache()
    raise ValueError(f"Unknown merged config cache backend '{backend}', expected 'redis' or 'memory'")
