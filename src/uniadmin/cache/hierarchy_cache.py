"""External read-through cache for hierarchy trees, statistics and unit contexts.

Values are plain JSON-compatible structures (dumped DTOs). Two backends share
one key layout under ``uniadmin:hierarchy:``:

    tree:all / tree:<root_id>   assembled hierarchy trees
    stats                       hierarchy statistics
    unit:<unit_id>:context      per-unit context bundles

Every flush bumps a generation counter before deleting. A read-through caller
captures the generation before computing and passes it back with the write,
which is dropped when a flush happened in between.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from redis.exceptions import WatchError

from uniadmin.config import settings

logger = logging.getLogger(__name__)

NAMESPACE = "uniadmin:hierarchy:"
GENERATION_KEY = "uniadmin:hierarchy-generation"


def tree_key(root_id: int | None = None) -> str:
    return f"tree:{'all' if root_id is None else root_id}"


def stats_key() -> str:
    return "stats"


def unit_context_key(unit_id: int) -> str:
    return f"unit:{unit_id}:context"


def _is_hierarchy_key(key: str) -> bool:
    return key.startswith("tree:") or key == stats_key()


def _is_unit_key(key: str, unit_id: int) -> bool:
    return key.startswith(f"unit:{unit_id}:")


class HierarchyCacheService(ABC):
    """Port for the TTL-based cache sitting in front of hierarchy reads."""

    def __init__(
        self,
        hierarchy_ttl: int | None = None,
        context_ttl: int | None = None,
        statistics_ttl: int | None = None,
    ):
        self.hierarchy_ttl = hierarchy_ttl or settings.hierarchy_cache_ttl
        self.context_ttl = context_ttl or settings.unit_context_cache_ttl
        self.statistics_ttl = statistics_ttl or settings.statistics_cache_ttl

    @abstractmethod
    async def _get(self, key: str) -> Any | None: ...

    @abstractmethod
    async def _set(self, key: str, value: Any, ttl: int, generation: int | None = None) -> None: ...

    @abstractmethod
    async def generation(self) -> int:
        """Current flush generation."""

    @abstractmethod
    async def flush_hierarchy(self) -> None:
        """Drop cached trees and statistics."""

    @abstractmethod
    async def flush_unit(self, unit_id: int) -> None:
        """Drop every entry scoped to ``unit_id``."""

    @abstractmethod
    async def flush_all(self) -> None: ...

    @abstractmethod
    async def cache_info(self) -> dict[str, Any]: ...

    async def get_hierarchy_tree(self, root_id: int | None = None) -> Any | None:
        return await self._get(tree_key(root_id))

    async def set_hierarchy_tree(
        self, tree: Any, root_id: int | None = None, ttl: int | None = None, generation: int | None = None
    ) -> None:
        await self._set(tree_key(root_id), tree, ttl or self.hierarchy_ttl, generation)

    async def get_statistics(self) -> Any | None:
        return await self._get(stats_key())

    async def set_statistics(self, stats: Any, ttl: int | None = None, generation: int | None = None) -> None:
        await self._set(stats_key(), stats, ttl or self.statistics_ttl, generation)

    async def get_unit_context(self, unit_id: int) -> Any | None:
        return await self._get(unit_context_key(unit_id))

    async def set_unit_context(
        self, unit_id: int, context: Any, ttl: int | None = None, generation: int | None = None
    ) -> None:
        await self._set(unit_context_key(unit_id), context, ttl or self.context_ttl, generation)


class InMemoryHierarchyCache(HierarchyCacheService):
    """Process-local backend used in local mode and tests."""

    def __init__(self, *args: Any, clock=time.monotonic, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._generation = 0

    async def _get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[key]
            logger.debug("Cache expired: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return value

    async def generation(self) -> int:
        return self._generation

    async def _set(self, key: str, value: Any, ttl: int, generation: int | None = None) -> None:
        if generation is not None and generation != self._generation:
            logger.debug("Skipped stale cache write: %s", key)
            return
        self._entries[key] = (self._clock() + ttl, value)

    def _drop(self, predicate) -> int:
        keys = [k for k in self._entries if predicate(k)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def flush_hierarchy(self) -> None:
        self._generation += 1
        self._drop(_is_hierarchy_key)

    async def flush_unit(self, unit_id: int) -> None:
        self._generation += 1
        self._drop(lambda k: _is_unit_key(k, unit_id))

    async def flush_all(self) -> None:
        self._generation += 1
        self._entries.clear()

    def cleanup_expired(self) -> int:
        now = self._clock()
        removed = self._drop(lambda k: self._entries[k][0] <= now)
        if removed:
            logger.debug("Removed %d expired cache entries", removed)
        return removed

    async def cache_info(self) -> dict[str, Any]:
        now = self._clock()
        valid = sum(1 for expires_at, _ in self._entries.values() if expires_at > now)
        return {
            "backend": "memory",
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid,
            "cache_keys": sorted(self._entries),
        }


class RedisHierarchyCache(HierarchyCacheService):
    """Redis backend: JSON values stored with SETEX under ``uniadmin:hierarchy:``."""

    def __init__(self, redis, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.redis = redis

    async def _get(self, key: str) -> Any | None:
        raw = await self.redis.get(NAMESPACE + key)
        if raw is None:
            logger.debug("Cache miss: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return json.loads(raw)

    async def generation(self) -> int:
        return int(await self.redis.get(GENERATION_KEY) or 0)

    async def _set(self, key: str, value: Any, ttl: int, generation: int | None = None) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        if generation is None:
            await self.redis.setex(NAMESPACE + key, ttl, payload)
            return

        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(GENERATION_KEY)
                if int(await pipe.get(GENERATION_KEY) or 0) != generation:
                    logger.debug("Skipped stale cache write: %s", key)
                    return
                pipe.multi()
                pipe.setex(NAMESPACE + key, ttl, payload)
                await pipe.execute()
            except WatchError:
                logger.debug("Skipped stale cache write: %s", key)

    async def _delete_matching(self, pattern: str) -> int:
        keys = [key async for key in self.redis.scan_iter(match=NAMESPACE + pattern)]
        if keys:
            await self.redis.delete(*keys)
        return len(keys)

    async def flush_hierarchy(self) -> None:
        await self.redis.incr(GENERATION_KEY)
        await self._delete_matching("tree:*")
        await self.redis.delete(NAMESPACE + stats_key())

    async def flush_unit(self, unit_id: int) -> None:
        await self.redis.incr(GENERATION_KEY)
        await self._delete_matching(f"unit:{unit_id}:*")

    async def flush_all(self) -> None:
        await self.redis.incr(GENERATION_KEY)
        removed = await self._delete_matching("*")
        logger.debug("Flushed %d hierarchy cache keys", removed)

    async def cache_info(self) -> dict[str, Any]:
        keys = sorted([key async for key in self.redis.scan_iter(match=NAMESPACE + "*")])
        return {
            "backend": "redis",
            "total_entries": len(keys),
            "cache_keys": [k[len(NAMESPACE):] if isinstance(k, str) else k for k in keys],
        }
