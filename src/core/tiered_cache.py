"""TTL-aware caching of token identities, the table catalog and query pages."""
import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from core.cache_keys import CATALOG_KEY, token_key
from schemas.cached_token import TokenIdentity

if TYPE_CHECKING:
    from core.redis import RedisClient

logger = logging.getLogger(__name__)

CATALOG_TTL = 300  # 5 minutes
QUERY_PAGE_TTL = 60  # short: row data changes often, but bursts of identical reads are common

# Native store expiry is a backstop only; the logical TTL is enforced at read time
_STORE_EXPIRY_FACTOR = 2


@dataclass
class CachedQueryPage:
    """A cached page of flattened records plus the unpaginated total."""

    records: list[dict[str, Any]]
    total: int


class TieredCache:
    """
    Cache for the three read-path namespaces: tokens, catalog, and query pages.

    Every entry is stored as an envelope `{"cachedAt": <epoch seconds>, "value": ...}`.
    Expiry is lazy: a read compares `cachedAt + ttl` against the clock and treats
    stale entries as misses without deleting them. Writes always overwrite
    (last write wins), which is safe because entries are pure functions of the
    query that produced them.
    """

    def __init__(
        self,
        redis_client: "RedisClient",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache with a Redis client and an optional clock."""
        self._redis = redis_client
        self._clock = clock

    async def get(self, key: str, ttl_seconds: int | None = None) -> Any | None:
        """
        Get a cached value.

        Args:
            key: Cache key.
            ttl_seconds: Logical TTL of the namespace. None means the entry never
                expires by age.

        Returns:
            The cached value, or None on a miss, stale entry, or unreadable entry.
        """
        data = await self._redis.get(key)
        if data is None:
            logger.debug("cache_miss key=%s", key)
            return None
        try:
            envelope = json.loads(data)
            cached_at = float(envelope["cachedAt"])
            value = envelope["value"]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("cache_entry_unreadable key=%s error=%s", key, e)
            return None
        if ttl_seconds is not None and cached_at + ttl_seconds <= self._clock():
            logger.debug("cache_stale key=%s", key)
            return None
        logger.debug("cache_hit key=%s", key)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """
        Store a value, replacing any existing entry.

        Entries with a TTL also get a native store expiry of twice the TTL so
        abandoned keys are eventually reclaimed. Entries without a TTL are kept
        until overwritten or deleted.

        Returns:
            True if the store accepted the write.
        """
        data = json.dumps({"cachedAt": self._clock(), "value": value})
        if ttl_seconds is None:
            return await self._redis.set(key, data)
        return await self._redis.setex(key, ttl_seconds * _STORE_EXPIRY_FACTOR, data)

    async def delete(self, key: str) -> bool:
        """Remove an entry."""
        return await self._redis.delete(key)

    # Token identities ------------------------------------------------------

    async def get_token(self, token: str) -> TokenIdentity | None:
        """Get the cached identity for a raw bearer token."""
        value = await self.get(token_key(token))
        if value is None:
            return None
        try:
            return TokenIdentity(**value)
        except TypeError as e:
            logger.warning("token_cache_unreadable error=%s", e)
            return None

    async def set_token(self, token: str, identity: TokenIdentity) -> None:
        """Cache a token identity with no expiry."""
        await self.set(token_key(token), asdict(identity))
        logger.debug("token_cache_set token_id=%s", identity.id)

    async def invalidate_token(self, token: str) -> None:
        """Purge a cached token identity (call when the token changes or is revoked)."""
        await self.delete(token_key(token))
        logger.debug("token_cache_invalidate")

    # Catalog ---------------------------------------------------------------

    async def get_catalog(self) -> list[dict[str, Any]] | None:
        """Get the cached unrestricted table catalog."""
        return await self.get(CATALOG_KEY, CATALOG_TTL)

    async def set_catalog(self, tables: list[dict[str, Any]]) -> None:
        """Cache the unrestricted table catalog."""
        await self.set(CATALOG_KEY, tables, CATALOG_TTL)

    # Query pages -----------------------------------------------------------

    async def get_query_page(self, key: str) -> CachedQueryPage | None:
        """Get a cached page of flattened records."""
        value = await self.get(key, QUERY_PAGE_TTL)
        if value is None:
            return None
        return CachedQueryPage(records=value["records"], total=int(value["total"]))

    async def set_query_page(self, key: str, records: list[dict[str, Any]], total: int) -> None:
        """Cache a page of flattened records (before any column projection)."""
        await self.set(key, {"records": records, "total": total}, QUERY_PAGE_TTL)


# Global tiered cache instance (set during app startup)
_tiered_cache: TieredCache | None = None


def get_tiered_cache() -> TieredCache | None:
    """Get the global tiered cache instance."""
    return _tiered_cache


def set_tiered_cache(cache: TieredCache | None) -> None:
    """Set the global tiered cache instance."""
    global _tiered_cache  # noqa: PLW0603
    _tiered_cache = cache
