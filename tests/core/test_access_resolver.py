"""Tests for bearer token resolution."""
from datetime import datetime, timedelta, UTC

import pytest

from core.access_policy import VisibilityPolicy
from core.auth import AccessResolver
from core.cache_keys import token_key
from core.tiered_cache import TieredCache
from fakes import FakeCacheStore, FakeRowStore
from schemas.cached_token import TokenIdentity
from services.exceptions import UnauthorizedError


@pytest.fixture
def resolver(row_store: FakeRowStore, tiered_cache: TieredCache) -> AccessResolver:
    """Resolver over the in-memory stores."""
    return AccessResolver(row_store, tiered_cache)


class TestAccessResolverRejects:
    """Tests for rejected tokens."""

    @pytest.mark.parametrize("token", [None, "", "   "])
    async def test__resolve__missing_token_raises(
        self, resolver: AccessResolver, row_store: FakeRowStore, token: str | None,
    ) -> None:
        """Missing or blank tokens fail before any lookup."""
        with pytest.raises(UnauthorizedError):
            await resolver.resolve(token)

        assert row_store.calls == []

    async def test__resolve__unknown_token_raises(
        self, resolver: AccessResolver, row_store: FakeRowStore,
    ) -> None:
        """Tokens not in the row store are unauthorized."""
        with pytest.raises(UnauthorizedError):
            await resolver.resolve("nope")

        assert row_store.call_names() == ["find_active_token"]

    async def test__resolve__unknown_token_is_not_cached(
        self, resolver: AccessResolver, cache_store: FakeCacheStore,
    ) -> None:
        """Failed lookups do not populate the cache."""
        with pytest.raises(UnauthorizedError):
            await resolver.resolve("nope")

        assert token_key("nope") not in cache_store.data

    async def test__resolve__expired_cached_token_raises(
        self,
        resolver: AccessResolver,
        row_store: FakeRowStore,
        tiered_cache: TieredCache,
    ) -> None:
        """A cached identity past its expiry is rejected without a row store lookup."""
        expired = (datetime.now(UTC) - timedelta(minutes=1)).isoformat()
        await tiered_cache.set_token("old", TokenIdentity(id="t", table_access=None, expires_at=expired))

        with pytest.raises(UnauthorizedError):
            await resolver.resolve("old")

        assert row_store.calls == []


class TestAccessResolverResolves:
    """Tests for successful resolution and caching."""

    async def test__resolve__first_lookup_hits_store_then_caches(
        self,
        resolver: AccessResolver,
        row_store: FakeRowStore,
        tiered_cache: TieredCache,
    ) -> None:
        """The first resolution reads the row store and caches the identity."""
        identity = TokenIdentity(id="partner", table_access='["t1", "t2"]')
        row_store.tokens["secret"] = identity

        policy = await resolver.resolve("secret")

        assert policy == VisibilityPolicy.restricted({"t1", "t2"})
        assert await tiered_cache.get_token("secret") == identity

    async def test__resolve__second_lookup_uses_cache_only(
        self, resolver: AccessResolver, row_store: FakeRowStore,
    ) -> None:
        """A cached token never touches the row store again."""
        row_store.tokens["secret"] = TokenIdentity(id="partner", table_access='["t1"]')

        await resolver.resolve("secret")
        await resolver.resolve("secret")

        assert row_store.call_names() == ["find_active_token"]

    async def test__resolve__cached_identity_survives_store_changes(
        self, resolver: AccessResolver, row_store: FakeRowStore,
    ) -> None:
        """Token entries have no TTL: grant changes apply only after invalidation."""
        row_store.tokens["secret"] = TokenIdentity(id="partner", table_access='["t1"]')
        await resolver.resolve("secret")

        row_store.tokens["secret"] = TokenIdentity(id="partner", table_access='["t2"]')
        assert await resolver.resolve("secret") == VisibilityPolicy.restricted({"t1"})

        await resolver.invalidate("secret")
        assert await resolver.resolve("secret") == VisibilityPolicy.restricted({"t2"})

    async def test__resolve__admin_token_is_unrestricted(
        self, resolver: AccessResolver, row_store: FakeRowStore,
    ) -> None:
        """The admin token sees the whole catalog."""
        row_store.tokens["admin-secret"] = TokenIdentity(id="admin-token", table_access=None)

        policy = await resolver.resolve("admin-secret")

        assert policy.unrestricted is True

    async def test__resolve__without_cache_always_reads_store(
        self, row_store: FakeRowStore,
    ) -> None:
        """With no cache configured every request reads the row store."""
        row_store.tokens["secret"] = TokenIdentity(id="partner", table_access="[]")
        resolver = AccessResolver(row_store, cache=None)

        await resolver.resolve("secret")
        await resolver.resolve("secret")

        assert row_store.call_names() == ["find_active_token", "find_active_token"]

    async def test__resolve__cache_outage_falls_back_to_store(
        self,
        resolver: AccessResolver,
        row_store: FakeRowStore,
        cache_store: FakeCacheStore,
    ) -> None:
        """Cache failures are soft: resolution still succeeds from the row store."""
        cache_store.fail = True
        row_store.tokens["secret"] = TokenIdentity(id="partner", table_access='["t1"]')

        assert await resolver.resolve("secret") == VisibilityPolicy.restricted({"t1"})
