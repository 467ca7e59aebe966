"""Bearer token authentication for the public table API."""
import logging
from datetime import datetime, UTC
from typing import TYPE_CHECKING

from core.access_policy import VisibilityPolicy, policy_for_identity
from schemas.cached_token import TokenIdentity
from services.exceptions import UnauthorizedError

if TYPE_CHECKING:
    from core.tiered_cache import TieredCache
    from services.row_store import RowStore

logger = logging.getLogger(__name__)


class AccessResolver:
    """
    Resolve bearer tokens into visibility policies.

    Token identities are cached without expiry: once a token has been looked up,
    later requests never touch the row store for it until the entry is
    invalidated or overwritten. Expiry is still enforced on cached identities.
    """

    def __init__(self, row_store: "RowStore", cache: "TieredCache | None" = None) -> None:
        """Initialize the resolver with a row store and an optional token cache."""
        self._row_store = row_store
        self._cache = cache

    async def identify(self, token: str | None) -> TokenIdentity:
        """
        Look up the identity behind a bearer token.

        Raises:
            UnauthorizedError: If the token is missing, blank, unknown, or expired.
        """
        if token is None or not token.strip():
            raise UnauthorizedError("Missing or malformed bearer token")

        now = datetime.now(UTC)
        if self._cache is not None:
            identity = await self._cache.get_token(token)
            if identity is not None:
                if identity.is_expired(now):
                    logger.debug("token_expired token_id=%s source=cache", identity.id)
                    raise UnauthorizedError()
                return identity

        # Row store errors propagate: an outage must not look like a bad token
        identity = await self._row_store.find_active_token(token)
        if identity is None:
            raise UnauthorizedError()

        if self._cache is not None:
            await self._cache.set_token(token, identity)
        return identity

    async def resolve(self, token: str | None) -> VisibilityPolicy:
        """
        Resolve a bearer token into the policy that scopes the request.

        Raises:
            UnauthorizedError: If the token is missing, blank, unknown, or expired.
        """
        identity = await self.identify(token)
        return policy_for_identity(identity)

    async def invalidate(self, token: str) -> None:
        """Drop a token from the cache so the next request re-reads it."""
        if self._cache is not None:
            await self._cache.invalidate_token(token)
