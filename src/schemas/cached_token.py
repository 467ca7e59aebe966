"""Cached token representation for token-identity caching."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class TokenIdentity:
    """
    Lightweight token representation for the token cache.

    Just the fields needed to derive a visibility policy, so cache hits never
    touch the ORM.

    IMPORTANT: Token entries have no TTL. When adding, removing, or renaming fields
    in this class, bump TOKEN_CACHE_VERSION in core/cache_keys.py so entries
    written with the previous shape are ignored instead of failing to deserialize.
    """

    id: str
    table_access: str | None
    expires_at: str | None = None  # ISO-8601, None means the token never expires

    def is_expired(self, now: datetime) -> bool:
        """Check whether the token expired before `now` (timezone-aware)."""
        if self.expires_at is None:
            return False
        return datetime.fromisoformat(self.expires_at) <= now
