"""
Cache key derivation for the token, catalog and query-page caches.

Keys are short and deterministic so that logically identical reads collide:

- auth:v{version}:token:{token}                        token identity, no TTL
- public:tables:all                                   unrestricted table catalog
- query:{tableHash}:{whereHash}:{limit}:{offset}      one page of flattened records

Table ids are hashed in the order given. Callers must pass them in a canonical
order (the query planner sorts them); two call sites that assemble the same set
in different orders would otherwise produce different keys for the same query.
"""
from collections.abc import Iterable, Mapping

# Bump when TokenIdentity fields change. Token entries never expire, so without
# a version bump old entries would linger with the previous shape.
TOKEN_CACHE_VERSION = 1

CATALOG_KEY = "public:tables:all"
QUERY_KEY_PREFIX = "query"

# Sentinel hash used when a query has no filter predicates
NO_PREDICATES = "0"

_DJB2_SEED = 5381
_MASK_32 = 0xFFFFFFFF


def hash_string(value: str) -> str:
    """
    Hash a string to a 32-bit lowercase hex digest.

    Uses the xor variant of djb2: fast, stable across processes (unlike the
    builtin hash()), and wide enough that accidental collisions between two
    live queries are negligible.
    """
    h = _DJB2_SEED
    for char in value:
        h = (((h << 5) + h) ^ ord(char)) & _MASK_32
    return format(h, "x")


def table_ids_hash(table_ids: Iterable[str]) -> str:
    """Hash a list of table ids, preserving the given order."""
    return hash_string(",".join(table_ids))


def predicates_hash(predicates: Mapping[str, str]) -> str:
    """
    Hash a set of column=value predicates independent of their order.

    Values are lowercased because predicate matching is case-insensitive, so
    `where[country]=UK` and `where[country]=uk` share a cache entry.
    """
    if not predicates:
        return NO_PREDICATES
    rendered = sorted(f"{column}={value.lower()}" for column, value in predicates.items())
    return hash_string("&".join(rendered))


def query_page_key(
    table_ids: Iterable[str],
    predicates: Mapping[str, str],
    limit: int,
    offset: int,
) -> str:
    """Build the cache key for one page of a filtered record query."""
    return (
        f"{QUERY_KEY_PREFIX}:{table_ids_hash(table_ids)}:"
        f"{predicates_hash(predicates)}:{limit}:{offset}"
    )


def token_key(token: str) -> str:
    """Build the cache key for a token identity."""
    return f"auth:v{TOKEN_CACHE_VERSION}:token:{token}"
