"""FastAPI dependencies for injection."""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.access_policy import VisibilityPolicy
from core.auth import AccessResolver
from core.config import Settings, get_settings
from core.tiered_cache import TieredCache, get_tiered_cache
from db.session import get_async_session
from services.query_planner import QueryPlanner
from services.row_store import RowStore
from services.write_proxy import WriteProxy

# HTTP Bearer token scheme; missing or non-Bearer headers yield None instead of a 403
security = HTTPBearer(auto_error=False)


def get_row_store(db: AsyncSession = Depends(get_async_session)) -> RowStore:
    """Row store bound to the request's database session."""
    return RowStore(db)


def get_cache() -> TieredCache | None:
    """Tiered cache, or None when Redis was not configured at startup."""
    return get_tiered_cache()


async def get_visibility_policy(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    row_store: RowStore = Depends(get_row_store),
    cache: TieredCache | None = Depends(get_cache),
) -> VisibilityPolicy:
    """Authenticate the bearer token and return the request's visibility policy."""
    resolver = AccessResolver(row_store, cache)
    return await resolver.resolve(credentials.credentials if credentials else None)


def get_query_planner(
    row_store: RowStore = Depends(get_row_store),
    cache: TieredCache | None = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> QueryPlanner:
    """Query planner for the current request."""
    return QueryPlanner(row_store, cache, max_limit=settings.query_max_limit)


def get_write_proxy(settings: Settings = Depends(get_settings)) -> WriteProxy:
    """Write proxy pointed at the configured write service."""
    return WriteProxy(settings.write_service_url, timeout=settings.write_service_timeout)


__all__ = [
    "get_async_session",
    "get_cache",
    "get_query_planner",
    "get_row_store",
    "get_settings",
    "get_visibility_policy",
    "get_write_proxy",
]
