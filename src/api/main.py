"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import health, public, writes
from core.config import get_settings
from core.redis import RedisClient, set_redis_client
from core.tiered_cache import TieredCache, set_tiered_cache
from services.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    PublicApiError,
    UnauthorizedError,
    UpstreamFailureError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[PublicApiError], int] = {
    UnauthorizedError: 401,
    NotFoundError: 404,
    ForbiddenError: 403,
    InvalidArgumentError: 400,
    UpstreamFailureError: 502,
}


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    logging.basicConfig(
        level=app_settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()
    set_redis_client(redis_client)

    # Startup: Initialize the token/catalog/query cache
    set_tiered_cache(TieredCache(redis_client))

    yield

    # Shutdown: Clean up cache and Redis
    set_tiered_cache(None)
    await redis_client.close()
    set_redis_client(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Public Tables API",
    description="Token-scoped read access to sale and rent tables.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(PublicApiError)
async def public_api_exception_handler(
    _request: Request, exc: PublicApiError,
) -> JSONResponse:
    """Map service errors to their HTTP status with a machine-readable kind."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    if status_code == 502:
        logger.warning("Upstream failure: %s", exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.kind},
        headers=headers,
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, _exc: SQLAlchemyError,
) -> JSONResponse:
    """Report row store failures as an upstream failure without leaking details."""
    logger.exception("Row store failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"detail": "Row store unavailable", "error": "upstream_failure"},
    )


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(public.router)
# Catch-all write forwarding must come after the read routes
app.include_router(writes.router)
