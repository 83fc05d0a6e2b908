"""
FastAPI application for the membership service.

The lifespan opens the connection pool, applies migrations and builds
the domain services exactly once; requests reach them via app.state.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import build_services
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.exceptions import MembershipError, StorageError

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Membership API v1 - Register members, confirm emails, follow friends, record unavailable dates",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Opening connection pool (%d-%d)", settings.pool_min_size, settings.pool_max_size)
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    try:
        run_migrations(pool)
        app.state.pool = pool
        app.state.services = build_services(pool, settings)
        logger.info("Membership service ready, confirmation links under %s", settings.base_url)
        yield
    finally:
        pool.close()
        logger.info("Connection pool closed")


app = FastAPI(
    title="promisor",
    description="Membership API - Registration with email confirmation, friend relations and date exceptions",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Infrastructure failures are reported as 503, never as a domain error."""
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
    )


@app.exception_handler(MembershipError)
async def membership_error_handler(request: Request, exc: MembershipError) -> JSONResponse:
    """Domain errors a route does not map itself."""
    logger.warning("Unmapped %s on %s %s", exc.code, request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """Liveness plus a round trip to the database."""
    try:
        with request.app.state.pool.connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        raise StorageError("Health check failed") from e
    return {"status": "healthy"}
