"""Product Admin API application entry point."""

import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from src.api.auth import close_redis, ping_redis
from src.api.auth import router as auth_router
from src.api.errors import install_error_handlers
from src.api.generation import router as generation_router
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.products import router as products_router
from src.api.projects import router as projects_router
from src.api.system_prompts import router as system_prompts_router
from src.api.users import permissions_router
from src.api.users import router as users_router
from src.config import get_settings
from src.llm import create_provider, get_provider, set_provider
from src.logging.structured_logger import setup_logging
from src.store.engine import dispose_engine, get_engine

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()

    validation = settings.validate_required()
    for err in validation.errors:
        logger.warning("Config: %s %s (%s)", err.field, err.message, err.hint)

    set_provider(create_provider(settings))
    logger.info("LLM provider initialized: %s", settings.llm.provider)

    yield

    provider = get_provider()
    await provider.close()
    set_provider(None)
    logger.info("LLM provider closed")

    await dispose_engine()
    logger.info("Database engine disposed")

    await close_redis()
    logger.info("Redis connection closed")


app = FastAPI(
    title="Product Admin API",
    description="Role-based admin backend for product research and datasheets",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(auth_router)
app.include_router(generation_router)
app.include_router(permissions_router)
app.include_router(products_router)
app.include_router(projects_router)
app.include_router(system_prompts_router)
app.include_router(users_router)
install_error_handlers(app)
# Middleware order (last added = outermost = runs first):
# RequestContext → CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().server.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(RequestContextMiddleware)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.get("/health/ready")
async def readiness_check() -> dict[str, object]:
    """Readiness probe: checks database, Redis and the LLM provider."""
    checks: dict[str, str] = {}

    try:
        engine = await get_engine()
        async with engine.connect() as conn:
            await asyncio.wait_for(conn.execute(text("SELECT 1")), timeout=3.0)
        checks["database"] = "connected"
    except Exception:
        logger.warning("Readiness: database check failed", exc_info=True)
        checks["database"] = "disconnected"

    try:
        redis_ok = await asyncio.wait_for(ping_redis(), timeout=3.0)
        checks["redis"] = "connected" if redis_ok else "disconnected"
    except Exception:
        logger.warning("Readiness: Redis check failed", exc_info=True)
        checks["redis"] = "disconnected"

    try:
        healthy = await asyncio.wait_for(get_provider().health_check(), timeout=5.0)
        checks["llm"] = "reachable" if healthy else "unreachable"
    except Exception:
        logger.warning("Readiness: LLM check failed", exc_info=True)
        checks["llm"] = "unreachable"

    all_ok = all(v in ("connected", "reachable") for v in checks.values())
    return {
        "status": "ready" if all_ok else "not_ready",
        **checks,
    }


def main() -> None:
    """Entry point: configure logging and serve the API."""
    settings = get_settings()
    setup_logging(level=settings.logging.level, format_type=settings.logging.format)

    logger.info(
        "Product Admin API starting on %s:%d", settings.server.host, settings.server.port
    )
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
