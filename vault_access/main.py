"""
FastAPI application with Redis lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from vault_access.config import settings
from vault_access.infrastructure.observability.logging import get_logger, setup_logging
from vault_access.routes import health, legacy_access, shares
from vault_access.storage.redis_client import fast_redis

setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        await fast_redis.initialize()
        logger.info("All services initialized successfully", services=["redis"])
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        raise

    yield

    logger.info("Application shutting down")
    try:
        await fast_redis.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))


app = FastAPI(
    title="Vault Access",
    description="Share links and inactivity-triggered legacy access",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(shares.router)
app.include_router(legacy_access.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing. Share ids in paths are truncated."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    path = request.url.path
    if path.startswith(("/s/", "/legacy-access/")):
        path = path[:24] + "..."

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
