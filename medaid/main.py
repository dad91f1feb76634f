"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from medaid.api import claims, providers, webhooks
from medaid.config import settings
from medaid.database import close_db, get_db, init_db
from medaid.exception_handlers import (
    generic_exception_handler,
    http_exception_handler,
    medaid_exception_handler,
    sqlalchemy_exception_handler,
    validation_exception_handler,
)
from medaid.exceptions import MedAidException
from medaid.middleware import LoggingMiddleware
from medaid.utils.cache import cache_manager
from medaid.utils.logging_config import get_logger, setup_logging
from medaid.utils.rate_limit import limiter
from medaid.utils.timeutils import utcnow

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Provider gateway mode: {settings.PROVIDER_GATEWAY_MODE}")

    if settings.DATABASE_AUTO_CREATE:
        await init_db()
        logger.info("Database tables created")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    await cache_manager.close()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Direct submission of pharmacy claims to medical aid schemes",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(MedAidException, medaid_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

if settings.RATE_LIMIT_ENABLED:
    logger.info(f"Rate limiting enabled - Default: {settings.RATE_LIMIT_DEFAULT}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(LoggingMiddleware)


@app.get("/health", tags=["health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check covering the database, Redis and Celery workers.

    The service is unhealthy without its database; Redis and Celery
    outages only degrade it (cache misses, inline-only webhooks).

    Args:
        db: Database session

    Returns:
        Health status including all system components
    """
    from medaid.celery_app import celery_app

    health_status = {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": utcnow().isoformat(),
        "database": {"connected": False, "status": "unknown"},
        "redis": {"connected": False, "status": "unknown"},
        "celery": {"workers_available": False, "status": "unknown"},
    }

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        health_status["database"]["connected"] = True
        health_status["database"]["status"] = "healthy"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["database"]["status"] = f"error: {str(e)}"
        logger.error(f"Health check - database error: {str(e)}")

    if settings.CACHE_ENABLED:
        try:
            redis_client = await cache_manager.get_redis()
            await redis_client.ping()
            health_status["redis"]["connected"] = True
            health_status["redis"]["status"] = "healthy"
        except Exception as e:
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"
            health_status["redis"]["status"] = f"error: {str(e)}"
            logger.warning(f"Health check - Redis error: {str(e)}")
    else:
        health_status["redis"]["status"] = "disabled"

    if settings.WEBHOOK_DISPATCH == "celery":
        try:
            inspect = celery_app.control.inspect(timeout=2.0)
            active_workers = inspect.active()
            if active_workers:
                health_status["celery"]["workers_available"] = True
                health_status["celery"]["status"] = "healthy"
                health_status["celery"]["worker_count"] = len(active_workers)
            else:
                if health_status["status"] == "healthy":
                    health_status["status"] = "degraded"
                health_status["celery"]["status"] = "no workers available"
        except Exception as e:
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"
            health_status["celery"]["status"] = f"error: {str(e)}"
            logger.warning(f"Health check - Celery error: {str(e)}")
    else:
        health_status["celery"]["status"] = "inline dispatch"

    status_code = 503 if health_status["status"] == "unhealthy" else 200
    logger.debug(f"Health check completed - status: {health_status['status']}")

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/", tags=["root"])
async def root():
    return JSONResponse(
        content={
            "message": f"Welcome to {settings.APP_NAME} API",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }
    )


app.include_router(providers.router, prefix=settings.API_PREFIX)
app.include_router(claims.router, prefix=settings.API_PREFIX)
app.include_router(webhooks.router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "medaid.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
        timeout_keep_alive=5,
        timeout_graceful_shutdown=30,
    )
