# src/main.py

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.common.database.database import connect_to_db, close_db_connection
from src.common.config import settings
from src.common.exceptions.handlers import register_exception_handlers
from src.common.logging.logger import setup_logging
from src.common.middleware.rate_limit import RateLimitMiddleware
from src.common.middleware.request_logger import RequestLoggerMiddleware
from src.common.middleware.tenant import TenantSubdomainMiddleware
from src.common.utils.global_functions import utcnow
from src.router.routers import include_routers

setup_logging()

# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_db()
    yield
    await close_db_connection()

# Initialize FastAPI app with lifespan manager
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-tenant clinic management API",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# Innermost first: subdomain resolution, rate limiting, request logging, CORS
app.add_middleware(TenantSubdomainMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    limit=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    proxy_hops=settings.TRUSTED_PROXY_HOPS,
)
app.add_middleware(RequestLoggerMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=not settings.is_development,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers from a separate file
include_routers(app)


@app.get("/health")
async def health():
    """Liveness probe; needs no authentication."""
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "timestamp": utcnow().isoformat(),
            "version": settings.APP_VERSION,
            "environment": settings.APP_ENV,
        },
    }
