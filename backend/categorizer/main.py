"""Statement categorizer API: main entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.api.deps import get_db
from categorizer.config import settings
from categorizer.core.database import engine
from categorizer.core.logging import configure_logging
from categorizer.core.middleware import RequestLoggingMiddleware

logger = structlog.get_logger()

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    configure_logging(settings.log_level)
    logger.info("categorizer_starting", env=settings.app_env)
    yield
    # Shutdown
    logger.info("categorizer_stopping")
    await engine.dispose()


app = FastAPI(
    title="Statement Categorizer API",
    description="Rule-based categorization of bank statement transactions",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# ── Middleware ─────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ── Health Check ──────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check():
    """Liveness probe: always healthy while the process runs."""
    return {"status": "healthy", "version": API_VERSION}


@app.get("/ready", tags=["system"])
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe: checks DB connectivity."""
    checks = {"database": "unknown", "api": "ok"}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning("readiness_check_failed", error=str(e))
        checks["database"] = f"error: {e}"
        return {"status": "degraded", "checks": checks}

    return {"status": "ready", "checks": checks}


# ── API Routes ────────────────────────────────────
from categorizer.api.v1 import (  # noqa: E402
    categories,
    parent_categories,
    similarity_patterns,
    transactions,
)

app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["transactions"])
app.include_router(categories.router, prefix="/api/v1/categories", tags=["categories"])
app.include_router(
    parent_categories.router, prefix="/api/v1/parent-categories", tags=["parent-categories"]
)
app.include_router(
    similarity_patterns.router,
    prefix="/api/v1/similarity-patterns",
    tags=["similarity-patterns"],
)
