"""Budget Tracker API: application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from budget_api.config import settings
from budget_api.core.database import async_session_factory, engine
from budget_api.core.exceptions import register_exception_handlers
from budget_api.core.logging import configure_logging
from budget_api.core.middleware import (
    ProtectedRouteMiddleware,
    RequestLoggingMiddleware,
    SessionRotationMiddleware,
)
from budget_api.services.identity_client import IdentityClient, IdentityServiceError

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("Starting Budget Tracker API", env=settings.app_env)
    yield
    # Shutdown
    logger.info("Shutting down Budget Tracker API")
    await app.state.identity_client.aclose()
    await engine.dispose()


app = FastAPI(
    title="Budget Tracker API",
    description="Personal budgets, transactions and categories",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)
app.state.identity_client = IdentityClient.from_settings()

register_exception_handlers(app)

# ── Middleware (last added runs first) ─────────────
app.add_middleware(ProtectedRouteMiddleware)
app.add_middleware(SessionRotationMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Health Check ──────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check():
    """Liveness probe: always returns healthy if the process is running."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/ready", tags=["system"])
async def readiness_check():
    """Readiness probe: the database and the identity provider must both answer."""
    checks = {"database": "unknown", "identity": "unknown"}
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e}"

    try:
        await app.state.identity_client.health()
        checks["identity"] = "ok"
    except IdentityServiceError as e:
        checks["identity"] = f"error: {e.message}"

    status = "ready" if all(v == "ok" for v in checks.values()) else "degraded"
    return {"status": status, "checks": checks}


# ── API Routes ────────────────────────────────────
from budget_api.api.v1 import auth, budgets, categories, dashboard, transactions  # noqa: E402

app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(auth.callback_router, prefix="/auth", tags=["auth"])
app.include_router(budgets.router, prefix="/api/budgets", tags=["budgets"])
app.include_router(transactions.router, prefix="/api/budgets/{budget_id}/transactions", tags=["transactions"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
