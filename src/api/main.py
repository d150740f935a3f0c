"""NutrIA API — FastAPI application."""
from __future__ import annotations

import logging

from src.logging_config import setup_logging
setup_logging()
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from src.db import engine as db_engine
from src.db.engine import get_session
from src.db.repository import FoodRepository, MealTypeRepository
from src.db.tables import Base
from src.services.food_database import COMMON_FOODS
from src.services.notifications import start_scheduler, stop_scheduler

API_VERSION = "1.0.0"

# ── Sentry Error Tracking ────────────────────────
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.WARNING, event_level=logging.ERROR),
        ],
        # Health data and emails stay out of Sentry
        send_default_pii=False,
    )

logger = logging.getLogger(__name__)


async def seed_reference_data() -> None:
    """Default meal types and the global food catalog, inserted once."""
    async with db_engine.async_session() as session:
        types_added = await MealTypeRepository(session).seed_defaults()
        foods_added = await FoodRepository(session).seed_defaults(COMMON_FOODS)
        await session.commit()
    if types_added or foods_added:
        logger.info("Seeded %d meal types and %d foods", types_added, foods_added)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed data on startup, run the notification scheduler."""
    from src.startup_checks import validate_settings
    validate_settings()

    # Import all tables so they're registered with Base.metadata
    import src.db.plan_tables  # noqa: F401
    import src.db.tracking_tables  # noqa: F401
    import src.db.user_tables  # noqa: F401
    async with db_engine.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")

    await seed_reference_data()
    start_scheduler()

    yield

    logger.info("Shutting down — draining connections...")
    stop_scheduler()
    await db_engine.engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="NutrIA API",
    version=API_VERSION,
    description="Nutrition tracking with an AI assistant: meals, goals, plans and reports",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

from src.middleware.security_headers import SecurityHeadersMiddleware
app.add_middleware(SecurityHeadersMiddleware)

from src.middleware.rate_limit import RateLimitMiddleware
app.add_middleware(RateLimitMiddleware)

# Request ID tracing, outermost so every log line carries the id
from src.middleware.request_id import RequestIDMiddleware
app.add_middleware(RequestIDMiddleware)


from src.api.users import router as users_router
app.include_router(users_router)

from src.api.food import router as food_router
app.include_router(food_router)

from src.api.meals import router as meals_router
app.include_router(meals_router)

from src.api.recipes import router as recipes_router
app.include_router(recipes_router)

from src.api.nutrition import router as nutrition_router
app.include_router(nutrition_router)

from src.api.ai import router as ai_router
app.include_router(ai_router)

from src.api.plans import router as plans_router
app.include_router(plans_router)

from src.api.reports import router as reports_router
app.include_router(reports_router)


@app.get("/")
async def root():
    return {"name": "NutrIA API", "version": API_VERSION}


@app.get("/health")
async def health(session: AsyncSession = Depends(get_session)):
    """Deep health check — validates DB connectivity."""
    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        db_status = "error"
    status = "ok" if db_status == "connected" else "degraded"
    return {"status": status, "db": db_status, "version": API_VERSION}


@app.get("/ready")
async def readiness(session: AsyncSession = Depends(get_session)):
    """Readiness probe. Returns 503 if not ready to serve traffic."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(status_code=503, content={"ready": False, "reason": "database unavailable"})
    return {"ready": True}


# --- Structured Error Responses ---

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean, structured validation errors instead of raw Pydantic output."""
    errors = []
    for err in exc.errors():
        field = " → ".join(str(loc) for loc in err["loc"]) if err.get("loc") else "unknown"
        errors.append({"field": field, "message": err["msg"]})
    return JSONResponse(status_code=422, content={
        "error": "validation_error",
        "message": "Invalid request data",
        "details": errors,
    })


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Consistent error envelope for all HTTP errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail if isinstance(exc.detail, str) else "error",
            "message": exc.detail,
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions — never leak stack traces."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={
        "error": "internal_error",
        "message": "Something went wrong. Please try again.",
    })
