"""FastAPI application entry point for caseflow.

Case lifecycle and multi-party workflow REST API.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from caseflow.api import register_exception_handlers
from caseflow.config import get_settings
from caseflow.db import close_all_connections
from caseflow.logging import get_logger, log_api_request, setup_logging

# Initialize logging
setup_logging()
logger = get_logger(__name__)


async def log_reminder(reminder) -> None:
    """Reminder sink used until a delivery transport is wired in."""
    logger.info(
        reminder.message,
        extra={
            "hearing_id": reminder.hearing_id,
            "case_id": reminder.case_id,
            "reminder_kind": reminder.kind,
            "participants": reminder.participants,
            "event": "hearing_reminder",
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Starting caseflow API",
        extra={
            "environment": settings.environment,
            "store_backend": settings.store_backend,
            "debug": settings.api_debug,
        },
    )

    if settings.store_backend == "sql" and settings.is_development:
        from caseflow.db import init_schema

        await init_schema()

    reminders = None
    if settings.reminders_enabled:
        from caseflow.hearings.reminders import HearingReminderScheduler, get_reminder_ledger
        from caseflow.hearings.scheduler import get_hearing_scheduler

        reminders = HearingReminderScheduler(
            source=get_hearing_scheduler().list_hearings,
            notify=log_reminder,
            ledger=await get_reminder_ledger(),
        )
        reminders.start()

    yield

    # Shutdown
    logger.info("Shutting down caseflow API")
    if reminders is not None:
        await reminders.stop()
    await close_all_connections()


# Create FastAPI application
settings = get_settings()

app = FastAPI(
    title="caseflow API",
    description="Legal case lifecycle and multi-party workflow API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    log_api_request(
        request.method,
        request.url.path,
        response.status_code,
        round((time.perf_counter() - started) * 1000, 2),
        request_id=request.headers.get("X-Request-ID"),
    )
    return response


# =========================
# Health Check Endpoints
# =========================


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "caseflow-api"}


@app.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness check - just confirms the service is running."""
    return {"status": "alive"}


# =========================
# API Routers
# =========================

from caseflow.api.cases import router as cases_router  # noqa: E402
from caseflow.api.hearings import router as hearings_router  # noqa: E402
from caseflow.api.identity import router as identity_router  # noqa: E402
from caseflow.api.judgements import router as judgements_router  # noqa: E402
from caseflow.api.requests import router as requests_router  # noqa: E402
from caseflow.api.users import router as users_router  # noqa: E402

app.include_router(cases_router, prefix="/api/v1", tags=["Cases"])
app.include_router(identity_router, prefix="/api/v1", tags=["Identity"])
app.include_router(requests_router, prefix="/api/v1", tags=["Requests"])
app.include_router(hearings_router, prefix="/api/v1", tags=["Hearings"])
app.include_router(judgements_router, prefix="/api/v1", tags=["Judgements"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "name": "caseflow API",
        "version": "0.1.0",
        "docs": "/docs" if settings.is_development else None,
    }
