"""FastAPI application entry point: wires everything together.

Usage:
    python -m src.main
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.admin.audit import audit_on_event
from src.admin.events import emit, start_event_system, stop_event_system, subscribe
from src.admin.web import router as admin_router
from src.api.enrollment import router as enrollment_router
from src.config import settings
from src.enrollment.store import session_store
from src.schemas.events import EventType, SystemEvent

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting enrollment assistant (env=%s)", settings.environment)

    # Audit trail: global subscriber, registered before the worker starts
    subscribe(audit_on_event)
    await start_event_system()
    await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="main"))
    logger.info("Event system started")

    try:
        yield
    finally:
        logger.info("Shutting down enrollment assistant (%d open sessions)", len(session_store))
        await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
        await stop_event_system()
        logger.info("Event system stopped")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Enrollment Assistant API",
    description="Deterministic retirement-plan enrollment conversations",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
)
app.include_router(enrollment_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "open_sessions": str(len(session_store)),
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.api.api_host,
        port=settings.api.api_port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
