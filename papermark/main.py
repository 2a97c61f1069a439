"""Papermark API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PapermarkError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from papermark import __version__
from papermark.api.error_handlers import register_error_handlers
from papermark.api.routes import (
    agreements, analytics, auth, datarooms, documents, health, links, teams,
    viewer_groups, views,
)
from papermark.config import get_settings
from papermark.infrastructure.database import close_db, init_db
from papermark.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Papermark API started")
    yield
    await close_db()
    logger.info("Papermark API shut down")


app = FastAPI(title="Papermark API", version=__version__, lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(teams.router)
app.include_router(documents.router)
app.include_router(agreements.router)
app.include_router(links.router)
app.include_router(links.public_router)
app.include_router(datarooms.router)
app.include_router(viewer_groups.router)
app.include_router(analytics.router)
app.include_router(views.router)

register_error_handlers(app)
