"""FastAPI application for the meeting protocol service."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from meeting_protocol.pipeline.generator import ProtocolGenerator

from .config import get_settings
from .routes.health import router as health_router
from .routes.protocol import router as protocol_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the generator at startup from service settings."""
    settings = get_settings()

    logger.info(
        "lifespan.startup",
        company=settings.COMPANY_NAME,
        max_concurrent_renders=settings.MAX_CONCURRENT_RENDERS,
    )

    app.state.generator = ProtocolGenerator(
        company=settings.company_profile(),
        max_concurrent_renders=settings.MAX_CONCURRENT_RENDERS,
        honor_item_thresholds=settings.HONOR_ITEM_THRESHOLDS,
        tz_name=settings.DISPLAY_TIMEZONE,
    )

    logger.info("lifespan.ready")
    yield

    logger.info("lifespan.shutdown")
    app.state.generator = None


app = FastAPI(
    title="meeting-protocol",
    description="Generates homeowners' general meeting protocols as .docx documents",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(protocol_router)
