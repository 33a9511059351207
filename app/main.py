"""Storage dispatch sync — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.adapters.persistence.database import engine
from app.config import settings
from app.infrastructure.api.routes_appointments import router as appointments_router
from app.infrastructure.api.routes_health import router as health_router
from app.infrastructure.api.routes_offers import router as offers_router

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _warn_on_missing_integrations() -> None:
    if not settings.dispatch_api_key:
        logger.warning("DISPATCH_API_KEY is not set; every dispatch task call will fail")
    if not settings.default_pool_team_id:
        logger.warning("DEFAULT_POOL_TEAM_ID is not set; released tasks have no pool container")
    if not (settings.twilio_account_sid and settings.twilio_auth_token):
        logger.warning("Twilio credentials are not set; SMS will be reported as failed")
    if settings.token_secret == "change-me":
        logger.warning("TOKEN_SECRET is the default value; driver links are forgeable")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database reachable")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)
    _warn_on_missing_integrations()
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storage Dispatch Sync",
        description="Appointment edits propagated to dispatch tasks, bookings and notifications",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_base_url],
        allow_credentials=True,
        allow_methods=["PATCH", "POST", "GET"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/api")
    app.include_router(appointments_router, prefix="/api")
    app.include_router(offers_router, prefix="/api")

    return app


app = create_app()
