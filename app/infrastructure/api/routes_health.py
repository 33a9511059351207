"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.database import get_session
from app.config import settings

router = APIRouter(tags=["health"])


def _integrations() -> dict[str, bool]:
    """Which outbound integrations have credentials; none are called here."""
    return {
        "dispatch_platform": bool(settings.dispatch_api_key),
        "default_pool": bool(settings.default_pool_team_id),
        "sms": bool(settings.twilio_account_sid and settings.twilio_auth_token),
        "email": bool(settings.sendgrid_api_key),
        "geocoder": bool(settings.google_maps_api_key),
    }


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Database connectivity plus integration configuration.

    Missing integrations do not degrade the status: edits still commit and
    the affected calls are reported as partial failures.
    """
    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {e}"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
        "integrations": _integrations(),
        "service": "storage-dispatch-sync",
    }
