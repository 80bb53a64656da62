"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from app import db
from app.models import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check (also reports whether production mode is on)",
)
async def get_health() -> HealthResponse:
    # Reading the settings row doubles as a database ping.
    settings = await db.get_settings()
    return HealthResponse(
        status="ok",
        version="0.1.0",
        production_mode=settings.production_mode,
        timestamp=datetime.now(timezone.utc),
    )
