"""Health check endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from ..config import settings
from ..schemas import HealthResponse

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(
        time=datetime.now(timezone.utc),
        oauth_configured=settings.oauth_enabled,
        render_configured=settings.render_enabled,
    )
