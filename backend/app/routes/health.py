# backend/app/routes/health.py
"""
Health check endpoints for the application.

Used for monitoring application health and database connectivity.
"""

from datetime import datetime, timezone
import logging
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..core.config import settings
from ..database import with_db_retry
from ..schemas.base import StandardizedModel
from ..schemas.base_responses import ApiResponse, ok

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckResponse(StandardizedModel):
    status: str
    service: str
    environment: str
    timestamp: datetime
    checks: Dict[str, bool]


@router.get("/health", response_model=ApiResponse[HealthCheckResponse])
def health_check(db: Session = Depends(get_db)) -> dict:
    """
    Basic health check endpoint.

    Returns:
        ``healthy`` when the database answers, ``degraded`` otherwise.
    """
    try:
        with_db_retry("health_check", lambda: db.execute(text("SELECT 1")), max_attempts=2)
        db_status = True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        db_status = False

    return ok(
        HealthCheckResponse(
            status="healthy" if db_status else "degraded",
            service=f"{settings.app_name} API",
            environment=settings.environment,
            timestamp=datetime.now(timezone.utc),
            checks={"database": db_status},
        )
    )
