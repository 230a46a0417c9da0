"""Health check and metrics endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.backend.src.models import UserProfile
from ..db import get_session_dependency

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    """Return a liveness indicator."""

    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> Response:
    """Report ready once the invoicing schema can be queried."""

    try:
        session.execute(select(UserProfile.id).limit(1))
    except SQLAlchemyError as exc:
        LOGGER.error("readiness_check_failed", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable"},
        )
    return JSONResponse(content={"status": "ready"})


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics, including invoice operation outcomes."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
