"""
Health check endpoints.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from entreprenapp.db.mongodb import get_optional_database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check():
    """Liveness: the process is serving requests."""
    return HealthResponse(status="healthy", timestamp=datetime.utcnow())


@router.get(
    "/health/ready",
    response_model=HealthResponse,
    summary="Readiness check",
    responses={503: {"model": HealthResponse}},
)
async def readiness_check(db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_database)):
    """Readiness: MongoDB is connected and answers a ping."""
    try:
        if db is None:
            raise RuntimeError("Database not connected")
        await db.command("ping")
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=HealthResponse(status="not_ready", timestamp=datetime.utcnow()).model_dump(mode="json"),
        )
    return HealthResponse(status="ready", timestamp=datetime.utcnow())
