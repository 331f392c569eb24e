"""
Health check endpoint.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from tripboard.app_services import AppServices
from tripboard.auth.dependencies import get_services
from tripboard.domain.errors import InfrastructureError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Health check",
    description="Pings the database. Does not require authentication."
)
async def health(services: AppServices = Depends(get_services)) -> dict:
    try:
        await services.database.ping()
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Health check failed: {e}")
        raise InfrastructureError()
    return {"ok": True}
