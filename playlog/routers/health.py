import logging

from fastapi import APIRouter

from playlog.models import HealthResponse

router = APIRouter()
logger = logging.getLogger("playlog.router.health")


@router.get("/health", response_model=HealthResponse)
def health_check():
    logger.debug("Health check endpoint was called.")
    return HealthResponse(status="healthy", message="Playlog API is running")
