"""
System health and configuration router.

Wired to:
- Settings for configuration
- Adapter registry for available ingestion sources
"""

import time

from fastapi import APIRouter

from api.adapters import list_adapters
from api.config import get_settings
from api.engine import __version__ as engine_version
from api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()


@router.get("/health")
async def system_health():
    """
    Get system health status.
    The service holds no state, so health is process liveness plus uptime.
    """
    settings = get_settings()
    uptime = time.time() - _startup_time

    return {
        "success": True,
        "data": {
            "status": "healthy",
            "version": engine_version,
            "uptime_seconds": round(uptime, 1),
            "environment": settings.app_env,
        },
    }


@router.get("/config")
async def get_system_config():
    """
    Get system configuration (non-sensitive values only).
    """
    settings = get_settings()
    logger.debug("config_request")

    return {
        "success": True,
        "data": {
            "environment": settings.app_env,
            "log_level": settings.log_level,
            "proposal_classification_name": settings.proposal_classification_name,
            "spike_stddev_multiplier": settings.spike_stddev_multiplier,
            "above_average_multiplier": settings.above_average_multiplier,
            "ingestion_sources": list_adapters(),
        },
    }
