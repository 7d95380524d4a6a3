"""
Health API endpoints
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from intake_service.core.config import config
from intake_service.core.logger import logger
from intake_service.db.mongodb import db, ping_mongo
from intake_service.dependencies.messaging import get_connection

router = APIRouter()


@router.get("/health")
def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": config.service_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": config.api_version,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check: MongoDB answers a ping and RabbitMQ is connected"""
    db_connected = db.client is not None
    db_ping = await ping_mongo()
    rabbitmq_connected = get_connection().is_connected()

    is_healthy = db_connected and db_ping and rabbitmq_connected
    content = {
        "status": "ok" if is_healthy else "degraded",
        "service": config.service_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": {
                "connected": db_connected,
                "ping": db_ping,
                "status": "healthy" if db_connected and db_ping else "unhealthy",
            },
            "rabbitmq": {
                "connected": rabbitmq_connected,
                "status": "healthy" if rabbitmq_connected else "unhealthy",
            },
        },
    }

    if not is_healthy:
        logger.warning(
            "Readiness check failed",
            metadata={"event": "readiness_check_failed", "checks": content["checks"]}
        )

    return JSONResponse(status_code=200 if is_healthy else 503, content=content)
