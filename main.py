"""
FastAPI Application - Intake Service
Form CRUD over MongoDB, completion published to RabbitMQ
"""

# Load environment variables from .env file FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from intake_service.api import forms, health
from intake_service.core.config import config
from intake_service.core.errors import (
    ErrorResponse,
    error_response_handler,
    http_exception_handler,
    messaging_error_handler,
    validation_exception_handler,
)
from intake_service.core.logger import logger
from intake_service.core.telemetry import instrument_app
from intake_service.db.mongodb import close_mongo_connection, connect_to_mongo
from intake_service.dependencies.messaging import get_connection, get_intake_completed_dispatcher
from intake_service.messaging.errors import MessagingError
from intake_service.middleware import CorrelationIdMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting Intake Service...")
    await connect_to_mongo()

    # The broker may come up after the API; dispatch connects lazily and
    # completion requests answer 503 until it is reachable
    try:
        await get_connection().connect()
        await get_intake_completed_dispatcher().initialize()
    except MessagingError as e:
        logger.error(
            "RabbitMQ unavailable at startup",
            error=e,
            metadata={"event": "rabbitmq_startup_failed"}
        )

    logger.info(
        "Intake Service started successfully",
        metadata={
            "service_name": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "port": config.port
        }
    )

    yield

    # Shutdown
    logger.info("Shutting down Intake Service...")
    await get_connection().close()
    await close_mongo_connection()


# Create FastAPI application with lifespan management
app = FastAPI(
    title="Intake Service",
    description="Intake form management with event-driven completion",
    version=config.service_version,
    lifespan=lifespan
)

# Instrument app with OpenTelemetry for automatic tracing
instrument_app(app)

# Configure error handlers
app.add_exception_handler(ErrorResponse, error_response_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(MessagingError, messaging_error_handler)

app.add_middleware(CorrelationIdMiddleware)

# Include API routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(forms.router, prefix="/api/forms", tags=["forms"])


if __name__ == "__main__":
    import uvicorn

    logger.info(
        f"Starting {config.service_name} on port {config.port}",
        metadata={
            "service_name": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "port": config.port
        }
    )

    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.environment == "development"
    )
