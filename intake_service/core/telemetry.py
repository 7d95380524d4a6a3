"""
OpenTelemetry instrumentation for FastAPI, MongoDB and RabbitMQ

Spans are created locally; exporter configuration is left to the
OTEL_* environment variables of the deployment.
"""

from opentelemetry.instrumentation.aio_pika import AioPikaInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor

from intake_service.core.logger import logger


def instrument_app(app):
    """
    Instrument the FastAPI application and its clients with OpenTelemetry.

    Args:
        app: FastAPI application instance
    """
    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumented with OpenTelemetry")
    except Exception as e:
        logger.error("Failed to instrument FastAPI", error=e)

    instrument_clients()


def instrument_clients():
    """Instrument the MongoDB and RabbitMQ client libraries"""
    try:
        PymongoInstrumentor().instrument()
        AioPikaInstrumentor().instrument()
        logger.info("PyMongo and aio-pika instrumented with OpenTelemetry")
    except Exception as e:
        logger.error("Failed to instrument client libraries", error=e)
