"""
HTTP error responses

Application code raises ErrorResponse with the status to return. Failures
from the messaging layer that escape a route are answered with 503, since
they mean the broker is unreachable or misconfigured.
"""

import traceback
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from intake_service.core.config import config
from intake_service.core.logger import logger


class ErrorResponse(Exception):
    """Application error carrying the HTTP status to respond with"""

    def __init__(self, message: str, status_code: int = 400, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ErrorResponseModel(BaseModel):
    """Body of every error response"""
    error: str
    details: Optional[Any] = None


def _request_metadata(request: Request, event: str, status_code: int) -> Dict[str, Any]:
    return {
        "event": event,
        "status_code": status_code,
        "url": str(request.url),
        "method": request.method,
    }


def _error_json(status_code: int, error: str, details: Any = None) -> JSONResponse:
    content = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def error_response_handler(request: Request, exc: ErrorResponse):
    metadata = {**_request_metadata(request, "error_response", exc.status_code), **exc.details}
    if config.environment == "development":
        metadata["traceback"] = traceback.format_exc()

    if exc.status_code >= 500:
        logger.error(f"Error: {exc.message}", metadata=metadata)
    else:
        logger.warning(f"Error: {exc.message}", metadata=metadata)

    return _error_json(exc.status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        f"HTTPException: {exc.detail}",
        metadata=_request_metadata(request, "http_exception", exc.status_code)
    )
    return _error_json(exc.status_code, exc.detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "Request validation failed",
        metadata={**_request_metadata(request, "validation_error", 422), "errors": errors}
    )
    return _error_json(422, "Validation error", errors)


async def messaging_error_handler(request: Request, exc: Exception):
    """Broker failures not handled by the route"""
    logger.error(
        "Messaging failure while handling request",
        error=exc,
        metadata=_request_metadata(request, "messaging_error", 503)
    )
    return _error_json(503, "Event broker unavailable")
