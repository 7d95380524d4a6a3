"""
Correlation IDs for HTTP requests and broker deliveries

The id lives in a context variable so that logs and published events pick
it up without it being passed around. Requests take it from the configured
header; deliveries take it from the AMQP ``correlation_id`` property.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from intake_service.core.config import config

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a correlation id for the duration of the block, generating one
    when none is given. The previous value is restored on exit.
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    token = correlation_id_ctx.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_ctx.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Reads or assigns the request's correlation id and echoes it in the response"""

    async def dispatch(self, request: Request, call_next):
        header = config.correlation_id_header
        with correlation_scope(request.headers.get(header)) as correlation_id:
            request.state.correlation_id = correlation_id
            response = await call_next(request)

        response.headers[header] = correlation_id
        return response
