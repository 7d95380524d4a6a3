"""
Middleware modules for the Intake Service
"""

from .correlation_id import (
    CorrelationIdMiddleware,
    correlation_scope,
    get_correlation_id,
)

__all__ = [
    "CorrelationIdMiddleware",
    "correlation_scope",
    "get_correlation_id",
]
