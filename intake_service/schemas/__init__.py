"""
API schemas
"""

from .form import (
    FormCompletionRequest,
    FormCompletionResponse,
    FormCreate,
    FormResponse,
    FormUpdate,
)

__all__ = [
    "FormCompletionRequest",
    "FormCompletionResponse",
    "FormCreate",
    "FormResponse",
    "FormUpdate",
]
