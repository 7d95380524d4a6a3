"""
Repositories module initialization
"""

from .base import MongoRepository
from .form import FormRepository
from .processed_events import ProcessedEventRepository

__all__ = [
    "MongoRepository",
    "FormRepository",
    "ProcessedEventRepository",
]
