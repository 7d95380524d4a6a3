"""
Dependencies module initialization
"""

from .form import get_form_repository, get_form_service
from .messaging import get_connection, get_intake_completed_dispatcher

__all__ = [
    "get_form_repository",
    "get_form_service",
    "get_connection",
    "get_intake_completed_dispatcher",
]
