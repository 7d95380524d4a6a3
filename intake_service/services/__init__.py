"""
Services module initialization
"""

from .form import FormService

__all__ = ["FormService"]
