"""
API routers
"""

from . import forms, health

__all__ = ["forms", "health"]
