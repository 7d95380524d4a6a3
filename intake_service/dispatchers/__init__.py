"""
Event-specific dispatchers
"""

from .intake_completed import IntakeCompletedDispatcher

__all__ = ["IntakeCompletedDispatcher"]
