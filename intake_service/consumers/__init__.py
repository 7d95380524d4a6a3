"""
Event consumers run as separate worker processes
"""

from .intake_completed import IntakeCompletedHandler, IntakeCompletedWorker

__all__ = ["IntakeCompletedHandler", "IntakeCompletedWorker"]
