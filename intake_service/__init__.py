"""
Intake Service - intake form CRUD with event-driven completion processing
"""

__version__ = "1.0.0"
