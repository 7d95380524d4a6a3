"""
Domain models
"""

from .form import FieldType, Form, FormField

__all__ = ["FieldType", "Form", "FormField"]
