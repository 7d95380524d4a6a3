"""
Intake form entity
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

FieldType = Literal["text", "number", "date", "checkbox", "radio", "select", "textarea"]


def utc_now():
    """Helper function for Pydantic default_factory to get current UTC time"""
    return datetime.now(timezone.utc)


class FormField(BaseModel):
    """Single question on an intake form"""
    id: str
    label: str
    type: FieldType


class Form(BaseModel):
    """Intake form with its field definitions and completion state"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    fields: Dict[str, FormField] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Set by the IntakeCompleted consumer
    completed_at: Optional[datetime] = None
    answers: Optional[Dict[str, Any]] = None

    def equals(self, other: Any) -> bool:
        """Entities are equal when their ids are"""
        return isinstance(other, Form) and self.id == other.id
