"""
API schemas for Form endpoints
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from intake_service.models.form import FormField


class FormCreate(BaseModel):
    """Schema for creating a new form"""
    fields: Dict[str, FormField]


class FormUpdate(BaseModel):
    """Schema for replacing the fields of an existing form"""
    fields: Dict[str, FormField]


class FormResponse(BaseModel):
    """Schema for form responses"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    fields: Dict[str, FormField]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    answers: Optional[Dict[str, Any]] = None


class FormCompletionRequest(BaseModel):
    """Answers submitted when a patient completes an intake form"""
    answers: Dict[str, Any] = Field(default_factory=dict)
    completed_by: Optional[datetime] = Field(
        None, description="Completion time; defaults to the time of the request"
    )


class FormCompletionResponse(BaseModel):
    form_id: str
    event_id: str
    published: bool
