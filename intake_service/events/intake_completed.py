"""
IntakeCompleted event, raised when a patient finishes an intake form
"""

from datetime import datetime
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

from intake_service.events.domain_event import DomainEvent

INTAKE_COMPLETED = "IntakeCompleted"


class IntakeCompletedPayload(BaseModel):
    """Payload carried by an IntakeCompleted event"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    form_id: str = Field(..., min_length=1, alias="formId")
    completed_by: datetime = Field(..., alias="completedBy")
    answers: Dict[str, Any] = Field(default_factory=dict)


class IntakeCompletedEvent(DomainEvent):
    """DomainEvent with the IntakeCompleted tag and typed payload accessors"""

    event_type: Literal["IntakeCompleted"] = Field(default=INTAKE_COMPLETED, alias="eventType")

    @property
    def typed_payload(self) -> IntakeCompletedPayload:
        return IntakeCompletedPayload.model_validate(self.payload)

    @property
    def form_id(self) -> str:
        return self.payload["formId"]

    @property
    def completed_by(self) -> datetime:
        return self.typed_payload.completed_by

    @property
    def answers(self) -> Dict[str, Any]:
        return self.payload.get("answers", {})
