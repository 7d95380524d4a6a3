"""
Known event payload shapes keyed by event type.

Events decode generically from the wire; ``parse_payload`` re-projects the
payload through the model registered for its event type and falls back to
``GenericPayload`` for types this service does not know about.
"""

from typing import Any, Dict, Type, Union

from pydantic import BaseModel, ConfigDict

from intake_service.events.domain_event import DomainEvent
from intake_service.events.intake_completed import INTAKE_COMPLETED, IntakeCompletedPayload


class GenericPayload(BaseModel):
    """Untyped payload for event types without a registered model"""

    model_config = ConfigDict(extra="allow", frozen=True)

    def get(self, key: str, default: Any = None) -> Any:
        return (self.model_extra or {}).get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


PAYLOAD_TYPES: Dict[str, Type[BaseModel]] = {
    INTAKE_COMPLETED: IntakeCompletedPayload,
}


def parse_payload(event: DomainEvent) -> Union[IntakeCompletedPayload, GenericPayload]:
    """
    Project an event's payload onto its registered model.

    Raises:
        pydantic.ValidationError: if a known event type carries a payload
            that does not match its model
    """
    payload_type = PAYLOAD_TYPES.get(event.event_type)
    if payload_type is None:
        return GenericPayload.model_validate(event.payload)
    return payload_type.model_validate(event.payload)
