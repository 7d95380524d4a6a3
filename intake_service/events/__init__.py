"""
Domain events published and consumed by the Intake Service
"""

from .domain_event import DomainEvent
from .intake_completed import INTAKE_COMPLETED, IntakeCompletedEvent, IntakeCompletedPayload
from .payloads import PAYLOAD_TYPES, GenericPayload, parse_payload

__all__ = [
    "DomainEvent",
    "INTAKE_COMPLETED",
    "IntakeCompletedEvent",
    "IntakeCompletedPayload",
    "PAYLOAD_TYPES",
    "GenericPayload",
    "parse_payload",
]
