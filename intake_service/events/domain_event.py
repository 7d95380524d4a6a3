"""
Base domain event and its canonical JSON wire form
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

# Fields the event assigns itself; only a decoded event may carry them in
ASSIGNED_FIELDS = ("event_id", "eventId", "occurred_on", "occurredOn")
RESTORE_CONTEXT = {"restore": True}


def utc_now() -> datetime:
    """Helper function for Pydantic default_factory to get current UTC time"""
    return datetime.now(timezone.utc)


def new_event_id() -> str:
    return str(uuid.uuid4())


def _read_only(*args, **kwargs):
    raise TypeError("event payloads are read-only")


class FrozenDict(dict):
    """dict that refuses in-place changes"""

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __reduce__(self):
        return (type(self), (dict(self),))


class FrozenList(list):
    """list that refuses in-place changes"""

    __setitem__ = __delitem__ = __iadd__ = __imul__ = _read_only
    append = extend = insert = pop = remove = clear = sort = reverse = _read_only

    def __reduce__(self):
        return (type(self), (list(self),))


def freeze(value: Any) -> Any:
    """Read-only copy of nested dicts and lists; other values are returned as is"""
    if isinstance(value, dict):
        return FrozenDict((key, freeze(item)) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return FrozenList(freeze(item) for item in value)
    return value


class DomainEvent(BaseModel):
    """
    Immutable record of something that happened to an aggregate.

    ``event_id`` and ``occurred_on`` are always assigned on creation. Only
    ``from_wire`` and ``restore``, which rebuild an event that already
    happened, accept them. The payload is stored as a read-only copy.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_id: str = Field(default_factory=new_event_id, alias="eventId")
    event_type: str = Field(..., min_length=1, alias="eventType")
    occurred_on: datetime = Field(default_factory=utc_now, alias="occurredOn")
    aggregate_id: str = Field(..., alias="aggregateId")
    payload: Dict[str, Any] = Field(default_factory=FrozenDict)

    @model_validator(mode="before")
    @classmethod
    def _reject_assigned_fields(cls, data: Any, info: ValidationInfo) -> Any:
        if isinstance(data, Mapping) and not (info.context or {}).get("restore"):
            supplied = [key for key in ASSIGNED_FIELDS if key in data]
            if supplied:
                raise ValueError(f"{', '.join(supplied)} cannot be supplied when creating an event")
        return data

    @field_validator("payload", mode="before")
    @classmethod
    def _copy_payload(cls, value: Any) -> Any:
        # Typed payload models are flattened to their JSON representation
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json", by_alias=True)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        return value

    @field_validator("payload")
    @classmethod
    def _freeze_payload(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return freeze(value)

    @field_validator("occurred_on")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible mapping with the wire field names"""
        return self.model_dump(mode="json", by_alias=True)

    def to_wire(self) -> bytes:
        """Serialize to the UTF-8 JSON message body"""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def restore(cls, data: Mapping[str, Any]) -> "DomainEvent":
        """Rebuild a stored event, keeping its id and occurrence time"""
        return cls.model_validate(data, context=RESTORE_CONTEXT)

    @classmethod
    def from_wire(cls, body: Union[bytes, str]) -> "DomainEvent":
        """
        Decode a message body into a generic DomainEvent.

        Raises:
            pydantic.ValidationError: if the body is not JSON in the wire format
        """
        return DomainEvent.model_validate_json(body, context=RESTORE_CONTEXT)
