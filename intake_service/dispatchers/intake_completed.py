"""
Dispatcher preconfigured for IntakeCompleted events
"""

from typing import Any, List, Mapping, Sequence, Tuple, Union

from pydantic import ValidationError

from intake_service.core.logger import logger
from intake_service.events.intake_completed import IntakeCompletedEvent, IntakeCompletedPayload
from intake_service.messaging.connection import RabbitMQConnection
from intake_service.messaging.dispatcher import DispatcherConfig, EventDispatcher, ExchangeKind

PayloadInput = Union[IntakeCompletedPayload, Mapping[str, Any]]


class IntakeCompletedDispatcher:
    """Builds IntakeCompletedEvents and hands them to an EventDispatcher"""

    def __init__(
        self,
        connection: RabbitMQConnection,
        exchange: str = "intake_events",
        exchange_type: ExchangeKind = "topic",
        durable: bool = True,
    ):
        self.event_dispatcher = EventDispatcher(
            connection,
            DispatcherConfig(exchange=exchange, exchange_type=exchange_type, durable=durable),
        )

    async def initialize(self) -> None:
        await self.event_dispatcher.initialize()

    @staticmethod
    def build_event(aggregate_id: str, payload: PayloadInput) -> IntakeCompletedEvent:
        if not isinstance(payload, IntakeCompletedPayload):
            payload = IntakeCompletedPayload.model_validate(payload)
        return IntakeCompletedEvent(aggregate_id=aggregate_id, payload=payload)

    async def dispatch(self, aggregate_id: str, payload: PayloadInput) -> bool:
        return await self.event_dispatcher.dispatch(self.build_event(aggregate_id, payload))

    async def dispatch_event(self, event: IntakeCompletedEvent) -> bool:
        """Publish an already built event, e.g. when the caller needs its id"""
        return await self.event_dispatcher.dispatch(event)

    async def dispatch_batch(self, events: Sequence[Tuple[str, PayloadInput]]) -> List[bool]:
        """
        Build and publish each event in order.

        A payload that does not validate yields False at its position; the
        rest of the batch is still published.
        """
        results: List[bool] = []
        for aggregate_id, payload in events:
            try:
                event = self.build_event(aggregate_id, payload)
            except ValidationError as e:
                logger.error(
                    "Invalid IntakeCompleted payload",
                    error=e,
                    metadata={"aggregateId": aggregate_id, "errorCount": e.error_count()}
                )
                results.append(False)
                continue
            results.extend(await self.event_dispatcher.dispatch_batch([event]))
        return results

    def get_config(self) -> DispatcherConfig:
        return self.event_dispatcher.get_config()

