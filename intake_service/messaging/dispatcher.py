"""
Event dispatcher
Publishes domain events to a RabbitMQ exchange
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Literal, Optional, Sequence

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange
from pamqp.commands import Basic
from pydantic import BaseModel, Field

from intake_service.core.logger import logger
from intake_service.events.domain_event import DomainEvent
from intake_service.messaging.connection import RabbitMQConnection
from intake_service.messaging.errors import TRANSPORT_EXCEPTIONS, TransportError
from intake_service.messaging.routing import routing_key_for
from intake_service.middleware.correlation_id import get_correlation_id

ExchangeKind = Literal["direct", "topic", "fanout", "headers"]


class DispatcherConfig(BaseModel):
    """Exchange the dispatcher publishes to"""
    exchange: str = Field(default="intake_events", min_length=1)
    exchange_type: ExchangeKind = "topic"
    durable: bool = True


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of publishing one event in a batch"""
    event_id: str
    routing_key: Optional[str]
    success: bool
    reason: Optional[str] = None
    error: Optional[BaseException] = None


class EventDispatcher:
    """Publishes DomainEvents on the shared channel of a RabbitMQConnection"""

    def __init__(self, connection: RabbitMQConnection, config: Optional[DispatcherConfig] = None):
        self.connection = connection
        self._config = config.model_copy(deep=True) if config else DispatcherConfig()
        self._channel: Optional[AbstractChannel] = None
        self._exchange: Optional[AbstractExchange] = None

    async def initialize(self) -> None:
        """
        Declare the configured exchange on the shared channel.

        Declaring is idempotent; the broker rejects a redeclaration with
        conflicting properties, which surfaces as a TransportError.
        """
        try:
            channel = await self.connection.get_channel()
            self._exchange = await channel.declare_exchange(
                self._config.exchange,
                aio_pika.ExchangeType(self._config.exchange_type),
                durable=self._config.durable,
            )
            self._channel = channel
        except TRANSPORT_EXCEPTIONS as e:
            logger.error(
                "Failed to initialize EventDispatcher",
                error=e,
                metadata={"exchange": self._config.exchange}
            )
            raise TransportError(f"Failed to declare exchange {self._config.exchange}: {e}") from e

        logger.info(
            f"EventDispatcher initialized with exchange: {self._config.exchange}",
            metadata={
                "exchange": self._config.exchange,
                "exchangeType": self._config.exchange_type,
                "durable": self._config.durable,
            }
        )

    def _needs_initialize(self) -> bool:
        return self._exchange is None or self._channel is None or self._channel.is_closed

    def _build_message(self, event: DomainEvent) -> aio_pika.Message:
        return aio_pika.Message(
            body=event.to_wire(),
            delivery_mode=(
                aio_pika.DeliveryMode.PERSISTENT if self._config.durable
                else aio_pika.DeliveryMode.NOT_PERSISTENT
            ),
            content_type="application/json",
            timestamp=datetime.now(timezone.utc),
            message_id=event.event_id,
            type=event.event_type,
            correlation_id=get_correlation_id(),
        )

    async def dispatch(self, event: DomainEvent) -> bool:
        """
        Publish one event.

        Returns:
            True if the broker accepted the message, False if it refused it
            (negative publisher confirm). This is a flow-control signal, not
            a delivery guarantee.

        Raises:
            TransportError: on connection or channel failure; not retried
        """
        if self._needs_initialize():
            await self.initialize()

        routing_key = routing_key_for(event.event_type)
        try:
            confirmation = await self._exchange.publish(
                self._build_message(event),
                routing_key=routing_key,
            )
        except TRANSPORT_EXCEPTIONS as e:
            logger.error(
                f"Error dispatching event: {event.event_type} ({event.event_id})",
                error=e,
                metadata={"eventId": event.event_id, "routingKey": routing_key}
            )
            raise TransportError(f"Failed to publish {event.event_type}: {e}") from e

        if isinstance(confirmation, (Basic.Nack, Basic.Reject)):
            logger.warning(
                f"Failed to dispatch event: {event.event_type} ({event.event_id})",
                metadata={"eventId": event.event_id, "routingKey": routing_key}
            )
            return False

        logger.info(
            f"Event dispatched: {event.event_type} ({event.event_id}) with routing key: {routing_key}",
            metadata={
                "eventId": event.event_id,
                "eventType": event.event_type,
                "aggregateId": event.aggregate_id,
                "routingKey": routing_key,
                "exchange": self._config.exchange,
            }
        )
        return True

    async def dispatch_batch_detailed(self, events: Sequence[DomainEvent]) -> List[DispatchResult]:
        """Publish events one at a time, in order, recording each outcome"""
        results: List[DispatchResult] = []

        for event in events:
            routing_key = routing_key_for(event.event_type)
            try:
                published = await self.dispatch(event)
            except Exception as e:
                logger.error(
                    f"Failed to dispatch event {event.event_id}",
                    error=e,
                    metadata={"eventId": event.event_id, "eventType": event.event_type}
                )
                results.append(DispatchResult(
                    event_id=event.event_id,
                    routing_key=routing_key,
                    success=False,
                    reason="error",
                    error=e,
                ))
                continue

            results.append(DispatchResult(
                event_id=event.event_id,
                routing_key=routing_key,
                success=published,
                reason=None if published else "rejected",
            ))

        return results

    async def dispatch_batch(self, events: Sequence[DomainEvent]) -> List[bool]:
        """
        Publish events one at a time, in order.

        A failure for one event yields False at its position and does not
        stop the rest of the batch.
        """
        results = await self.dispatch_batch_detailed(events)
        return [result.success for result in results]

    def get_config(self) -> DispatcherConfig:
        """Copy of the active configuration"""
        return self._config.model_copy(deep=True)
