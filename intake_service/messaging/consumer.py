"""
Event consumer
Binds a queue to the event exchange and dispatches deliveries to handlers
registered per event type
"""

import asyncio
from collections import defaultdict
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractQueue
from pydantic import BaseModel, Field, ValidationError

from intake_service.core.logger import logger
from intake_service.events.domain_event import DomainEvent
from intake_service.messaging.connection import RabbitMQConnection
from intake_service.messaging.dispatcher import ExchangeKind
from intake_service.messaging.errors import (
    TRANSPORT_EXCEPTIONS,
    ConsumerStoppedError,
    DecodeError,
    HandlerError,
    TransportError,
)
from intake_service.middleware.correlation_id import correlation_scope

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class ConsumerConfig(BaseModel):
    """Queue, bindings and flow control for an EventConsumer"""
    queue_name: str = Field(default="intake_completed_queue", min_length=1)
    exchange: str = Field(default="intake_events", min_length=1)
    routing_keys: List[str] = Field(default_factory=lambda: ["form.*"])
    durable: bool = True
    prefetch_count: int = Field(default=10, ge=1)
    exchange_type: ExchangeKind = "topic"
    handler_timeout: Optional[float] = Field(default=None, gt=0)


class ConsumerState(str, Enum):
    """Lifecycle of an EventConsumer; STOPPED is terminal"""

    UNBOUND = "unbound"
    INITIALIZED = "initialized"
    CONSUMING = "consuming"
    STOPPED = "stopped"


class EventConsumer:
    """
    Durable subscription with in-process dispatch by event type.

    Every delivery is acknowledged after all of its handlers succeed, or when
    no handler is registered for its type. Anything else (undecodable body,
    failing or timed out handler) is nacked with requeue. There is no retry
    cap or backoff here: a handler that always fails is redelivered until a
    broker-side policy such as a dead-letter exchange with a delivery limit
    takes the message out of the queue.
    """

    def __init__(self, connection: RabbitMQConnection, config: Optional[ConsumerConfig] = None):
        self.connection = connection
        self.config = config.model_copy(deep=True) if config else ConsumerConfig()
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._channel: Optional[AbstractChannel] = None
        self._queue: Optional[AbstractQueue] = None
        self._consumer_tag: Optional[str] = None
        self._state = ConsumerState.UNBOUND

    @property
    def state(self) -> ConsumerState:
        return self._state

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for a specific event type"""
        self._handlers[event_type].append(handler)
        logger.debug(
            f"Registered event handler for: {event_type}",
            metadata={"eventType": event_type, "handler": _handler_name(handler)}
        )

    def handlers_for(self, event_type: str) -> List[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    async def initialize(self) -> None:
        """
        Open a dedicated channel, set prefetch, declare the queue and bind it
        once per routing key.
        """
        if self._state == ConsumerState.STOPPED:
            raise ConsumerStoppedError(f"Consumer for {self.config.queue_name} has been stopped")
        if self._state != ConsumerState.UNBOUND:
            return

        channel = await self.connection.create_channel()
        try:
            await channel.set_qos(prefetch_count=self.config.prefetch_count)

            exchange = await channel.declare_exchange(
                self.config.exchange,
                aio_pika.ExchangeType(self.config.exchange_type),
                durable=self.config.durable,
            )
            queue = await channel.declare_queue(self.config.queue_name, durable=self.config.durable)

            for routing_key in self.config.routing_keys:
                await queue.bind(exchange, routing_key=routing_key)
                logger.info(
                    f"Queue {self.config.queue_name} bound to exchange {self.config.exchange} "
                    f"with routing key: {routing_key}"
                )
        except TRANSPORT_EXCEPTIONS as e:
            logger.error(
                "Failed to initialize EventConsumer",
                error=e,
                metadata={"queue": self.config.queue_name, "exchange": self.config.exchange}
            )
            await _close_quietly(channel)
            raise TransportError(f"Failed to set up queue {self.config.queue_name}: {e}") from e

        self._channel = channel
        self._queue = queue
        self._state = ConsumerState.INITIALIZED
        logger.info(
            f"EventConsumer initialized for queue: {self.config.queue_name}",
            metadata={
                "queue": self.config.queue_name,
                "routingKeys": self.config.routing_keys,
                "prefetchCount": self.config.prefetch_count,
            }
        )

    async def start(self) -> None:
        """Start consuming with manual acknowledgement"""
        if self._state == ConsumerState.STOPPED:
            raise ConsumerStoppedError(f"Consumer for {self.config.queue_name} has been stopped")
        if self._state == ConsumerState.CONSUMING:
            logger.warning(
                f"Consumer already running for queue: {self.config.queue_name}",
                metadata={"consumerTag": self._consumer_tag}
            )
            return

        await self.initialize()

        logger.info(f"Starting consumer for queue: {self.config.queue_name}")
        try:
            self._consumer_tag = await self._queue.consume(self.handle_message, no_ack=False)
        except TRANSPORT_EXCEPTIONS as e:
            logger.error("Failed to start consumer", error=e, metadata={"queue": self.config.queue_name})
            raise TransportError(f"Failed to consume from {self.config.queue_name}: {e}") from e

        self._state = ConsumerState.CONSUMING
        logger.info(
            f"Consumer started for queue: {self.config.queue_name}",
            metadata={"consumerTag": self._consumer_tag}
        )

    async def handle_message(self, message: AbstractIncomingMessage) -> None:
        """Decode a delivery, run its handlers and ack or requeue it"""
        try:
            event = self._decode(message)
        except DecodeError as e:
            logger.error(
                "Error processing message: undecodable body",
                error=e,
                metadata={"messageId": message.message_id, "deliveryTag": message.delivery_tag}
            )
            await self._settle(message, success=False)
            return

        # Handlers inherit the publisher's correlation id
        with correlation_scope(message.correlation_id):
            await self._dispatch(message, event)

    async def _dispatch(self, message: AbstractIncomingMessage, event: DomainEvent) -> None:
        log = logger.bind(eventId=event.event_id, eventType=event.event_type, queue=self.config.queue_name)
        log.info(f"Received event: {event.event_type} ({event.event_id})")

        handlers = self.handlers_for(event.event_type)
        if not handlers:
            log.warning(f"No handlers registered for event type: {event.event_type}")
            await self._settle(message, success=True)
            return

        results = await asyncio.gather(
            *(self._run_handler(handler, event) for handler in handlers),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]

        for failure in failures:
            log.error("Error processing message", error=failure)

        await self._settle(message, success=not failures)
        if not failures:
            log.info(
                f"Event processed successfully: {event.event_type} ({event.event_id})",
                metadata={"handlerCount": len(handlers)}
            )

    def _decode(self, message: AbstractIncomingMessage) -> DomainEvent:
        try:
            return DomainEvent.from_wire(message.body)
        except ValidationError as e:
            raise DecodeError(f"Malformed event body: {e.error_count()} validation error(s)") from e
        except (ValueError, TypeError) as e:
            raise DecodeError(f"Malformed event body: {e}") from e

    async def _run_handler(self, handler: EventHandler, event: DomainEvent) -> None:
        try:
            if self.config.handler_timeout is not None:
                await asyncio.wait_for(handler(event), timeout=self.config.handler_timeout)
            else:
                await handler(event)
        except Exception as e:
            raise HandlerError(event.event_type, _handler_name(handler), e) from e

    async def _settle(self, message: AbstractIncomingMessage, success: bool) -> None:
        try:
            if success:
                await message.ack()
            else:
                await message.nack(requeue=True)
        except TRANSPORT_EXCEPTIONS as e:
            # The broker redelivers unacknowledged messages once the channel is gone
            logger.error(
                "Failed to acknowledge message",
                error=e,
                metadata={"deliveryTag": message.delivery_tag, "ack": success}
            )

    async def stop(self) -> None:
        """Close the dedicated channel; the consumer cannot be restarted"""
        if self._state == ConsumerState.STOPPED:
            return

        channel, self._channel = self._channel, None
        self._queue = None
        self._consumer_tag = None
        self._state = ConsumerState.STOPPED

        if channel is not None:
            await _close_quietly(channel)
            logger.info(f"EventConsumer stopped for queue: {self.config.queue_name}")


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


async def _close_quietly(channel: AbstractChannel) -> None:
    if channel.is_closed:
        return
    try:
        await channel.close()
    except TRANSPORT_EXCEPTIONS as e:
        logger.warning("Error closing consumer channel", metadata={"error": str(e)})
