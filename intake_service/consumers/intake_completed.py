"""
IntakeCompleted Consumer - Message Consumer
Records completed intake forms from IntakeCompleted events

Run with: python -m intake_service.consumers.intake_completed
"""

import asyncio
import signal
from typing import Optional

from intake_service.core.config import config
from intake_service.core.logger import logger
from intake_service.core.telemetry import instrument_clients
from intake_service.db.mongodb import close_mongo_connection, get_database
from intake_service.dependencies.messaging import get_connection
from intake_service.events.domain_event import DomainEvent
from intake_service.events.intake_completed import INTAKE_COMPLETED, IntakeCompletedPayload
from intake_service.messaging.connection import RabbitMQConnection
from intake_service.messaging.consumer import ConsumerConfig, EventConsumer
from intake_service.messaging.routing import any_pattern_matches, routing_key_for
from intake_service.repositories.form import FormRepository
from intake_service.repositories.processed_events import ProcessedEventRepository


class IntakeCompletedHandler:
    """
    Stores the answers of a completed intake on its form.

    Redeliveries are expected (failures are requeued), so events already in
    the processed-events ledger are skipped.
    """

    def __init__(self, forms: FormRepository, processed_events: ProcessedEventRepository):
        self.forms = forms
        self.processed_events = processed_events

    async def __call__(self, event: DomainEvent) -> None:
        if await self.processed_events.is_processed(event.event_id):
            logger.info(
                f"Skipping already processed event {event.event_id}",
                metadata={"eventType": event.event_type, "aggregateId": event.aggregate_id}
            )
            return

        payload = IntakeCompletedPayload.model_validate(event.payload)
        form = await self.forms.mark_completed(payload.form_id, payload.completed_by, payload.answers)
        if form is None:
            # Nothing to update; retrying would not make the form appear
            logger.warning(
                f"Form {payload.form_id} not found for completed intake",
                metadata={"eventId": event.event_id}
            )
        else:
            logger.info(
                f"Recorded completion of form {form.id}",
                metadata={"eventId": event.event_id, "answerCount": len(payload.answers)}
            )

        await self.processed_events.mark_processed(event, outcome={"formFound": form is not None})


def build_consumer_config() -> ConsumerConfig:
    return ConsumerConfig(
        queue_name=config.intake_consumer_queue,
        exchange=config.intake_exchange,
        exchange_type=config.intake_exchange_type,
        routing_keys=config.consumer_routing_keys,
        durable=config.intake_exchange_durable,
        prefetch_count=config.intake_consumer_prefetch,
        handler_timeout=config.intake_handler_timeout,
    )


def check_bindings(consumer_config: ConsumerConfig) -> bool:
    """Warn when no binding pattern would route IntakeCompleted events to the queue"""
    routing_key = routing_key_for(INTAKE_COMPLETED)
    if any_pattern_matches(consumer_config.routing_keys, routing_key):
        return True
    logger.warning(
        f"None of the routing keys bound to {consumer_config.queue_name} match {routing_key}",
        metadata={"routingKeys": consumer_config.routing_keys, "routingKey": routing_key}
    )
    return False


class IntakeCompletedWorker:
    """Consumer process for IntakeCompleted events"""

    def __init__(self, connection: Optional[RabbitMQConnection] = None):
        self.connection = connection or get_connection()
        self.consumer: Optional[EventConsumer] = None
        self._stopped = asyncio.Event()

    async def start(self):
        """Connect, bind the queue and begin consuming"""
        logger.info("IntakeCompleted consumer starting...")

        database = await get_database()
        processed_events = ProcessedEventRepository(database)
        await processed_events.ensure_indexes()
        handler = IntakeCompletedHandler(
            FormRepository(database[config.forms_collection]),
            processed_events,
        )

        consumer_config = build_consumer_config()
        check_bindings(consumer_config)

        await self.connection.connect()
        self.consumer = EventConsumer(self.connection, consumer_config)
        self.consumer.on(INTAKE_COMPLETED, handler)
        await self.consumer.start()

        logger.info(
            f"Consumer started, consuming from queue: {consumer_config.queue_name}",
            metadata={"queue": consumer_config.queue_name, "routingKeys": consumer_config.routing_keys}
        )

    async def run(self):
        await self.start()
        await self._stopped.wait()

    def request_stop(self):
        logger.info("Shutdown requested")
        self._stopped.set()

    async def stop(self):
        """Gracefully stop the consumer"""
        logger.info("Stopping IntakeCompleted consumer...")
        if self.consumer is not None:
            await self.consumer.stop()
        await self.connection.close()
        await close_mongo_connection()
        self._stopped.set()
        logger.info("IntakeCompleted consumer stopped")


async def main():
    """Main entry point for the consumer"""
    instrument_clients()

    worker = IntakeCompletedWorker()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.request_stop)

    try:
        await worker.run()
    finally:
        await worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
