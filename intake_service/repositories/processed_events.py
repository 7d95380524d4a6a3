"""
Ledger of consumed events

Deliveries that fail are requeued, so a handler can see the same event more
than once. Handlers check the ledger first and record the event after their
side effects succeed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, IndexModel
from pymongo.errors import DuplicateKeyError

from intake_service.core.logger import logger
from intake_service.events.domain_event import DomainEvent

PROCESSED_EVENTS_COLLECTION = "processed_events"
PROCESSED_EVENT_TTL_SECONDS = 30 * 24 * 60 * 60

LEDGER_INDEXES = [
    IndexModel([("event_id", ASCENDING)], unique=True, name="event_id_unique"),
    IndexModel([("event_type", ASCENDING), ("aggregate_id", ASCENDING)], name="event_type_aggregate_idx"),
    IndexModel([("processed_at", ASCENDING)], expireAfterSeconds=PROCESSED_EVENT_TTL_SECONDS, name="ttl_idx"),
]


class ProcessedEventRepository:
    """Event ids already handled by this service, expired after 30 days"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[PROCESSED_EVENTS_COLLECTION]
        self._indexes_created = False

    async def ensure_indexes(self):
        if self._indexes_created:
            return
        await self.collection.create_indexes(LEDGER_INDEXES)
        self._indexes_created = True
        logger.info(
            "Processed events indexes created",
            metadata={"collection": PROCESSED_EVENTS_COLLECTION}
        )

    async def is_processed(self, event_id: str) -> bool:
        document = await self.collection.find_one({"event_id": event_id}, projection={"_id": 1})
        return document is not None

    async def mark_processed(self, event: DomainEvent, outcome: Optional[Dict[str, Any]] = None) -> bool:
        """
        Record the event as handled.

        Returns:
            False when another delivery of the same event was recorded first
        """
        try:
            await self.collection.insert_one({
                "event_id": event.event_id,
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
                "occurred_on": event.occurred_on,
                "processed_at": datetime.now(timezone.utc),
                "outcome": outcome or {},
            })
        except DuplicateKeyError:
            logger.warning(
                f"Event {event.event_id} already recorded as processed",
                metadata={"eventType": event.event_type, "aggregateId": event.aggregate_id}
            )
            return False
        return True
