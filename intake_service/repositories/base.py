"""
Generic MongoDB repository for entities keyed by a string ``id``
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from intake_service.core.errors import ErrorResponse
from intake_service.core.logger import logger

T = TypeVar("T")


class MongoRepository(ABC, Generic[T]):
    """
    CRUD operations shared by entity repositories.

    Documents are looked up by the entity ``id`` field, never by ``_id``,
    which MongoDB generates on insert.
    """

    entity_name = "entity"

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @abstractmethod
    def to_entity(self, document: Dict[str, Any]) -> T:
        """Convert a MongoDB document to a domain entity"""

    @abstractmethod
    def to_document(self, entity: T) -> Dict[str, Any]:
        """Convert a domain entity to a MongoDB document (without ``_id``)"""

    def _database_error(self, operation: str, error: PyMongoError) -> ErrorResponse:
        logger.error(
            f"MongoDB error during {self.entity_name} {operation}",
            error=error,
            metadata={"event": f"{self.entity_name}_{operation}_error"}
        )
        return ErrorResponse(f"Database error during {self.entity_name} {operation}", status_code=503)

    async def save(self, entity: T) -> T:
        """
        Insert the entity, or update it if a document with its id exists.
        The original ``created_at`` is kept on update.
        """
        document = self.to_document(entity)
        document.pop("_id", None)
        now = datetime.now(timezone.utc)

        try:
            existing = await self.collection.find_one({"id": document["id"]})
            if existing:
                document["created_at"] = existing.get("created_at", document.get("created_at"))
                document["updated_at"] = now
                await self.collection.update_one({"id": document["id"]}, {"$set": document})
            else:
                document["updated_at"] = now
                await self.collection.insert_one(document)
        except PyMongoError as e:
            raise self._database_error("save", e)

        return self.to_entity(document)

    async def find_by_id(self, entity_id: str) -> Optional[T]:
        try:
            document = await self.collection.find_one({"id": entity_id})
        except PyMongoError as e:
            raise self._database_error("retrieval", e)
        return self.to_entity(document) if document else None

    async def find_all(self) -> List[T]:
        try:
            documents = await self.collection.find({}).to_list(length=None)
        except PyMongoError as e:
            raise self._database_error("listing", e)
        return [self.to_entity(document) for document in documents]

    async def delete(self, entity_id: str) -> bool:
        """True if a document was deleted, False if none had the id"""
        try:
            result = await self.collection.delete_one({"id": entity_id})
        except PyMongoError as e:
            raise self._database_error("deletion", e)
        return result.deleted_count > 0
