"""
MongoDB client lifecycle

One motor client per process. Forms are addressed by their own ``id``
field, which gets a unique index when the client connects.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from intake_service.core.config import config
from intake_service.core.errors import ErrorResponse
from intake_service.core.logger import logger


class Database:
    """Holds the process-wide client and database handles"""

    client: Optional[AsyncIOMotorClient] = None
    database: Optional[AsyncIOMotorDatabase] = None


db = Database()


async def connect_to_mongo():
    """
    Connect, verify with a ping and ensure the forms index.

    Raises:
        ErrorResponse: 503 if MongoDB cannot be reached
    """
    if db.database is not None:
        return

    log = logger.bind(database=config.mongodb_db_name)
    log.info("Connecting to MongoDB...")

    client = AsyncIOMotorClient(
        config.mongodb_uri,
        tz_aware=True,
        serverSelectionTimeoutMS=config.mongodb_timeout_ms,
    )
    database = client[config.mongodb_db_name]
    try:
        await client.admin.command("ping")
        await database[config.forms_collection].create_index(
            [("id", ASCENDING)], unique=True, name="form_id_unique"
        )
    except PyMongoError as e:
        client.close()
        log.error("Could not connect to MongoDB", error=e, metadata={"event": "mongodb_connection_error"})
        raise ErrorResponse("Could not connect to MongoDB", status_code=503, details={"reason": str(e)})

    db.client, db.database = client, database
    log.info("Connected to MongoDB", metadata={"event": "mongodb_connected"})


async def close_mongo_connection():
    client, db.client, db.database = db.client, None, None
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")


async def ping_mongo() -> bool:
    """True if the database answers a ping"""
    if db.client is None:
        return False
    try:
        await db.client.admin.command("ping")
    except PyMongoError as e:
        logger.warning("MongoDB ping failed", metadata={"error": str(e)})
        return False
    return True


async def get_database() -> AsyncIOMotorDatabase:
    """Database handle, connecting on first use"""
    if db.database is None:
        await connect_to_mongo()
    return db.database


async def get_form_collection() -> AsyncIOMotorCollection:
    database = await get_database()
    return database[config.forms_collection]
