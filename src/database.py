import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from src.config import settings

LOGGER = logging.getLogger(__name__)

LISTINGS_COLLECTION = "listings"
USERS_COLLECTION = "users"

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo() -> None:
    global _client, _database

    if _client is not None:
        return

    client = AsyncIOMotorClient(settings.mongo_uri, tz_aware=True)
    try:
        await client.admin.command("ping")
    except Exception:
        client.close()
        raise

    _client = client
    _database = _client[settings.db_name]
    LOGGER.info("Connected to MongoDB database=%s", settings.db_name)


async def close_mongo_connection() -> None:
    global _client, _database

    if _client is not None:
        _client.close()
        LOGGER.info("MongoDB connection closed")

    _client = None
    _database = None


async def ensure_indexes() -> None:
    listings = get_database()[LISTINGS_COLLECTION]
    # At most one self-authored listing per owner.
    await listings.create_index(
        [("authorship.owner_id", ASCENDING)],
        name="unique_self_owner",
        unique=True,
        partialFilterExpression={"authorship.kind": "self"},
    )
    await listings.create_index([("created_at", DESCENDING)])
    await listings.create_index([("slug", ASCENDING)])


async def ping_mongo_detailed() -> tuple[bool, str | None]:
    if _client is None:
        return False, "MongoDB client is not initialized."

    try:
        await _client.admin.command("ping")
    except Exception as exc:
        return False, str(exc)

    return True, None


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("MongoDB connection has not been initialized.")
    return _database
