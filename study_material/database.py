import logging
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, TEXT

from study_material.config import MONGODB_URI, MONGODB_DB

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(MONGODB_URI)
    return _client


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


def get_db_instance() -> AsyncIOMotorDatabase:
    """Get database from the shared client"""
    return get_client()[MONGODB_DB]


async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()


# ==================== SERIALIZATION ====================

def serialize_mongo(doc: Any) -> Any:
    """Convert ObjectIds (at any depth) to strings so documents are JSON safe"""
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, dict):
        return {k: serialize_mongo(v) for k, v in doc.items()}
    if isinstance(doc, list):
        return [serialize_mongo(v) for v in doc]
    return doc


def serialize_many(docs: list) -> list:
    return [serialize_mongo(doc) for doc in docs]


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id from a path or body, None when it is not a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create MongoDB indexes for uniqueness and lookups"""
    # Users
    await db.users.create_index("username", unique=True)
    await db.users.create_index("email", unique=True)

    # Contents
    await db.contents.create_index([("category", ASCENDING), ("subTopic", ASCENDING)])
    await db.contents.create_index([("title", TEXT), ("content", TEXT)])

    # Progress
    await db.userprogresses.create_index([("userId", ASCENDING), ("contentId", ASCENDING)], unique=True)
    await db.userprogresses.create_index([("userId", ASCENDING), ("category", ASCENDING)])
    await db.userprogresses.create_index([("userId", ASCENDING), ("completed", ASCENDING)])

    # Blocklist
    await db.blockedusers.create_index([("identifier", ASCENDING), ("blockType", ASCENDING)], unique=True)
    await db.blockedusers.create_index("blockType")
    await db.blockedusers.create_index("originalUserInfo.username")
    await db.blockedusers.create_index("originalUserInfo.email")

    logger.info("Database indexes created")
