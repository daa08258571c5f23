from __future__ import annotations

import logging
from typing import AsyncGenerator

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ..core.config import get_settings

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


async def connect_to_mongo() -> None:
    """Open the shared Motor client for the trivia database and check it answers."""
    global _client, _db
    if _client is not None:
        return
    settings = get_settings()
    _client = AsyncIOMotorClient(
        settings.mongo_uri,
        appname=settings.app_name,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        socketTimeoutMS=30000,
    )
    _db = _client[settings.mongo_db]
    await _client.admin.command("ping")
    logger.info("Connected to MongoDB database %s", settings.mongo_db)


async def close_mongo_connection() -> None:
    global _client, _db
    if _client is None:
        return
    _client.close()
    _client = None
    _db = None
    logger.info("MongoDB connection closed")


def get_database() -> AsyncIOMotorDatabase:
    if _db is None:
        raise RuntimeError("Trivia database is not connected; the app lifespan opens it on startup")
    return _db


async def get_db() -> AsyncGenerator[AsyncIOMotorDatabase, None]:
    yield get_database()


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    # Registration relies on these to reject duplicates that slip past the lookup
    await db.users.create_index("email", unique=True)
    await db.users.create_index("username", unique=True, sparse=True)
    await db.users.create_index("googleId", unique=True, sparse=True)
    # Leaderboard ordering
    await db.users.create_index([("score", -1), ("username", 1)])

    await db.badges.create_index("name", unique=True)

    await db.questions.create_index("status")
    await db.questions.create_index("createdBy")

    await db.user_responses.create_index("userId")
    await db.user_responses.create_index("questionId")
