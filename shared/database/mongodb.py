"""
MongoDB Client
==============

Async MongoDB client using Motor for warranty numbers, registrations
and admin accounts.

Version: 0.1.0
"""

import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


WARRANTY_NUMBERS = "warranty_numbers"
REGISTRATIONS = "registrations"
ADMINS = "admins"


class MongoDBClient:
    """
    Async MongoDB client wrapper.

    Manages client lifecycle and provides database access.
    """

    _client: AsyncIOMotorClient | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> AsyncIOMotorClient:  # type: ignore[type-arg]
        """Get or create the async client."""
        if cls._client is None:
            cls._client = AsyncIOMotorClient(
                settings.mongodb.uri,
                maxPoolSize=settings.mongodb.max_pool_size,
                minPoolSize=settings.mongodb.min_pool_size,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                tz_aware=True,
            )
            logger.info(
                "mongodb_client_created",
                host=settings.mongodb.host,
                database=settings.mongodb.db,
            )
        return cls._client

    @classmethod
    def get_database(cls, name: str | None = None) -> AsyncIOMotorDatabase:  # type: ignore[type-arg]
        """
        Get a database instance.

        Args:
            name: Database name (default from settings)
        """
        client = cls.get_client()
        db_name = name or settings.mongodb.db
        return client[db_name]

    @classmethod
    async def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            cls._client.close()
            cls._client = None
            logger.info("mongodb_client_closed")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """
        Check database health.

        Returns:
            dict with status and latency
        """
        try:
            start = time.perf_counter()
            client = cls.get_client()
            result = await client.admin.command("ping")
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy" if result.get("ok") == 1 else "unhealthy",
                "latency_ms": round(latency_ms, 2),
            }
        except PyMongoError as e:
            logger.error("mongodb_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    @classmethod
    async def create_indexes(cls, db: AsyncIOMotorDatabase | None = None) -> None:  # type: ignore[type-arg]
        """Create indexes for all collections."""
        db = db if db is not None else cls.get_database()

        # Warranty number pool; the unique code index backs DuplicateCode
        await db[WARRANTY_NUMBERS].create_index("code", unique=True)
        await db[WARRANTY_NUMBERS].create_index(
            [("product_id", ASCENDING), ("used", ASCENDING)]
        )
        await db[WARRANTY_NUMBERS].create_index([("created_at", DESCENDING)])

        # Registration ledger
        await db[REGISTRATIONS].create_index("code")
        await db[REGISTRATIONS].create_index("product_id")
        await db[REGISTRATIONS].create_index("status")
        await db[REGISTRATIONS].create_index("email")
        await db[REGISTRATIONS].create_index([("created_at", DESCENDING)])

        # Admin accounts
        await db[ADMINS].create_index("username", unique=True)

        logger.info("mongodb_indexes_created")
