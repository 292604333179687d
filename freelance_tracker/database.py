"""MongoDB database connection using Motor (async driver)."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from freelance_tracker.config import settings

logger = logging.getLogger(__name__)

# Name of the partial unique index that allows one open entry per (user, project).
OPEN_ENTRY_INDEX = "one_open_entry_per_project"


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the indexes the services depend on.

    The partial unique index on ``time_entries`` is what makes starting and
    resuming a timer an atomic check-and-create: a second open entry for the
    same user and project is rejected by the server with a duplicate key error.
    """
    time_entries = db["time_entries"]
    await time_entries.create_index(
        [("user_id", ASCENDING), ("project_id", ASCENDING)],
        name=OPEN_ENTRY_INDEX,
        unique=True,
        partialFilterExpression={"is_open": True},
    )
    await time_entries.create_index(
        [("user_id", ASCENDING), ("start_time", DESCENDING)],
    )
    await db["payments"].create_index(
        [("user_id", ASCENDING), ("payment_date", ASCENDING)],
    )
    await db["payments"].create_index([("project_id", ASCENDING)])
    await db["projects"].create_index([("user_id", ASCENDING), ("status", ASCENDING)])
    logger.info("Indexes ensured on %s", db.name)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the indexes exist."""
        self.client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
        self.db = self.client[settings.mongodb_db_name]
        await ensure_indexes(self.db)
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client is not None:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[name]


# Global database instance
database = Database()
