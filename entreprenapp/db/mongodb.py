"""
MongoDB Database Connection.

Uses Motor (async MongoDB driver) for non-blocking operations.
Provides connection management with retry/backoff, index creation and
database access for endpoints.
"""
import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from entreprenapp.config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    """
    MongoDB connection manager.

    Usage:
        # In lifespan
        await mongodb.connect()
        yield
        await mongodb.close()

        # In endpoints
        db = mongodb.get_database()
        await db.users.find_one({"email": email})
    """

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    def __init__(
        self,
        max_retries: int = settings.MONGODB_CONNECT_RETRIES,
        base_delay: float = settings.MONGODB_RETRY_BASE_DELAY,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def connect(self) -> None:
        """
        Connect to MongoDB, retrying with exponential backoff.

        Waits ``base_delay * 2**(attempt-1)`` seconds between attempts
        (2s, 4s, 8s, 16s, 32s with the defaults) and re-raises the last
        connection error once every attempt has failed.
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                await self._connect_once()
                return
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                if self.client:
                    self.client.close()
                    self.client = None
                if attempt == self.max_retries:
                    logger.critical(
                        f"Could not connect to MongoDB after {self.max_retries} attempts: {e}"
                    )
                    raise
                delay = self.base_delay * 2 ** (attempt - 1)
                logger.warning(
                    f"MongoDB connection attempt {attempt}/{self.max_retries} failed: {e}. "
                    f"Retrying in {delay:.0f}s"
                )
                await asyncio.sleep(delay)

    async def _connect_once(self) -> None:
        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DB_NAME}")

        self.client = AsyncIOMotorClient(
            settings.MONGO_URL,
            minPoolSize=settings.MONGODB_MIN_POOL_SIZE,
            maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
            maxIdleTimeMS=settings.MONGODB_MAX_IDLE_TIME_MS,
            serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        )

        # Verify connection
        await self.client.admin.command('ping')

        self.db = self.client[settings.MONGODB_DB_NAME]
        await create_indexes(self.db)

        logger.info(f"Connected to MongoDB database: {settings.MONGODB_DB_NAME}")

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Get the database instance.

        Raises:
            RuntimeError: If database is not connected
        """
        if self.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.db


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create database indexes for optimal query performance."""
    # Users
    await db.users.create_index("email", unique=True)
    await db.users.create_index("username", unique=True)
    await db.users.create_index("deleted_at")
    await db.users.create_index("reset_password_token", sparse=True)

    # Posts and comments
    await db.posts.create_index([("author", ASCENDING), ("created_at", DESCENDING)])
    await db.posts.create_index([("visibility", ASCENDING), ("created_at", DESCENDING)])
    await db.comments.create_index([("post", ASCENDING), ("created_at", DESCENDING)])
    await db.comments.create_index("parent_comment")

    # Social graph and messaging
    await db.friend_requests.create_index([("sender", ASCENDING), ("receiver", ASCENDING)])
    await db.friend_requests.create_index([("receiver", ASCENDING), ("status", ASCENDING)])
    await db.messages.create_index([("sender", ASCENDING), ("receiver", ASCENDING), ("created_at", ASCENDING)])

    # Events, projects, challenges
    await db.events.create_index([("organizer", ASCENDING), ("start_date", ASCENDING)])
    await db.events.create_index("status")
    await db.projects.create_index("creator")
    await db.projects.create_index("status")
    await db.challenges.create_index("organisation")
    await db.challenges.create_index("deadline")

    # Notifications, purged by the store once expires_at is reached
    await db.notifications.create_index([("recipient", ASCENDING), ("created_at", DESCENDING)])
    await db.notifications.create_index([("recipient", ASCENDING), ("read", ASCENDING)])
    await db.notifications.create_index("expires_at", expireAfterSeconds=0)

    logger.info("Database indexes created")


# Global MongoDB instance
mongodb = MongoDB()


async def get_database() -> AsyncIOMotorDatabase:
    """
    Dependency for getting database in endpoints.

    Usage:
        @router.get("/users")
        async def get_users(db: AsyncIOMotorDatabase = Depends(get_database)):
            users = await db.users.find().to_list(100)
            return users
    """
    return mongodb.get_database()


async def get_optional_database() -> Optional[AsyncIOMotorDatabase]:
    """Like ``get_database``, but None while no connection is open."""
    return mongodb.db
