"""
MongoDB connection lifecycle, indexes and document helpers
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from learnify import config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self, mongo_url: str = None, db_name: str = None):
        """Initialize MongoDB connection"""
        self.client = AsyncIOMotorClient(mongo_url or config.MONGO_URL)
        self.db = self.client[db_name or config.MONGO_DB_NAME]
        logger.info("MongoDB client created for database %s", self.db.name)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB client closed")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


# Global database manager
db_manager = DatabaseManager()


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return db_manager.get_database()


# ==================== INDEXES ====================

async def create_core_indexes(db: AsyncIOMotorDatabase):
    """Identity, uniqueness and query-path indexes"""
    # Users
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index("role")
    await db.users.create_index("is_active")

    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index("category")
    await db.courses.create_index("difficulty")
    await db.courses.create_index("is_active")
    await db.courses.create_index([("created_at", -1)])

    # Enrollments: one document per student/course pair, ever
    await db.enrollments.create_index("enrollment_id", unique=True)
    await db.enrollments.create_index([("student_id", 1), ("course_id", 1)], unique=True)
    await db.enrollments.create_index("course_id")
    await db.enrollments.create_index("progress")
    await db.enrollments.create_index([("student_id", 1), ("last_accessed_at", -1)])

    # Reviews
    await db.reviews.create_index("review_id", unique=True)
    await db.reviews.create_index([("course_id", 1), ("is_approved", 1), ("created_at", -1)])
    await db.reviews.create_index([("student_id", 1), ("course_id", 1)])

    # Notes
    await db.notes.create_index("note_id", unique=True)
    await db.notes.create_index([("student_id", 1), ("course_id", 1)])
    await db.notes.create_index([("created_at", -1)])


async def create_text_indexes(db: AsyncIOMotorDatabase):
    """Text search is delegated to the store"""
    await db.courses.create_index([("title", "text"), ("description", "text")])
    await db.notes.create_index([("title", "text"), ("content", "text")])


async def create_indexes(db: AsyncIOMotorDatabase):
    await create_core_indexes(db)
    await create_text_indexes(db)
    logger.info("Indexes created")


# ==================== DOCUMENT HELPERS ====================

def new_id(prefix: str) -> str:
    """Generate a prefixed public identifier, e.g. ENR_1A2B3C4D5E6F"""
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"


def utcnow() -> datetime:
    # Mongo stores millisecond precision; truncate so reads compare equal
    now = datetime.utcnow()
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc.pop("_id", None)
    return doc


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]
