"""
MongoDB Connection Utility

MongoDB is the system of record for the portal:
- Student profiles with their denormalized application counters
- Jobs, companies and applications
- Skills, projects, achievements, educational background
- Email notification queue and unsubscribe list
- Resume builder data and uploaded resume metadata
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from placement_portal.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the portal database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection. Use the COLLECTIONS constants for names."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "students": "students",
    "jobs": "jobs",
    "companies": "companies",
    "applications": "applications",
    "skills": "skills",
    "achievements": "achievements",
    "projects": "projects",
    "education": "educational_background",
    "email_notifications": "emailNotifications",
    "unsubscribed_users": "unsubscribedUsers",
    "resume_builder_data": "resume_builder_data",
    "resumes": "resumes",
    "notifications": "notifications",
    "users": "users",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # One application per (student, job); backs the deterministic _id for
    # documents created before ids were derived from the pair
    db[COLLECTIONS["applications"]].create_index(
        [("student_id", ASCENDING), ("job_id", ASCENDING)], unique=True
    )
    db[COLLECTIONS["applications"]].create_index(
        [("student_id", ASCENDING), ("applied_date", DESCENDING)]
    )

    db[COLLECTIONS["jobs"]].create_index([("created_at", DESCENDING)])
    db[COLLECTIONS["jobs"]].create_index("recruiter_id")

    # Student-owned records
    for name in ("skills", "achievements", "projects", "education"):
        db[COLLECTIONS[name]].create_index("student_id")

    db[COLLECTIONS["email_notifications"]].create_index("job_id")
    db[COLLECTIONS["unsubscribed_users"]].create_index("email")
    db[COLLECTIONS["notifications"]].create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING)]
    )

    logger.info("MongoDB indexes created successfully")
