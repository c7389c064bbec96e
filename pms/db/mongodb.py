"""
MongoDB Connection Utility

MongoDB stores every record of the back office:
- Users (login accounts for staff and students)
- Administrator, department HOD, placement staff and placement director profiles
- Departments and course categories
- Student profiles created by roster imports
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from pms.core.config import get_settings

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
    """Get the placement management database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """
    Get a specific collection by its COLLECTIONS key or raw name.
    """
    db = get_mongo_db()
    return db[COLLECTIONS.get(name, name)]


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
    except PyMongoError as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "students": "students",
    "administrators": "administrators",
    "departments": "departments",
    "course_categories": "course_categories",
    "hod_profiles": "department_hod_profiles",
    "placement_staff_profiles": "placement_staff_profiles",
    "director_profiles": "placement_director_profiles",
}


def init_mongo_indexes():
    """
    Create indexes for uniqueness and query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True)
    users.create_index("employeeId", unique=True, sparse=True)
    users.create_index("importKey", unique=True, sparse=True)
    users.create_index("studentId", sparse=True)
    users.create_index([("role", ASCENDING), ("department", ASCENDING)])

    db[COLLECTIONS["students"]].create_index("userId", unique=True)
    db[COLLECTIONS["students"]].create_index("academic.department")

    administrators = db[COLLECTIONS["administrators"]]
    administrators.create_index("email", unique=True)
    administrators.create_index("employeeId", unique=True)
    administrators.create_index("userId", unique=True)
    for field in ("department", "role", "status", "accessLevel"):
        administrators.create_index(field)

    departments = db[COLLECTIONS["departments"]]
    departments.create_index("name", unique=True)
    departments.create_index("code", unique=True)
    departments.create_index("courseCategory")
    departments.create_index("placementStaff")
    departments.create_index([("createdAt", DESCENDING)])

    categories = db[COLLECTIONS["course_categories"]]
    categories.create_index("name", unique=True)
    categories.create_index("isActive")
    categories.create_index([("createdAt", DESCENDING)])

    for key in ("hod_profiles", "placement_staff_profiles", "director_profiles"):
        db[COLLECTIONS[key]].create_index("userId", unique=True)

    logger.info("MongoDB indexes created successfully")
