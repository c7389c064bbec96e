"""Shared fixtures: in-memory MongoDB (mongomock), API client, users and tokens."""

import os

# Settings are read once at import time
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DEBUG", "false")

import mongomock
import pytest
from fastapi.testclient import TestClient

from pms.core.auth import create_user_token, hash_password
from pms.db import mongodb
from pms.main import app
from pms.services.mongo_service import utcnow
from pms.services.notification_service import get_notification_service
from pms.services.storage_service import get_storage_service
from tests.fakes import FakeNotifications, FakeStorage

PASSWORD = "Passw0rd"


@pytest.fixture
def db(monkeypatch):
    client = mongomock.MongoClient()
    database = client["pms_test"]
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", database)
    mongodb.init_mongo_indexes()
    return database


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def client(db, storage, notifications):
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_notification_service] = lambda: notifications
    app.state.login_limiter._windows.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def factory(role="admin", department=None, **extra):
        counter["n"] += 1
        now = utcnow()
        doc = {
            "firstName": "Test",
            "lastName": f"User{counter['n']}",
            "email": f"user{counter['n']}@college.edu",
            "password": hash_password(PASSWORD),
            "role": role,
            "isActive": True,
            "isVerified": True,
            "createdAt": now,
            "updatedAt": now,
        }
        if department:
            doc["department"] = department
        doc.update(extra)
        doc["_id"] = db.users.insert_one(doc).inserted_id
        return doc

    return factory


def auth_headers(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
def admin_user(make_user):
    return make_user("admin")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def make_admin_profile(db):
    counter = {"n": 0}

    def factory(user: dict, access_level: str = "superAdmin", **extra):
        counter["n"] += 1
        now = utcnow()
        doc = {
            "userId": user["_id"],
            "employeeId": f"ADM{counter['n']:03d}",
            "name": {"firstName": user["firstName"], "lastName": user["lastName"]},
            "email": user["email"],
            "mobileNumber": "9876543210",
            "role": "admin",
            "designation": "Administrator",
            "accessLevel": access_level,
            "officeLocation": "Main Block",
            "status": "active",
            "profilePhotoUrl": "",
            "dateOfJoining": now,
            "createdAt": now,
            "updatedAt": now,
        }
        doc.update(extra)
        doc["_id"] = db.administrators.insert_one(doc).inserted_id
        return doc

    return factory


@pytest.fixture
def super_admin_headers(admin_user, make_admin_profile):
    make_admin_profile(admin_user, "superAdmin")
    return auth_headers(admin_user)


@pytest.fixture
def course_category(db, admin_user):
    now = utcnow()
    doc = {"name": "Engineering", "description": "", "isActive": True,
           "createdBy": admin_user["_id"], "createdAt": now, "updatedAt": now}
    doc["_id"] = db.course_categories.insert_one(doc).inserted_id
    return doc


@pytest.fixture
def make_department(db, course_category):
    def factory(code: str, name: str = None, is_active: bool = True):
        now = utcnow()
        doc = {
            "name": name or f"Department of {code}",
            "code": code,
            "description": "",
            "courseCategory": course_category["_id"],
            "placementStaff": None,
            "isActive": is_active,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = db.departments.insert_one(doc).inserted_id
        return doc

    return factory


@pytest.fixture
def headers_for():
    return auth_headers
