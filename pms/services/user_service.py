"""
User Service - login accounts, registration and roster creators.

Collections: users, students
"""

import logging
import math
import re
import secrets
import string
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from pms.core.auth import hash_password, verify_password
from pms.core.exceptions import (
    AuthenticationError,
    DuplicateFieldError,
    InvalidReferenceError,
    NotFoundError,
    ValidationFailed,
)
from pms.core.roles import PLACEMENT_ROLES, Role
from pms.db.mongodb import get_collection
from pms.schemas.schemas import RegisterRequest
from pms.services.mongo_service import pagination_block, raise_duplicate, utcnow

logger = logging.getLogger(__name__)

PUBLIC_PROJECTION = {"password": 0}

# Roles that can be self-registered; the rest are provisioned by an admin
SELF_REGISTER_ROLES = {
    Role.student,
    Role.alumni,
    Role.placement_staff,
    Role.department_hod,
    Role.other_staff,
}


def public_user(user: dict) -> dict:
    """The user fields safe to send to clients."""
    return {
        "id": str(user["_id"]),
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
        "fullName": f"{user.get('firstName', '')} {user.get('lastName', '')}".strip(),
        "email": user.get("email"),
        "role": user.get("role"),
        "department": user.get("department"),
        "phone": user.get("phone"),
        "employeeId": user.get("employeeId"),
        "designation": user.get("designation"),
        "studentId": user.get("studentId"),
        "isActive": user.get("isActive", True),
        "isVerified": user.get("isVerified", False),
        "lastLogin": user.get("lastLogin"),
        "createdAt": user.get("createdAt"),
    }


def generate_temp_password(prefix: str = "Staff") -> str:
    """Temporary password handed out with imported accounts."""
    alphabet = string.ascii_letters + string.digits
    return f"{prefix}@{''.join(secrets.choice(alphabet) for _ in range(8))}{secrets.randbelow(10)}"


class UserService:
    """Reads and writes login accounts."""

    def __init__(self):
        self.collection: Collection = get_collection("users")

    def get_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.strip().lower()})

    def ensure_unique(self, email: Optional[str] = None, employee_id: Optional[str] = None) -> None:
        if email and self.collection.find_one({"email": email.strip().lower()}, {"_id": 1}):
            raise DuplicateFieldError("email", "User with this email already exists")
        if employee_id and self.collection.find_one({"employeeId": employee_id}, {"_id": 1}):
            raise DuplicateFieldError("employeeId", "Employee ID already exists")

    def register(self, data: RegisterRequest) -> dict:
        """Create an account from the public registration form."""
        if data.role not in SELF_REGISTER_ROLES:
            raise ValidationFailed(
                "Validation failed",
                errors=[{"field": "role", "message": "Invalid role specified"}],
            )
        email = data.email.lower()
        self.ensure_unique(email=email, employee_id=data.employeeId)

        now = utcnow()
        doc = {
            "firstName": data.firstName.strip(),
            "lastName": data.lastName.strip(),
            "email": email,
            "password": hash_password(data.password),
            "role": data.role.value,
            "isActive": True,
            "isVerified": False,
            "createdAt": now,
            "updatedAt": now,
        }
        for field in ("phone", "department", "employeeId", "designation"):
            value = getattr(data, field)
            if value:
                doc[field] = value.upper() if field == "department" else value

        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise_duplicate(e)
        doc["_id"] = result.inserted_id
        logger.info("Registered user %s with role %s", email, doc["role"])
        return doc

    def authenticate(self, email: str, password: str) -> dict:
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.get("password", "")):
            raise AuthenticationError("Invalid email or password")
        if not user.get("isActive", True):
            raise AuthenticationError("Account is deactivated. Please contact administrator.")
        self.collection.update_one({"_id": user["_id"]}, {"$set": {"lastLogin": utcnow()}})
        return user

    def change_password(self, user_id: ObjectId, current_password: str, new_password: str) -> None:
        user = self.collection.find_one({"_id": user_id})
        if not user:
            raise NotFoundError("User not found")
        if not verify_password(current_password, user.get("password", "")):
            raise ValidationFailed("Current password is incorrect")
        self.collection.update_one(
            {"_id": user_id},
            {"$set": {
                "password": hash_password(new_password),
                # whole seconds, compared against the token iat
                "passwordChangedAt": utcnow().replace(microsecond=0),
                "updatedAt": utcnow(),
            }},
        )
        logger.info("Password changed for user %s", user_id)

    def list_by_department(self, department: str, page: int, limit: int) -> Dict[str, Any]:
        query = {"department": department.upper()}
        cursor = (
            self.collection.find(query, PUBLIC_PROJECTION)
            .sort([("firstName", ASCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        users = [public_user(user) for user in cursor]
        total = self.collection.count_documents(query)
        pages = math.ceil(total / limit) if limit else 1
        return {
            "count": len(users),
            "pagination": pagination_block(page, pages, total, "totalUsers"),
            "users": users,
        }

    def placement_staff_options(self) -> List[dict]:
        cursor = self.collection.find(
            {"role": {"$in": [role.value for role in PLACEMENT_ROLES]}, "isActive": True},
            {"firstName": 1, "lastName": 1, "email": 1, "role": 1, "department": 1},
        ).sort([("firstName", ASCENDING), ("lastName", ASCENDING)])
        return list(cursor)

    def get_placement_user(self, user_id: ObjectId) -> dict:
        """Resolve a user that may be assigned as a department's placement staff."""
        user = self.collection.find_one({"_id": user_id}, {"role": 1})
        if not user:
            raise InvalidReferenceError("Selected placement staff user not found")
        if user.get("role") not in {role.value for role in PLACEMENT_ROLES}:
            raise InvalidReferenceError("Selected user is not a placement staff member")
        return user

    def find_imported(self, key: str) -> Optional[Dict[str, Any]]:
        """Summary of the user created earlier under an import key, if any."""
        user = self.collection.find_one(
            {"importKey": key},
            {"email": 1, "firstName": 1, "lastName": 1, "studentId": 1, "employeeId": 1},
        )
        if not user:
            return None
        summary = {"id": str(user["_id"]), "email": user.get("email"), "importKey": key}
        if user.get("studentId"):
            summary["studentId"] = user["studentId"]
        return summary


# ============================================================
# ROSTER CREATORS
# One call per record; raise to fail that record only
# ============================================================

class StaffCreator:
    """Creates staff login accounts from validated roster records."""

    def __init__(self, created_by: ObjectId, users: Optional[UserService] = None):
        self.created_by = created_by
        self.users = users or UserService()

    def __call__(self, index: int, record: Dict[str, Any]) -> Dict[str, Any]:
        email = record["email"].strip().lower()
        employee_id = (record.get("employeeId") or "").strip()
        self.users.ensure_unique(email=email, employee_id=employee_id or None)

        temp_password = generate_temp_password("Staff")
        now = utcnow()
        doc = {
            "firstName": record["firstName"],
            "lastName": record["lastName"],
            "email": email,
            "password": hash_password(temp_password),
            "role": record["role"],
            "department": record["department"].upper(),
            "designation": record.get("designation") or "",
            "phone": record.get("phone") or "",
            "adminNotes": record.get("adminNotes") or "",
            "isActive": True,
            "isVerified": False,
            "createdBy": self.created_by,
            "createdAt": now,
            "updatedAt": now,
        }
        if employee_id:
            doc["employeeId"] = employee_id
        if record.get("importKey"):
            doc["importKey"] = record["importKey"]

        result = self.users.collection.insert_one(doc)
        logger.debug("Imported staff %s as %s", email, doc["role"])
        return {
            "id": str(result.inserted_id),
            "firstName": doc["firstName"],
            "lastName": doc["lastName"],
            "email": email,
            "role": doc["role"],
            "department": doc["department"],
            "employeeId": employee_id or None,
            "temporaryPassword": temp_password,
        }


class StudentCreator:
    """
    Creates a student login plus its students profile document.

    Student ids are `{YEAR}STU{NNN}`; the starting number is read once per
    batch and each record takes start + its index in the batch.
    """

    def __init__(self, created_by: ObjectId, department: str, users: Optional[UserService] = None):
        self.created_by = created_by
        self.department = department
        self.users = users or UserService()
        self.students: Collection = get_collection("students")
        self.prefix = f"{utcnow().year}STU"
        self.starting_number = self._next_number()

    def _next_number(self) -> int:
        # compare numeric suffixes; ids grow a digit past 999
        pattern = re.compile(rf"^{re.escape(self.prefix)}(\d+)$")
        cursor = self.users.collection.find(
            {"studentId": {"$regex": f"^{re.escape(self.prefix)}"}},
            {"studentId": 1, "_id": 0},
        )
        numbers = [int(m.group(1)) for m in (pattern.match(doc["studentId"]) for doc in cursor) if m]
        return max(numbers, default=0) + 1

    def student_id(self, index: int) -> str:
        return f"{self.prefix}{self.starting_number + index:03d}"

    def __call__(self, index: int, record: Dict[str, Any]) -> Dict[str, Any]:
        first_name = record["firstName"].strip()
        last_name = record["lastName"].strip()
        email = record["email"].strip().lower()
        self.users.ensure_unique(email=email)

        student_id = self.student_id(index)
        if self.users.collection.find_one({"studentId": student_id}, {"_id": 1}):
            raise DuplicateFieldError(
                "studentId", f"Student ID {student_id} already exists. Please try again."
            )

        temp_password = f"Student@{secrets.randbelow(9000) + 1000}"
        now = utcnow()
        user_doc = {
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": hash_password(temp_password),
            "role": Role.student.value,
            "studentId": student_id,
            "department": self.department,
            "isActive": True,
            "isVerified": False,
            "createdBy": self.created_by,
            "createdAt": now,
            "updatedAt": now,
        }
        if record.get("importKey"):
            user_doc["importKey"] = record["importKey"]
        user_id = self.users.collection.insert_one(user_doc).inserted_id

        try:
            student_doc_id = self.students.insert_one({
                "userId": user_id,
                "studentId": student_id,
                "registrationNumber": student_id,
                "personalInfo": {"fullName": f"{first_name} {last_name}"},
                "contact": {"email": email},
                "academic": {"department": self.department, "program": "Not Specified"},
                "placement": {"placementStatus": "Unplaced"},
                "createdAt": now,
                "updatedAt": now,
            }).inserted_id
        except Exception:
            self.users.collection.delete_one({"_id": user_id})
            raise

        self.users.collection.update_one({"_id": user_id}, {"$set": {"studentProfile": student_doc_id}})
        logger.debug("Imported student %s as %s", email, student_id)
        return {
            "id": str(user_id),
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "studentId": student_id,
            "defaultPassword": temp_password,
        }
