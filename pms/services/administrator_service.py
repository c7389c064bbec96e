"""
Administrator Service - administrator profiles.

Collection: administrators (one profile per user, keyed by userId)

Profiles are created or patched through the owner's PUT /profile. Patches
overwrite supplied top-level keys and merge one level of nested objects
(name, contact); email and employeeId stay unique.
"""

import copy
import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from pms.core.exceptions import DuplicateFieldError, NotFoundError, StorageError, ValidationFailed
from pms.db.mongodb import get_collection
from pms.schemas.schemas import AdministratorPatch, AdministratorStatus
from pms.services.mongo_service import (
    USER_SUMMARY_FIELDS,
    build_search_filter,
    build_sort,
    paginate,
    parse_object_id,
    populate,
    raise_duplicate,
    serialize_doc,
    utcnow,
)
from pms.services.storage_service import StorageService
from pms.utils.patch import merge_patch, patch_values

logger = logging.getLogger(__name__)

# Field checked on first save -> message when it is missing
REQUIRED_ON_CREATE = (
    ("employeeId", "Employee ID is required for new profile creation"),
    ("name", "First name and last name are required for new profile creation"),
    ("email", "Email is required for new profile creation"),
    ("mobileNumber", "Mobile number is required for new profile creation"),
    ("role", "Role is required for new profile creation"),
    ("designation", "Designation is required for new profile creation"),
    ("accessLevel", "Access level is required for new profile creation"),
    ("officeLocation", "Office location is required for new profile creation"),
    ("dateOfJoining", "Date of joining is required for new profile creation"),
)

ROLES_WITH_DEPARTMENT = {"director", "staff", "hod"}

SEARCH_FIELDS = ("employeeId", "name.firstName", "name.lastName", "email", "designation", "department")
SORT_FIELDS = ("createdAt", "updatedAt", "employeeId", "name.firstName", "name.lastName", "email",
               "department", "role", "status", "accessLevel", "dateOfJoining")

DEFAULT_CONTACT = {
    "alternatePhone": "",
    "emergencyContact": "",
    "address": {"street": "", "city": "", "state": "", "pincode": "", "country": "India"},
}


def _check_required(values: Dict[str, Any]) -> None:
    for field, message in REQUIRED_ON_CREATE:
        value = values.get(field)
        if field == "name":
            if not value or not value.get("firstName") or not value.get("lastName"):
                raise ValidationFailed(message)
        elif value in (None, ""):
            raise ValidationFailed(message)


def _check_department(doc: Dict[str, Any]) -> None:
    if doc.get("role") in ROLES_WITH_DEPARTMENT and not doc.get("department"):
        raise ValidationFailed(
            "Validation failed",
            errors=[{"field": "department", "message": "Department is required for this role"}],
        )


class AdministratorService:

    def __init__(self):
        self.collection: Collection = get_collection("administrators")
        self.users: Collection = get_collection("users")

    def _present(self, doc: dict) -> dict:
        populate(doc, "userId", self.users, USER_SUMMARY_FIELDS + ("isActive",))
        populate(doc, "createdBy", self.users, USER_SUMMARY_FIELDS)
        return serialize_doc(doc)

    def _get(self, administrator_id: str) -> dict:
        oid = parse_object_id(administrator_id, "Administrator")
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFoundError("Administrator not found")
        return doc

    def _ensure_unique(self, values: Dict[str, Any], exclude_id: Optional[ObjectId] = None) -> None:
        for field in ("email", "employeeId"):
            if field not in values:
                continue
            query: Dict[str, Any] = {field: values[field]}
            if exclude_id is not None:
                query["_id"] = {"$ne": exclude_id}
            if self.collection.find_one(query, {"_id": 1}):
                raise DuplicateFieldError(field)

    # ---------- own profile ----------

    def get_profile(self, user_id: ObjectId) -> dict:
        doc = self.collection.find_one({"userId": user_id})
        if not doc:
            raise NotFoundError("Administrator profile not found")
        return self._present(doc)

    def upsert_profile(self, user_id: ObjectId, patch: AdministratorPatch) -> dict:
        values = patch_values(patch)
        if "email" in values:
            values["email"] = values["email"].lower()

        now = utcnow()
        existing = self.collection.find_one({"userId": user_id})
        if existing:
            changed = {k: v for k, v in values.items() if k in ("email", "employeeId") and existing.get(k) != v}
            self._ensure_unique(changed, exclude_id=existing["_id"])
            doc = merge_patch(existing, values)
            _check_department(doc)
            doc["profileLastUpdated"] = now
            doc["updatedAt"] = now
            try:
                self.collection.replace_one({"_id": existing["_id"]}, doc)
            except DuplicateKeyError as e:
                raise_duplicate(e)
            logger.info("Administrator profile %s updated", existing["_id"])
        else:
            _check_required(values)
            self._ensure_unique(values)
            doc = merge_patch({
                "status": AdministratorStatus.active.value,
                "authProvider": "local",
                "profilePhotoUrl": "",
                "adminNotes": "",
                "contact": copy.deepcopy(DEFAULT_CONTACT),
                "registrationDate": now,
            }, values)
            _check_department(doc)
            doc.update({
                "userId": user_id,
                "createdBy": user_id,
                "profileLastUpdated": now,
                "createdAt": now,
                "updatedAt": now,
            })
            try:
                doc["_id"] = self.collection.insert_one(doc).inserted_id
            except DuplicateKeyError as e:
                raise_duplicate(e)
            logger.info("Administrator profile created for user %s", user_id)

        return self._present(self.collection.find_one({"_id": doc["_id"]}))

    def set_profile_image(self, user_id: ObjectId, content: bytes, filename: str,
                          content_type: str, storage: StorageService) -> str:
        doc = self.collection.find_one({"userId": user_id}, {"profilePhotoUrl": 1})
        if not doc:
            raise NotFoundError("Administrator profile not found")

        if doc.get("profilePhotoUrl"):
            storage.delete_by_url(doc["profilePhotoUrl"])

        result = storage.upload_profile_image(content, filename, str(user_id), content_type)
        if not result["success"]:
            raise StorageError(result.get("error") or "Failed to upload profile image")

        self.collection.update_one(
            {"_id": doc["_id"]},
            {"$set": {"profilePhotoUrl": result["url"], "profileLastUpdated": utcnow()}},
        )
        return result["url"]

    # ---------- administration ----------

    def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        department: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        access_level: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        query = build_search_filter(search, SEARCH_FIELDS)
        for field, value in (("department", department), ("role", role),
                             ("status", status), ("accessLevel", access_level)):
            if value:
                query[field] = value
        sort = build_sort(sort_by, sort_order, SORT_FIELDS)
        docs, total, pages = paginate(self.collection, query, page, limit, sort)
        return {
            "administrators": [self._present(doc) for doc in docs],
            "pagination": {"current": page, "pages": pages, "total": total, "limit": limit},
        }

    def get(self, administrator_id: str) -> dict:
        return self._present(self._get(administrator_id))

    def update_status(self, administrator_id: str, status: AdministratorStatus) -> dict:
        doc = self._get(administrator_id)
        self.collection.update_one(
            {"_id": doc["_id"]},
            {"$set": {"status": status.value, "updatedAt": utcnow()}},
        )
        logger.info("Administrator %s status set to %s", doc["_id"], status.value)
        return self._present(self.collection.find_one({"_id": doc["_id"]}))

    def stats(self) -> Dict[str, Any]:
        def group_by(field: str) -> list:
            return list(self.collection.aggregate([
                {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
                {"$sort": {"count": -1}},
            ]))

        return {
            "total": self.collection.count_documents({}),
            "status": group_by("status"),
            "roles": group_by("role"),
            "departments": group_by("department"),
            "accessLevels": group_by("accessLevel"),
        }

    def delete(self, administrator_id: str, storage: StorageService) -> None:
        doc = self._get(administrator_id)
        if doc.get("profilePhotoUrl"):
            storage.delete_by_url(doc["profilePhotoUrl"])
        self.collection.delete_one({"_id": doc["_id"]})
        logger.info("Administrator profile %s deleted", doc["_id"])
