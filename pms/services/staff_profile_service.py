"""
Staff Profile Service - department HOD, placement staff and placement director profiles.

Collections: department_hod_profiles, placement_staff_profiles, placement_director_profiles

All kinds share the identity/employment shape of an administrator profile
and add their own fields. A profile is created from the user record the
first time its owner opens it. Every save recomputes profileCompletion:
70% weighted on required fields, 30% on optional ones; 90 or more counts
as complete.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from pms.core.exceptions import DuplicateFieldError, NotFoundError, StorageError, ValidationFailed
from pms.db.mongodb import get_collection
from pms.services.mongo_service import (
    build_sort,
    paginate,
    pagination_block,
    parse_object_id,
    populate,
    raise_duplicate,
    serialize_doc,
    utcnow,
)
from pms.services.storage_service import StorageService
from pms.utils.patch import merge_patch, patch_values

logger = logging.getLogger(__name__)

OWNER_FIELDS = ("email", "role", "isActive", "isVerified", "lastLogin")

DEFAULT_CONTACT = {
    "alternatePhone": "",
    "emergencyContact": "",
    "address": {"street": "", "city": "", "state": "", "pincode": "", "country": "India"},
}

COMMON_REQUIRED = (
    "employeeId", "name.firstName", "name.lastName", "email", "mobileNumber",
    "gender", "role", "department", "designation", "dateOfJoining",
)
COMMON_OPTIONAL = (
    "profilePhotoUrl", "contact.alternatePhone", "contact.emergencyContact",
    "contact.address.street", "contact.address.city", "contact.address.state",
    "contact.address.pincode", "adminNotes",
)

# Profile fields copied back onto the owner's user document after a save
USER_SYNC_FIELDS = ("mobileNumber", "gender", "profilePhotoUrl", "department", "designation")


def _lookup(doc: Dict[str, Any], dotted: str) -> Any:
    value: Any = doc
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _filled(value: Any) -> bool:
    if value is None or value == "":
        return False
    if isinstance(value, list) and not value:
        return False
    return True


def profile_completion(doc: Dict[str, Any], required: Tuple[str, ...], optional: Tuple[str, ...]) -> int:
    done_required = sum(1 for field in required if _filled(_lookup(doc, field)))
    done_optional = sum(1 for field in optional if _filled(_lookup(doc, field)))
    score = (done_required / len(required)) * 70 + (done_optional / len(optional)) * 30
    return round(score)


def _hod_defaults(user: dict) -> Dict[str, Any]:
    department = user.get("department") or "OTHER"
    return {
        "employeeId": user.get("employeeId") or "TBD",
        "name": {
            "firstName": user.get("firstName") or "Not Set",
            "lastName": user.get("lastName") or "Not Set",
        },
        "mobileNumber": user.get("phone") or "0000000000",
        "gender": user.get("gender") or "Other",
        "role": "hod",
        "department": department,
        "designation": user.get("designation") or "Head of Department",
        "departmentHeadOf": department,
        "officeRoomNo": "TBD",
        "yearsAsHOD": 0,
        "academicBackground": "To be updated",
        "numberOfFacultyManaged": 0,
        "subjectsTaught": [],
        "responsibilities": "To be updated",
        "meetingSlots": [],
        "calendarLink": "",
    }


def _placement_staff_defaults(user: dict) -> Dict[str, Any]:
    return {
        "employeeId": user.get("employeeId") or f"EMP{int(utcnow().timestamp() * 1000)}",
        "name": {
            "firstName": user.get("firstName") or "Staff",
            "lastName": user.get("lastName") or "Member",
        },
        "mobileNumber": user.get("phone") or "0000000000",
        "gender": user.get("gender") or "Other",
        "role": "staff" if user.get("role") == "placement_staff" else "other",
        "department": user.get("department") or "OTHER",
        "designation": user.get("designation") or "Staff Coordinator",
        "officeLocation": "Main Campus",
        "officialEmail": user.get("email"),
        "experienceYears": 0,
        "qualifications": [],
        "assignedStudents": [],
        "responsibilitiesText": "",
        "trainingProgramsHandled": [],
        "languagesSpoken": [],
        "availabilityTimeSlots": [],
    }



def _placement_director_defaults(user: dict) -> Dict[str, Any]:
    return {
        "employeeId": user.get("employeeId") or f"DIR{int(utcnow().timestamp() * 1000)}",
        "name": {
            "firstName": user.get("firstName") or "Not Set",
            "lastName": user.get("lastName") or "Not Set",
        },
        "mobileNumber": user.get("phone") or "0000000000",
        "gender": user.get("gender") or "Other",
        "role": "placement_director",
        "department": "Placement Cell",
        "designation": user.get("designation") or "Director",
        "officeRoomNo": "",
        "officialEmail": user.get("email"),
        "alternateMobile": "",
        "yearsOfExperience": 0,
        "responsibilitiesText": "",
        "communicationPreferences": ["email", "portal"],
    }

@dataclass(frozen=True)
class StaffProfileKind:
    collection: str
    label: str
    defaults: Callable[[dict], Dict[str, Any]]
    required: Tuple[str, ...]
    optional: Tuple[str, ...]
    filters: Tuple[str, ...]
    averages: Tuple[Tuple[str, str], ...]
    group_by: Tuple[Tuple[str, str], ...]


HOD_PROFILES = StaffProfileKind(
    collection="hod_profiles",
    label="Department HOD profile",
    defaults=_hod_defaults,
    required=COMMON_REQUIRED + (
        "departmentHeadOf", "officeRoomNo", "yearsAsHOD", "academicBackground",
        "numberOfFacultyManaged", "responsibilities",
    ),
    optional=COMMON_OPTIONAL + ("subjectsTaught", "meetingSlots", "calendarLink"),
    filters=("role", "department", "departmentHeadOf", "status"),
    averages=(("averageYearsAsHOD", "yearsAsHOD"), ("averageFacultyManaged", "numberOfFacultyManaged")),
    group_by=(
        ("profilesByDepartmentHeadOf", "departmentHeadOf"),
        ("profilesByDepartment", "department"),
        ("profilesByStatus", "status"),
    ),
)

PLACEMENT_STAFF_PROFILES = StaffProfileKind(
    collection="placement_staff_profiles",
    label="Placement staff profile",
    defaults=_placement_staff_defaults,
    required=COMMON_REQUIRED + ("officeLocation", "officialEmail", "experienceYears"),
    optional=COMMON_OPTIONAL + (
        "qualifications", "responsibilitiesText", "trainingProgramsHandled",
        "languagesSpoken", "availabilityTimeSlots",
    ),
    filters=("role", "department", "status"),
    averages=(("averageExperienceYears", "experienceYears"),),
    group_by=(("profilesByDepartment", "department"), ("profilesByStatus", "status")),
)

PLACEMENT_DIRECTOR_PROFILES = StaffProfileKind(
    collection="director_profiles",
    label="Placement director profile",
    defaults=_placement_director_defaults,
    required=COMMON_REQUIRED,
    optional=(
        "profilePhotoUrl", "officeRoomNo", "officialEmail", "alternateMobile",
        "yearsOfExperience", "responsibilitiesText", "contact.address.street",
        "contact.address.city", "contact.address.state", "contact.address.pincode",
    ),
    filters=("department", "status"),
    averages=(("averageYearsOfExperience", "yearsOfExperience"),),
    group_by=(("profilesByStatus", "status"),),
)


class StaffProfileService:

    def __init__(self, kind: StaffProfileKind):
        self.kind = kind
        self.collection: Collection = get_collection(kind.collection)
        self.users: Collection = get_collection("users")

    def _present(self, doc: dict) -> dict:
        populate(doc, "userId", self.users, OWNER_FIELDS)
        return serialize_doc(doc)

    def _with_completion(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        score = profile_completion(doc, self.kind.required, self.kind.optional)
        doc["profileCompletion"] = score
        doc["isProfileComplete"] = score >= 90
        return doc

    def _get(self, profile_id: str) -> dict:
        oid = parse_object_id(profile_id, self.kind.label)
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFoundError(f"{self.kind.label} not found")
        return doc

    def _sync_user(self, user_id: ObjectId, doc: Dict[str, Any]) -> None:
        values = {field: doc[field] for field in USER_SYNC_FIELDS if _filled(doc.get(field))}
        name = doc.get("name") or {}
        if name.get("firstName"):
            values["firstName"] = name["firstName"]
        if name.get("lastName"):
            values["lastName"] = name["lastName"]
        if values:
            values["updatedAt"] = utcnow()
            self.users.update_one({"_id": user_id}, {"$set": values})

    def _create_default(self, user_id: ObjectId) -> dict:
        user = self.users.find_one({"_id": user_id})
        if not user:
            raise NotFoundError("User not found")
        now = utcnow()
        doc = self.kind.defaults(user)
        doc.update({
            "userId": user_id,
            "email": user["email"],
            "profilePhotoUrl": user.get("profilePhotoUrl", ""),
            "status": "active",
            "authProvider": "local",
            "dateOfJoining": now,
            "registrationDate": now,
            "lastLoginAt": user.get("lastLogin"),
            "contact": copy.deepcopy(DEFAULT_CONTACT),
            "adminNotes": "",
            "createdBy": user_id,
            "createdAt": now,
            "updatedAt": now,
        })
        self._with_completion(doc)
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError:
            # created concurrently by another request of the same user
            return self.collection.find_one({"userId": user_id})
        logger.info("Created default %s for user %s", self.kind.label.lower(), user_id)
        return doc

    # ---------- own profile ----------

    def get_or_create_own(self, user_id: ObjectId) -> dict:
        doc = self.collection.find_one({"userId": user_id})
        if doc is None:
            doc = self._create_default(user_id)
        return self._present(doc)

    def update_own(self, user_id: ObjectId, patch: BaseModel) -> dict:
        values = patch_values(patch)
        if "email" in values:
            values["email"] = values["email"].lower()

        existing = self.collection.find_one({"userId": user_id})
        if existing is None:
            existing = self._create_default(user_id)

        for field in ("email", "employeeId"):
            if field in values and values[field] != existing.get(field):
                clash = self.collection.find_one(
                    {field: values[field], "_id": {"$ne": existing["_id"]}}, {"_id": 1}
                )
                if clash:
                    raise DuplicateFieldError(field)

        doc = self._with_completion(merge_patch(existing, values))
        doc["updatedAt"] = utcnow()
        try:
            self.collection.replace_one({"_id": existing["_id"]}, doc)
        except DuplicateKeyError as e:
            raise_duplicate(e)
        self._sync_user(user_id, doc)
        logger.info("%s %s updated", self.kind.label, existing["_id"])
        return self._present(self.collection.find_one({"_id": existing["_id"]}))

    def set_profile_image(self, user_id: ObjectId, content: bytes, filename: str,
                          content_type: str, storage: StorageService) -> str:
        result = storage.upload_profile_image(content, filename, str(user_id), content_type)
        if not result["success"]:
            raise StorageError(result.get("error") or "Failed to upload image to storage")

        url = result["url"]
        previous = self.collection.find_one({"userId": user_id}, {"profilePhotoUrl": 1})
        if previous is not None:
            self.collection.update_one(
                {"_id": previous["_id"]},
                {"$set": {"profilePhotoUrl": url, "updatedAt": utcnow()}},
            )
            if previous.get("profilePhotoUrl"):
                storage.delete_by_url(previous["profilePhotoUrl"])
        self.users.update_one({"_id": user_id}, {"$set": {"profilePhotoUrl": url}})
        return url

    # ---------- admin ----------

    def list(self, page: int, limit: int, filters: Dict[str, Optional[str]],
             sort_by: str = "createdAt", sort_order: str = "desc") -> Dict[str, Any]:
        query = {field: value for field, value in filters.items() if value and field in self.kind.filters}
        sort = build_sort(sort_by, sort_order, ("createdAt", "updatedAt", "employeeId", "department",
                                                "profileCompletion", "name.firstName", "name.lastName"))
        docs, total, pages = paginate(self.collection, query, page, limit, sort)
        return {
            "count": len(docs),
            "pagination": pagination_block(page, pages, total, "totalProfiles"),
            "profiles": [self._present(doc) for doc in docs],
        }

    def get(self, profile_id: str) -> dict:
        return self._present(self._get(profile_id))

    def delete(self, profile_id: str, acting_user_id: ObjectId) -> None:
        doc = self._get(profile_id)
        if doc.get("userId") == acting_user_id:
            raise ValidationFailed("You cannot delete your own profile")
        self.collection.delete_one({"_id": doc["_id"]})
        logger.info("%s %s deleted", self.kind.label, doc["_id"])

    def stats(self) -> Dict[str, Any]:
        def average(field: str) -> float:
            rows = list(self.collection.aggregate([
                {"$group": {"_id": None, "value": {"$avg": f"${field}"}}},
            ]))
            return (rows[0]["value"] or 0) if rows else 0

        def counts(field: str) -> Dict[str, int]:
            rows = self.collection.aggregate([{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}])
            return {str(row["_id"]): row["count"] for row in rows}

        since = utcnow() - timedelta(days=30)
        stats: Dict[str, Any] = {
            "totalProfiles": self.collection.count_documents({}),
            "completeProfiles": self.collection.count_documents({"isProfileComplete": True}),
            "incompleteProfiles": self.collection.count_documents({"isProfileComplete": False}),
            "recentProfiles": self.collection.count_documents({"createdAt": {"$gte": since}}),
            "averageCompletion": average("profileCompletion"),
        }
        for key, field in self.kind.averages:
            stats[key] = average(field)
        for key, field in self.kind.group_by:
            stats[key] = counts(field)
        return stats


def get_hod_profile_service() -> StaffProfileService:
    return StaffProfileService(HOD_PROFILES)


def get_placement_staff_profile_service() -> StaffProfileService:
    return StaffProfileService(PLACEMENT_STAFF_PROFILES)


def get_placement_director_profile_service() -> StaffProfileService:
    return StaffProfileService(PLACEMENT_DIRECTOR_PROFILES)
