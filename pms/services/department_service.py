"""
Department Service

Collection: departments
References: courseCategory -> course_categories (required),
            placementStaff -> users with a placement role (optional)
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from pms.core.exceptions import DuplicateFieldError, InvalidReferenceError, NotFoundError
from pms.db.mongodb import get_collection
from pms.schemas.schemas import DepartmentCreate, DepartmentUpdate
from pms.services.mongo_service import (
    USER_SUMMARY_FIELDS,
    build_search_filter,
    duplicate_field,
    exact_name_filter,
    paginate,
    pagination_block,
    parse_object_id,
    parse_reference_id,
    populate,
    serialize_doc,
    serialize_docs,
    utcnow,
)
from pms.services.user_service import UserService

logger = logging.getLogger(__name__)


def _duplicate(field: str) -> DuplicateFieldError:
    return DuplicateFieldError(field, f"Department with this {field} already exists")


class DepartmentService:

    def __init__(self):
        self.collection: Collection = get_collection("departments")
        self.categories: Collection = get_collection("course_categories")
        self.users = UserService()

    def _present(self, doc: dict) -> dict:
        populate(doc, "courseCategory", self.categories, ("name", "description"))
        populate(doc, "placementStaff", self.users.collection, USER_SUMMARY_FIELDS + ("role",))
        for field in ("createdBy", "updatedBy"):
            populate(doc, field, self.users.collection, USER_SUMMARY_FIELDS)
        return serialize_doc(doc)

    def _get(self, department_id: str) -> dict:
        oid = parse_object_id(department_id, "Department")
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFoundError("Department not found")
        return doc

    def _ensure_unique(self, field: str, value: str, exclude_id: Optional[ObjectId] = None) -> None:
        query = exact_name_filter(field, value)
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if self.collection.find_one(query, {"_id": 1}):
            raise _duplicate(field)

    def _course_category(self, value: str) -> ObjectId:
        oid = parse_reference_id(value, "course category")
        if not self.categories.find_one({"_id": oid}, {"_id": 1}):
            raise InvalidReferenceError("Selected course category not found")
        return oid

    def _placement_staff(self, value: str) -> ObjectId:
        oid = parse_reference_id(value, "placement staff")
        self.users.get_placement_user(oid)
        return oid

    # ---------- reads ----------

    def list(
        self,
        page: int,
        limit: int,
        search: Optional[str],
        is_active: Optional[bool],
        fetch_all: bool = False,
    ) -> Dict[str, Any]:
        query = build_search_filter(search, ("name", "code", "description"))
        if is_active is not None:
            query["isActive"] = is_active
        docs, total, pages = paginate(
            self.collection, query, page, limit, [("createdAt", -1)], fetch_all=fetch_all
        )
        return {
            "departments": [self._present(doc) for doc in docs],
            "pagination": pagination_block(page, pages, total, "totalDepartments"),
        }

    def get(self, department_id: str) -> dict:
        return self._present(self._get(department_id))

    def placement_staff_options(self) -> List[dict]:
        return serialize_docs(self.users.placement_staff_options())

    def known_codes(self) -> List[str]:
        """Codes of active departments, used to validate roster rows."""
        return [doc["code"] for doc in self.collection.find({"isActive": True}, {"code": 1})]

    def name_aliases(self) -> Dict[str, str]:
        """Lower-cased full department name -> code."""
        return {
            doc["name"].lower(): doc["code"]
            for doc in self.collection.find({"isActive": True}, {"name": 1, "code": 1})
        }

    def code_exists(self, code: str) -> bool:
        return self.collection.find_one({"code": code.upper()}, {"_id": 1}) is not None

    # ---------- writes ----------

    def create(self, data: DepartmentCreate, user_id: ObjectId) -> dict:
        code = data.code.upper()
        self._ensure_unique("name", data.name)
        self._ensure_unique("code", code)
        category_id = self._course_category(data.courseCategory)
        placement_staff = self._placement_staff(data.placementStaff) if data.placementStaff else None

        now = utcnow()
        doc = {
            "name": data.name,
            "code": code,
            "description": data.description.strip(),
            "courseCategory": category_id,
            "placementStaff": placement_staff,
            "isActive": data.isActive,
            "createdBy": user_id,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError as e:
            raise _duplicate(duplicate_field(e)) from e
        logger.info("Department %s (%s) created", data.name, code)
        return self._present(doc)

    def update(self, department_id: str, data: DepartmentUpdate, user_id: ObjectId) -> dict:
        doc = self._get(department_id)
        sent = data.model_fields_set
        values: Dict[str, Any] = {}

        if data.name is not None:
            name = data.name.strip()
            if name.lower() != doc.get("name", "").lower():
                self._ensure_unique("name", name, exclude_id=doc["_id"])
            values["name"] = name

        if data.code is not None:
            code = data.code.strip().upper()
            if code != doc.get("code"):
                self._ensure_unique("code", code, exclude_id=doc["_id"])
            values["code"] = code

        if data.description is not None:
            values["description"] = data.description.strip()

        if data.courseCategory:
            values["courseCategory"] = self._course_category(data.courseCategory)

        if "placementStaff" in sent:
            if data.placementStaff:
                values["placementStaff"] = self._placement_staff(data.placementStaff)
            else:
                values["placementStaff"] = None

        if data.isActive is not None:
            values["isActive"] = data.isActive

        values.update({"updatedBy": user_id, "updatedAt": utcnow()})
        try:
            self.collection.update_one({"_id": doc["_id"]}, {"$set": values})
        except DuplicateKeyError as e:
            raise _duplicate(duplicate_field(e)) from e
        logger.info("Department %s updated", doc["_id"])
        return self._present(self.collection.find_one({"_id": doc["_id"]}))

    def delete(self, department_id: str) -> None:
        doc = self._get(department_id)
        self.collection.delete_one({"_id": doc["_id"]})
        logger.info("Department %s (%s) deleted", doc.get("name"), doc.get("code"))

    def toggle_status(self, department_id: str, user_id: ObjectId) -> dict:
        doc = self._get(department_id)
        self.collection.update_one(
            {"_id": doc["_id"]},
            {"$set": {
                "isActive": not doc.get("isActive", True),
                "updatedBy": user_id,
                "updatedAt": utcnow(),
            }},
        )
        return self._present(self.collection.find_one({"_id": doc["_id"]}))
