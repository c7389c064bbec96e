"""
Course Category Service

Collection: course_categories
Names are unique regardless of case.
"""

import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from pms.core.exceptions import DuplicateFieldError, NotFoundError
from pms.db.mongodb import get_collection
from pms.schemas.schemas import CourseCategoryCreate, CourseCategoryUpdate
from pms.services.mongo_service import (
    USER_SUMMARY_FIELDS,
    build_search_filter,
    exact_name_filter,
    paginate,
    pagination_block,
    parse_object_id,
    populate,
    serialize_doc,
    utcnow,
)
from pms.utils.patch import patch_values

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "Course category with this name already exists"


class CourseCategoryService:

    def __init__(self):
        self.collection: Collection = get_collection("course_categories")
        self.users: Collection = get_collection("users")

    def _present(self, doc: dict) -> dict:
        for field in ("createdBy", "updatedBy"):
            populate(doc, field, self.users, USER_SUMMARY_FIELDS)
        return serialize_doc(doc)

    def _get(self, category_id: str) -> dict:
        oid = parse_object_id(category_id, "Course category")
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFoundError("Course category not found")
        return doc

    def _ensure_unique_name(self, name: str, exclude_id: Optional[ObjectId] = None) -> None:
        query = exact_name_filter("name", name)
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if self.collection.find_one(query, {"_id": 1}):
            raise DuplicateFieldError("name", DUPLICATE_NAME)

    def list(self, page: int, limit: int, search: Optional[str], is_active: Optional[bool]) -> Dict[str, Any]:
        query = build_search_filter(search, ("name", "description"))
        if is_active is not None:
            query["isActive"] = is_active
        docs, total, pages = paginate(self.collection, query, page, limit, [("createdAt", -1)])
        return {
            "courseCategories": [self._present(doc) for doc in docs],
            "pagination": pagination_block(page, pages, total, "totalCategories"),
        }

    def get(self, category_id: str) -> dict:
        return self._present(self._get(category_id))

    def create(self, data: CourseCategoryCreate, user_id: ObjectId) -> dict:
        self._ensure_unique_name(data.name)
        now = utcnow()
        doc = {
            "name": data.name,
            "description": data.description.strip(),
            "isActive": data.isActive,
            "createdBy": user_id,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.collection.insert_one(doc).inserted_id
        except DuplicateKeyError as e:
            raise DuplicateFieldError("name", DUPLICATE_NAME) from e
        logger.info("Course category %r created", data.name)
        return self._present(doc)

    def update(self, category_id: str, data: CourseCategoryUpdate, user_id: ObjectId) -> dict:
        doc = self._get(category_id)
        values = patch_values(data)
        if "name" in values and values["name"].lower() != doc.get("name", "").lower():
            self._ensure_unique_name(values["name"], exclude_id=doc["_id"])
        if "description" in values:
            values["description"] = values["description"].strip()
        values.update({"updatedBy": user_id, "updatedAt": utcnow()})
        try:
            self.collection.update_one({"_id": doc["_id"]}, {"$set": values})
        except DuplicateKeyError as e:
            raise DuplicateFieldError("name", DUPLICATE_NAME) from e
        return self._present(self.collection.find_one({"_id": doc["_id"]}))

    def delete(self, category_id: str) -> None:
        doc = self._get(category_id)
        self.collection.delete_one({"_id": doc["_id"]})
        logger.info("Course category %s deleted", doc["_id"])

    def toggle_status(self, category_id: str, user_id: ObjectId) -> dict:
        doc = self._get(category_id)
        self.collection.update_one(
            {"_id": doc["_id"]},
            {"$set": {
                "isActive": not doc.get("isActive", True),
                "updatedBy": user_id,
                "updatedAt": utcnow(),
            }},
        )
        return self._present(self.collection.find_one({"_id": doc["_id"]}))
