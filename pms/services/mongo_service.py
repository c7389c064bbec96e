"""
MongoDB Service - helpers shared by every collection service.

- Serializing documents for JSON responses (ObjectId -> str)
- Parsing ids coming from paths and request bodies
- Building search/filter/sort/pagination queries the way list endpoints expect
- Resolving references ("populate") for display
- Translating duplicate-key errors into DuplicateFieldError
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from pms.core.exceptions import DuplicateFieldError, InvalidReferenceError, NotFoundError

USER_SUMMARY_FIELDS = ("firstName", "lastName", "email")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict (adds `id` next to `_id`)."""
    if doc is None:
        return None
    out = _serialize_value(doc)
    if "_id" in out:
        out["id"] = out["_id"]
    return out


def serialize_docs(docs: Iterable[dict]) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


# ============================================================
# IDS
# ============================================================

def parse_object_id(value: Any, entity: str = "Resource") -> ObjectId:
    """Parse an id taken from a URL path. Anything unparseable is simply not found."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundError(f"{entity} not found")


def parse_reference_id(value: Any, label: str) -> ObjectId:
    """Parse an id taken from a request body."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise InvalidReferenceError(f"Invalid {label} id")


# ============================================================
# LIST QUERIES
# ============================================================

def build_search_filter(search: Optional[str], fields: Iterable[str]) -> dict:
    """Case-insensitive substring match of `search` across `fields`."""
    if not search:
        return {}
    pattern = re.escape(search.strip())
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def exact_name_filter(field: str, value: str) -> dict:
    """Case-insensitive whole-value match, used for uniqueness checks."""
    return {field: {"$regex": f"^{re.escape(value.strip())}$", "$options": "i"}}


def build_sort(sort_by: str, sort_order: str, allowed: Iterable[str], default: str = "createdAt") -> List[Tuple[str, int]]:
    key = sort_by if sort_by in set(allowed) else default
    direction = ASCENDING if sort_order == "asc" else DESCENDING
    return [(key, direction)]


def paginate(
    collection: Collection,
    query: dict,
    page: int,
    limit: int,
    sort: List[Tuple[str, int]],
    fetch_all: bool = False,
) -> Tuple[List[dict], int, int]:
    """
    Run a paged find.

    Returns (documents, total matching, total pages). With fetch_all the
    whole result is returned as a single page.
    """
    cursor = collection.find(query).sort(sort)
    if not fetch_all:
        cursor = cursor.skip((page - 1) * limit).limit(limit)
    docs = list(cursor)
    total = collection.count_documents(query)
    if fetch_all:
        pages = 1
    else:
        pages = math.ceil(total / limit) if limit else 1
    return docs, total, pages


# ============================================================
# REFERENCES
# ============================================================

def populate(doc: dict, field: str, collection: Collection, fields: Iterable[str]) -> dict:
    """Replace doc[field] (an ObjectId) with a small projection of the referenced document."""
    ref = doc.get(field)
    if isinstance(ref, ObjectId):
        projection = {name: 1 for name in fields}
        found = collection.find_one({"_id": ref}, projection)
        if found is not None:
            doc[field] = found
    return doc


def duplicate_field(error: DuplicateKeyError) -> str:
    """Name of the unique field a DuplicateKeyError was raised for."""
    details = error.details or {}
    key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
    if key_pattern:
        return next(iter(key_pattern))
    match = re.search(r"index: (\w+?)_\d", str(error))
    return match.group(1) if match else "value"


def raise_duplicate(error: DuplicateKeyError, message_template: str = "{field} already exists. Please use a different value.") -> None:
    field = duplicate_field(error)
    raise DuplicateFieldError(field, message_template.format(field=field)) from error


def pagination_block(page: int, pages: int, total: int, total_key: str) -> Dict[str, Any]:
    return {
        "currentPage": page,
        "totalPages": pages,
        total_key: total,
        "hasNextPage": page < pages,
        "hasPrevPage": page > 1,
    }
