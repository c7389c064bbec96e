"""
Course Category Routes (admin, placement director)

GET    /courseCategories                    - List with search/isActive filter/pagination
GET    /courseCategories/{id}               - Get one
POST   /courseCategories                    - Create
PUT    /courseCategories/{id}               - Partial update
DELETE /courseCategories/{id}               - Delete
PATCH  /courseCategories/{id}/toggle-status - Flip isActive
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pms.core.auth import require_capability
from pms.core.roles import Capability
from pms.schemas.schemas import CourseCategoryCreate, CourseCategoryUpdate, MessageResponse
from pms.services.course_category_service import CourseCategoryService

router = APIRouter(prefix="/courseCategories", tags=["Course Categories"])

can_manage = require_capability(Capability.manage_course_categories)


@router.get("")
async def list_course_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    user: dict = Depends(can_manage),
):
    data = CourseCategoryService().list(page, limit, search, isActive)
    return {"success": True, "data": data}


@router.get("/{category_id}")
async def get_course_category(category_id: str, user: dict = Depends(can_manage)):
    return {"success": True, "data": CourseCategoryService().get(category_id)}


@router.post("", status_code=201)
async def create_course_category(body: CourseCategoryCreate, user: dict = Depends(can_manage)):
    category = CourseCategoryService().create(body, user["_id"])
    return {"success": True, "message": "Course category created successfully", "data": category}


@router.put("/{category_id}")
async def update_course_category(
    category_id: str,
    body: CourseCategoryUpdate,
    user: dict = Depends(can_manage),
):
    category = CourseCategoryService().update(category_id, body, user["_id"])
    return {"success": True, "message": "Course category updated successfully", "data": category}


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_course_category(category_id: str, user: dict = Depends(can_manage)):
    CourseCategoryService().delete(category_id)
    return MessageResponse(message="Course category deleted successfully")


@router.patch("/{category_id}/toggle-status")
async def toggle_course_category(category_id: str, user: dict = Depends(can_manage)):
    category = CourseCategoryService().toggle_status(category_id, user["_id"])
    state = "activated" if category["isActive"] else "deactivated"
    return {"success": True, "message": f"Course category {state} successfully", "data": category}
