"""
Department Routes (admin, placement director; delete is admin only)

GET    /departments                          - List (all=true lifts pagination)
GET    /departments/placement-staff-options  - Users assignable as placement staff
GET    /departments/{id}                     - Get one
POST   /departments                          - Create
PUT    /departments/{id}                     - Partial update
DELETE /departments/{id}                     - Delete
PATCH  /departments/{id}/toggle-status       - Flip isActive
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pms.core.auth import require_capability
from pms.core.roles import Capability
from pms.schemas.schemas import DepartmentCreate, DepartmentUpdate, MessageResponse
from pms.services.department_service import DepartmentService

router = APIRouter(prefix="/departments", tags=["Departments"])

can_manage = require_capability(Capability.manage_departments)
can_delete = require_capability(Capability.delete_departments)


@router.get("")
async def list_departments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    all: bool = False,
    user: dict = Depends(can_manage),
):
    data = DepartmentService().list(page, limit, search, isActive, fetch_all=all)
    return {"success": True, "data": data}


@router.get("/placement-staff-options")
async def placement_staff_options(user: dict = Depends(can_manage)):
    return {"success": True, "data": DepartmentService().placement_staff_options()}


@router.get("/{department_id}")
async def get_department(department_id: str, user: dict = Depends(can_manage)):
    return {"success": True, "data": DepartmentService().get(department_id)}


@router.post("", status_code=201)
async def create_department(body: DepartmentCreate, user: dict = Depends(can_manage)):
    department = DepartmentService().create(body, user["_id"])
    return {"success": True, "message": "Department created successfully", "data": department}


@router.put("/{department_id}")
async def update_department(department_id: str, body: DepartmentUpdate, user: dict = Depends(can_manage)):
    department = DepartmentService().update(department_id, body, user["_id"])
    return {"success": True, "message": "Department updated successfully", "data": department}


@router.delete("/{department_id}", response_model=MessageResponse)
async def delete_department(department_id: str, user: dict = Depends(can_delete)):
    DepartmentService().delete(department_id)
    return MessageResponse(message="Department deleted successfully")


@router.patch("/{department_id}/toggle-status")
async def toggle_department(department_id: str, user: dict = Depends(can_manage)):
    department = DepartmentService().toggle_status(department_id, user["_id"])
    state = "activated" if department["isActive"] else "deactivated"
    return {"success": True, "message": f"Department {state} successfully", "data": department}
