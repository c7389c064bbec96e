"""
User Routes

GET /users/department/{department} - Users of one department (HODs and placement staff: own department only)
"""

from fastapi import APIRouter, Depends, Query

from pms.core.auth import check_department_access, require_capability
from pms.core.exceptions import ValidationFailed
from pms.core.roles import Capability
from pms.services.department_service import DepartmentService
from pms.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/department/{department}")
async def users_by_department(
    department: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(require_capability(Capability.view_department_users)),
):
    if not DepartmentService().code_exists(department):
        raise ValidationFailed("Invalid department specified")
    check_department_access(user, department)
    return {"success": True, **UserService().list_by_department(department, page, limit)}
