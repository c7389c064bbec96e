"""
Administrator Routes

Own profile (administrator-capable roles):
GET  /administrators/profile        - Get own profile
PUT  /administrators/profile        - Create or patch own profile
POST /administrators/profile-image  - Upload profile image (JPEG/PNG/WebP, 5MB)

Admin access level superAdmin or admin:
GET  /administrators                - List with filters/search/sort/pagination
GET  /administrators/{id}           - Get one

Admin access level superAdmin:
GET    /administrators/stats        - Status/role/department/access level counts
PUT    /administrators/{id}/status  - Set status
DELETE /administrators/{id}         - Delete profile and its stored image
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from pms.core.auth import require_admin_access, require_capability, require_super_admin
from pms.core.roles import Capability
from pms.schemas.schemas import AdministratorPatch, AdministratorStatusUpdate, MessageResponse
from pms.services.administrator_service import AdministratorService
from pms.services.storage_service import StorageService, get_storage_service
from pms.utils.file_upload import read_profile_image

router = APIRouter(prefix="/administrators", tags=["Administrators"])

own_profile = require_capability(Capability.manage_own_admin_profile)


# ============================================================
# OWN PROFILE
# ============================================================

@router.get("/profile")
async def get_own_profile(user: dict = Depends(own_profile)):
    return {"success": True, "data": AdministratorService().get_profile(user["_id"])}


@router.put("/profile")
async def upsert_own_profile(body: AdministratorPatch, user: dict = Depends(own_profile)):
    """
    Create the caller's profile on first save, patch it afterwards.

    Only supplied fields change; name and contact merge one level deep.
    """
    profile = AdministratorService().upsert_profile(user["_id"], body)
    return {"success": True, "message": "Profile saved successfully", "data": profile}


@router.post("/profile-image")
async def upload_profile_image(
    profileImage: UploadFile = File(...),
    user: dict = Depends(own_profile),
    storage: StorageService = Depends(get_storage_service),
):
    content, filename, content_type = await read_profile_image(profileImage)
    url = AdministratorService().set_profile_image(user["_id"], content, filename, content_type, storage)
    return {
        "success": True,
        "message": "Profile image uploaded successfully",
        "data": {"profilePhotoUrl": url},
    }


# ============================================================
# ADMINISTRATION
# ============================================================

@router.get("")
async def list_administrators(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    department: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
    accessLevel: Optional[str] = None,
    sortBy: str = "createdAt",
    sortOrder: str = "desc",
    user: dict = Depends(require_admin_access),
):
    data = AdministratorService().list(
        page, limit,
        search=search,
        department=department,
        role=role,
        status=status,
        access_level=accessLevel,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    return {"success": True, "data": data}


@router.get("/stats")
async def administrator_stats(user: dict = Depends(require_super_admin)):
    return {"success": True, "data": AdministratorService().stats()}


@router.get("/{administrator_id}")
async def get_administrator(administrator_id: str, user: dict = Depends(require_admin_access)):
    return {"success": True, "data": AdministratorService().get(administrator_id)}


@router.put("/{administrator_id}/status")
async def update_administrator_status(
    administrator_id: str,
    body: AdministratorStatusUpdate,
    user: dict = Depends(require_super_admin),
):
    administrator = AdministratorService().update_status(administrator_id, body.status)
    return {
        "success": True,
        "message": f"Administrator status updated to {body.status.value}",
        "data": administrator,
    }


@router.delete("/{administrator_id}", response_model=MessageResponse)
async def delete_administrator(
    administrator_id: str,
    user: dict = Depends(require_super_admin),
    storage: StorageService = Depends(get_storage_service),
):
    AdministratorService().delete(administrator_id, storage)
    return MessageResponse(message="Administrator deleted successfully")
