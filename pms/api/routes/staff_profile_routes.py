"""
Staff Profile Routes - department HOD, placement staff and placement director profiles.

Mounted at /department-hod-profiles, /placement-staff-profiles and
/placement-director-profiles (own routes for placement directors only):

GET    /profile              - Get own profile (created on first access)
PUT    /profile              - Patch own profile
POST   /upload-profile-image - Upload own profile image
GET    /stats                - Completion and distribution stats (admin)
GET    /                     - List with filters/pagination (admin)
GET    /{id}                 - Get one (admin)
DELETE /{id}                 - Delete (admin, never one's own)
"""

from typing import Callable, Optional, Type

from fastapi import APIRouter, Depends, File, Query, UploadFile

from pms.core.auth import get_current_user, require_capability
from pms.core.roles import Capability
from pms.schemas.schemas import (
    HODProfilePatch,
    MessageResponse,
    PlacementDirectorProfilePatch,
    PlacementStaffProfilePatch,
    ProfilePatchBase,
)
from pms.services.staff_profile_service import (
    StaffProfileService,
    get_hod_profile_service,
    get_placement_director_profile_service,
    get_placement_staff_profile_service,
)
from pms.services.storage_service import StorageService, get_storage_service
from pms.utils.file_upload import read_profile_image

can_manage = require_capability(Capability.manage_staff_profiles)


def build_router(
    prefix: str,
    tag: str,
    patch_model: Type[ProfilePatchBase],
    get_service: Callable[[], StaffProfileService],
    own_access: Callable[..., dict] = get_current_user,
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("/profile")
    async def get_own_profile(
        user: dict = Depends(own_access),
        service: StaffProfileService = Depends(get_service),
    ):
        return {"success": True, "data": service.get_or_create_own(user["_id"])}

    @router.put("/profile")
    async def update_own_profile(
        body: patch_model,
        user: dict = Depends(own_access),
        service: StaffProfileService = Depends(get_service),
    ):
        profile = service.update_own(user["_id"], body)
        return {"success": True, "message": "Profile updated successfully", "data": profile}

    @router.post("/upload-profile-image")
    async def upload_profile_image(
        profileImage: UploadFile = File(...),
        user: dict = Depends(own_access),
        service: StaffProfileService = Depends(get_service),
        storage: StorageService = Depends(get_storage_service),
    ):
        content, filename, content_type = await read_profile_image(profileImage)
        url = service.set_profile_image(user["_id"], content, filename, content_type, storage)
        return {
            "success": True,
            "message": "Profile image uploaded successfully",
            "data": {"profilePhotoUrl": url},
        }

    @router.get("/stats")
    async def profile_stats(
        user: dict = Depends(can_manage),
        service: StaffProfileService = Depends(get_service),
    ):
        return {"success": True, "data": service.stats()}

    @router.get("")
    async def list_profiles(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        role: Optional[str] = None,
        department: Optional[str] = None,
        departmentHeadOf: Optional[str] = None,
        status: Optional[str] = None,
        sortBy: str = "createdAt",
        sortOrder: str = "desc",
        user: dict = Depends(can_manage),
        service: StaffProfileService = Depends(get_service),
    ):
        filters = {
            "role": role,
            "department": department,
            "departmentHeadOf": departmentHeadOf,
            "status": status,
        }
        data = service.list(page, limit, filters, sort_by=sortBy, sort_order=sortOrder)
        return {"success": True, **data}

    @router.get("/{profile_id}")
    async def get_profile(
        profile_id: str,
        user: dict = Depends(can_manage),
        service: StaffProfileService = Depends(get_service),
    ):
        return {"success": True, "data": service.get(profile_id)}

    @router.delete("/{profile_id}", response_model=MessageResponse)
    async def delete_profile(
        profile_id: str,
        user: dict = Depends(can_manage),
        service: StaffProfileService = Depends(get_service),
    ):
        service.delete(profile_id, user["_id"])
        return MessageResponse(message="Profile deleted successfully")

    return router


hod_router = build_router(
    "/department-hod-profiles", "Department HOD Profiles",
    HODProfilePatch, get_hod_profile_service,
)
placement_staff_router = build_router(
    "/placement-staff-profiles", "Placement Staff Profiles",
    PlacementStaffProfilePatch, get_placement_staff_profile_service,
)
placement_director_router = build_router(
    "/placement-director-profiles", "Placement Director Profiles",
    PlacementDirectorProfilePatch, get_placement_director_profile_service,
    own_access=require_capability(Capability.manage_own_director_profile),
)
