"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from pms.api.routes.auth_routes import router as auth_router
from pms.api.routes.course_category_routes import router as course_category_router
from pms.api.routes.department_routes import router as department_router
from pms.api.routes.administrator_routes import router as administrator_router
from pms.api.routes.staff_profile_routes import hod_router, placement_director_router, placement_staff_router
from pms.api.routes.roster_routes import router as roster_router
from pms.api.routes.user_routes import router as user_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(course_category_router)
api_router.include_router(department_router)
api_router.include_router(administrator_router)
api_router.include_router(hod_router)
api_router.include_router(placement_staff_router)
api_router.include_router(placement_director_router)
api_router.include_router(roster_router)
api_router.include_router(user_router)
