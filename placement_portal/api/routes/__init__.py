"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from placement_portal.api.routes.auth_routes import router as auth_router
from placement_portal.api.routes.student_routes import router as student_router
from placement_portal.api.routes.job_routes import router as job_router
from placement_portal.api.routes.application_routes import router as application_router
from placement_portal.api.routes.notification_routes import router as notification_router
from placement_portal.api.routes.resume_routes import router as resume_router
from placement_portal.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(student_router)
api_router.include_router(job_router)
api_router.include_router(application_router)
api_router.include_router(notification_router)
api_router.include_router(resume_router)
api_router.include_router(admin_router)
