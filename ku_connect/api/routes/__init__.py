"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from ku_connect.api.routes.auth_routes import router as auth_router
from ku_connect.api.routes.job_routes import router as job_router
from ku_connect.api.routes.saved_routes import router as saved_router
from ku_connect.api.routes.preference_routes import router as preference_router
from ku_connect.api.routes.profile_routes import router as profile_router
from ku_connect.api.routes.announcement_routes import router as announcement_router
from ku_connect.api.routes.notification_routes import router as notification_router
from ku_connect.api.routes.admin_routes import router as admin_router
from ku_connect.api.routes.degree_routes import router as degree_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(job_router)
api_router.include_router(saved_router)
api_router.include_router(preference_router)
api_router.include_router(profile_router)
api_router.include_router(announcement_router)
api_router.include_router(notification_router)
api_router.include_router(admin_router)
api_router.include_router(degree_router)
