from fastapi import APIRouter

from app.modules.activity import router as activity_router
from app.modules.auth import router as auth_router
from app.modules.enrollment import router as enrollment_router
from app.modules.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(auth_router, tags=["Authentication"])

api_router.include_router(users_router, tags=["Users"])

api_router.include_router(enrollment_router, prefix="/enrollment", tags=["Enrollment"])

api_router.include_router(activity_router, prefix="/activity-logs", tags=["Activity Logs"])
