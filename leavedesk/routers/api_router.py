from fastapi import APIRouter
from leavedesk.routers import auth, leave, notifications, users

# Centralized API router hub
# Routers are aggregated here and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(leave.router, tags=["Leaves"])
api_router.include_router(notifications.router, tags=["Notifications"])
