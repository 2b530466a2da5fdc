from fastapi import APIRouter

from app.api.v1.endpoints import health, location, permissions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(location.router, prefix="/location", tags=["location"])
api_router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
