"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. Routes get
their services from crm_access.api.v1.dependencies.
"""

from fastapi import APIRouter

from crm_access.api.v1.endpoints import auth, health, users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
