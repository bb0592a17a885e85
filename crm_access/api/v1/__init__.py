"""API v1."""

from crm_access.api.v1.router import api_router

__all__ = ["api_router"]
