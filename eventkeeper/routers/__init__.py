# eventkeeper/routers/__init__.py
"""
API routers for v1 endpoints.
"""

from eventkeeper.routers.admin_retention import router as admin_retention_router
from eventkeeper.routers.retention import router as retention_router

__all__ = [
    "retention_router",
    "admin_retention_router",
]
