"""
app/api/routers package marker.
"""

from app.api.routers.registry_sync_router import router as registry_sync_router

__all__ = [
    "registry_sync_router",
]
