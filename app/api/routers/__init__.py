"""
app/api/routers package marker.
"""

from app.api.routers.conformance_router import router as conformance_router

__all__ = [
    "conformance_router",
]
