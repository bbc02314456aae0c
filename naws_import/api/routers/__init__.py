"""
naws_import/api/routers package marker.
"""

from naws_import.api.routers.meeting_import import router as meeting_import_router

__all__ = [
    "meeting_import_router",
]
