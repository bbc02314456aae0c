"""
naws_import/schemas package marker.
"""

from naws_import.schemas.meeting_import import (
    FilePreviewResponse,
    FileValidationResponse,
    ImportConstraintsResponse,
    ImportJobAcceptedResponse,
    ImportJobStatusResponse,
    ImportOutcomeResponse,
    ImportProgressResponse,
)

__all__ = [
    "FilePreviewResponse",
    "FileValidationResponse",
    "ImportConstraintsResponse",
    "ImportJobAcceptedResponse",
    "ImportJobStatusResponse",
    "ImportOutcomeResponse",
    "ImportProgressResponse",
]
