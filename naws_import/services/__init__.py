"""
naws_import/services package marker.
"""

from naws_import.services.cancellation import CancellationToken
from naws_import.services.import_job_registry import (
    ImportJobRegistry,
    ImportJobStatus,
    get_import_job_registry,
)
from naws_import.services.meeting_import_service import (
    MeetingImportService,
    get_meeting_import_service,
)
from naws_import.services.service_body_reconciler import ServiceBodyReconciler

__all__ = [
    "CancellationToken",
    "ImportJobRegistry",
    "ImportJobStatus",
    "MeetingImportService",
    "ServiceBodyReconciler",
    "get_import_job_registry",
    "get_meeting_import_service",
]
