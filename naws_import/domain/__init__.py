"""
naws_import/domain package marker.
"""

from naws_import.domain.errors import (
    IdentityResolutionError,
    ImportCancelledError,
    MeetingImportError,
    ServerConfigurationError,
    SpreadsheetReadError,
    SpreadsheetValidationError,
)
from naws_import.domain.meeting_import import (
    CappedList,
    FileValidationResult,
    Format,
    ImportOutcome,
    ImportPhase,
    ImportProgress,
    LookupTables,
    MappingOptions,
    MeetingCreateRequest,
    NormalizedRecord,
    ProcessedSpreadsheet,
    ServiceBody,
    VenueType,
)

__all__ = [
    "CappedList",
    "FileValidationResult",
    "Format",
    "IdentityResolutionError",
    "ImportCancelledError",
    "ImportOutcome",
    "ImportPhase",
    "ImportProgress",
    "LookupTables",
    "MappingOptions",
    "MeetingCreateRequest",
    "MeetingImportError",
    "NormalizedRecord",
    "ProcessedSpreadsheet",
    "ServerConfigurationError",
    "ServiceBody",
    "SpreadsheetReadError",
    "SpreadsheetValidationError",
    "VenueType",
]
