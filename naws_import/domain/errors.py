"""
naws_import/domain/errors.py

Structural failures that end an import run early.
"""

from __future__ import annotations


class MeetingImportError(RuntimeError):
    """
    Base class for failures that abort a whole import run.
    """


class SpreadsheetReadError(MeetingImportError):
    """
    Raised when the uploaded file cannot be decoded into a cell grid.
    """


class SpreadsheetValidationError(MeetingImportError):
    """
    Raised when the decoded grid fails structural validation.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Spreadsheet processing failed")
        self.errors = tuple(errors)


class ServerConfigurationError(MeetingImportError):
    """
    Raised when service bodies or formats cannot be read from the server.
    """


class IdentityResolutionError(MeetingImportError):
    """
    Raised when the acting user cannot be resolved for service body creation.
    """


class ImportCancelledError(MeetingImportError):
    """
    Raised at a cancellation checkpoint once cancellation was requested.
    """

    def __init__(self, message: str = "Import cancelled by user") -> None:
        super().__init__(message)
