"""
naws_import/connectors package marker.
"""

from naws_import.connectors.base import (
    MeetingServerClient,
    ServerRequestError,
    ServerResponseError,
    describe_error,
)
from naws_import.connectors.bmlt_client import BMLTServerClient

__all__ = [
    "BMLTServerClient",
    "MeetingServerClient",
    "ServerRequestError",
    "ServerResponseError",
    "describe_error",
]
