"""
naws_import/connectors/base.py

Server client interface and the structured errors its calls raise.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from naws_import.domain.meeting_import import (
    Format,
    MeetingCreateRequest,
    ServiceBody,
    ServiceBodyCreateRequest,
)


class ServerRequestError(RuntimeError):
    """
    Raised when a server call fails without a usable response.
    """


class ServerResponseError(ServerRequestError):
    """
    Raised when the server answers with an error status.

    Carries the optional machine message and per-field error map from the
    response body.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        server_message: str | None = None,
        field_errors: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message
        self.field_errors = dict(field_errors or {})

    @classmethod
    def from_body(cls, *, status_code: int, body: Any) -> ServerResponseError:
        server_message: str | None = None
        field_errors: dict[str, Any] = {}
        if isinstance(body, Mapping):
            raw_message = body.get("message")
            if isinstance(raw_message, str) and raw_message.strip():
                server_message = raw_message.strip()
            raw_errors = body.get("errors")
            if isinstance(raw_errors, Mapping):
                field_errors = dict(raw_errors)
        return cls(
            f"Server returned HTTP {status_code}",
            status_code=status_code,
            server_message=server_message,
            field_errors=field_errors,
        )

    def describe(self) -> str:
        """
        Flatten the response detail into one human-readable string.
        """

        if self.server_message:
            return self.server_message
        if self.field_errors:
            flattened: list[str] = []
            for messages in self.field_errors.values():
                if isinstance(messages, (list, tuple)):
                    flattened.extend(str(message) for message in messages)
                else:
                    flattened.append(str(messages))
            if flattened:
                return ", ".join(flattened)
        return str(self)


def describe_error(exc: BaseException) -> str:
    """
    Reduce any server call failure to a message suitable for a row error.
    """

    if isinstance(exc, ServerResponseError):
        return exc.describe()
    message = str(exc).strip()
    return message or "Unknown error"


class MeetingServerClient(Protocol):
    """
    Remote operations the import pipeline depends on.
    """

    async def list_service_bodies(self) -> list[ServiceBody]:
        ...

    async def list_formats(self) -> list[Format]:
        ...

    async def list_meetings(self) -> list[dict[str, Any]]:
        ...

    async def create_service_body(self, request: ServiceBodyCreateRequest) -> ServiceBody:
        ...

    async def create_meeting(self, request: MeetingCreateRequest) -> dict[str, Any]:
        ...

    async def get_current_identity(self) -> int:
        ...
