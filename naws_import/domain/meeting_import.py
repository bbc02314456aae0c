"""
naws_import/domain/meeting_import.py

Domain models shared by the meeting import flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, Iterable, Iterator, Mapping, TypeVar

T = TypeVar("T")

NAWS_COLUMNS: tuple[str, ...] = (
    "delete",
    "parentname",
    "committee",
    "committeename",
    "arearegion",
    "day",
    "time",
    "place",
    "address",
    "city",
    "locborough",
    "state",
    "zip",
    "country",
    "directions",
    "closed",
    "wheelchr",
    "format1",
    "format2",
    "format3",
    "format4",
    "format5",
    "longitude",
    "latitude",
    "room",
    "phonemeetingnumber",
    "virtualmeetinglink",
    "virtualmeetinginfo",
    "timezone",
)

REQUIRED_COLUMNS: tuple[str, ...] = ("committeename", "arearegion", "day", "time")

FORMAT_COLUMNS: tuple[str, ...] = ("closed", "format1", "format2", "format3", "format4", "format5")

WHEELCHAIR_FORMAT_WORLD_ID = "WCHR"

DELETE_FLAG = "D"


class VenueType:
    IN_PERSON = 1
    VIRTUAL = 2
    HYBRID = 3


class ImportPhase:
    PARSING = "parsing"
    SERVER_CONFIG = "server-config"
    MAPPING = "mapping"
    SERVICE_BODIES = "service-bodies"
    DUPLICATE_CHECK = "duplicate-check"
    CREATING = "creating"
    COMPLETED = "completed"
    ERROR = "error"


def is_delete_flag(value: str | None) -> bool:
    """
    Return True when a NAWS delete cell marks the meeting as deleted.
    """

    return (value or "").strip().upper() == DELETE_FLAG


@dataclass(frozen=True)
class NormalizedRecord:
    """
    One spreadsheet row with every recognized NAWS column present.
    """

    row_number: int
    delete: str = ""
    parentname: str = ""
    committee: str = ""
    committeename: str = ""
    arearegion: str = ""
    day: str = ""
    time: str = ""
    place: str = ""
    address: str = ""
    city: str = ""
    locborough: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    directions: str = ""
    closed: str = ""
    wheelchr: str = ""
    format1: str = ""
    format2: str = ""
    format3: str = ""
    format4: str = ""
    format5: str = ""
    longitude: str = ""
    latitude: str = ""
    room: str = ""
    phonemeetingnumber: str = ""
    virtualmeetinglink: str = ""
    virtualmeetinginfo: str = ""
    timezone: str = ""

    @property
    def is_deleted(self) -> bool:
        return is_delete_flag(self.delete)

    @property
    def is_complete(self) -> bool:
        return all(self.value(column).strip() for column in REQUIRED_COLUMNS)

    def value(self, column: str) -> str:
        return getattr(self, column)

    def to_dict(self) -> dict[str, Any]:
        values: dict[str, Any] = {"row_number": self.row_number}
        values.update({column: self.value(column) for column in NAWS_COLUMNS})
        return values


@dataclass(frozen=True)
class ProcessedSpreadsheet:
    """
    Validator output for one decoded spreadsheet.
    """

    records: list[NormalizedRecord]
    total_rows: int
    valid_rows: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceBody:
    id: int
    name: str
    world_id: str | None = None
    type: str | None = None
    admin_user_id: int | None = None
    parent_id: int | None = None


@dataclass(frozen=True)
class Format:
    id: int
    world_id: str | None = None
    key_string: str | None = None


@dataclass(frozen=True)
class LookupTables:
    """
    Read-only world id lookups for one phase of an import.

    Service body codes map to a single id (last seen wins); format codes map
    to every format id sharing the code.
    """

    service_body_ids: Mapping[str, int]
    format_ids: Mapping[str, tuple[int, ...]]

    @classmethod
    def build(
        cls,
        *,
        service_bodies: Iterable[ServiceBody],
        formats: Iterable[Format],
    ) -> LookupTables:
        service_body_ids: dict[str, int] = {}
        for service_body in service_bodies:
            if service_body.world_id and service_body.world_id.strip():
                service_body_ids[service_body.world_id.strip().upper()] = service_body.id

        grouped: dict[str, list[int]] = {}
        for format_ in formats:
            if format_.world_id and format_.world_id.strip():
                grouped.setdefault(format_.world_id.strip().upper(), []).append(format_.id)

        return cls(
            service_body_ids=MappingProxyType(service_body_ids),
            format_ids=MappingProxyType({key: tuple(ids) for key, ids in grouped.items()}),
        )

    def service_body_id(self, world_id: str) -> int | None:
        return self.service_body_ids.get(world_id.strip().upper())

    def format_ids_for(self, world_id: str) -> tuple[int, ...] | None:
        return self.format_ids.get(world_id.strip().upper())

    def with_service_bodies(self, service_bodies: Iterable[ServiceBody]) -> LookupTables:
        """
        Return a new snapshot with additional service bodies merged in.
        """

        merged = dict(self.service_body_ids)
        for service_body in service_bodies:
            if service_body.world_id and service_body.world_id.strip():
                merged[service_body.world_id.strip().upper()] = service_body.id
        return LookupTables(
            service_body_ids=MappingProxyType(merged),
            format_ids=self.format_ids,
        )


@dataclass(frozen=True)
class MappingOptions:
    """
    Defaults applied when a NAWS row leaves a meeting field unspecified.
    """

    default_duration: str = "01:00"
    default_latitude: float = 0.0
    default_longitude: float = 0.0
    default_published: bool = True


@dataclass(frozen=True)
class MeetingCreateRequest:
    """
    Submission-ready BMLT meeting.
    """

    service_body_id: int
    format_ids: tuple[int, ...]
    venue_type: int
    day: int
    start_time: str
    duration: str
    latitude: float
    longitude: float
    published: bool
    name: str
    world_id: str = ""
    time_zone: str = ""
    temporarily_virtual: bool = False
    email: str = ""
    location_text: str = ""
    location_info: str = ""
    location_street: str = ""
    location_neighborhood: str = ""
    location_city_subsection: str = ""
    location_municipality: str = ""
    location_sub_province: str = ""
    location_province: str = ""
    location_postal_code_1: str = ""
    location_nation: str = ""
    phone_meeting_number: str = ""
    virtual_meeting_link: str = ""
    virtual_meeting_additional_info: str = ""
    contact_name_1: str = ""
    contact_name_2: str = ""
    contact_phone_1: str = ""
    contact_phone_2: str = ""
    contact_email_1: str = ""
    contact_email_2: str = ""
    bus_lines: str = ""
    train_lines: str = ""
    comments: str = ""

    def to_payload(self) -> dict[str, Any]:
        """
        Serialize into the BMLT admin API meeting body.
        """

        return {
            "serviceBodyId": self.service_body_id,
            "formatIds": list(self.format_ids),
            "venueType": self.venue_type,
            "temporarilyVirtual": self.temporarily_virtual,
            "day": self.day,
            "startTime": self.start_time,
            "duration": self.duration,
            "timeZone": self.time_zone,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "published": self.published,
            "email": self.email,
            "worldId": self.world_id,
            "name": self.name,
            "location_text": self.location_text,
            "location_info": self.location_info,
            "location_street": self.location_street,
            "location_neighborhood": self.location_neighborhood,
            "location_city_subsection": self.location_city_subsection,
            "location_municipality": self.location_municipality,
            "location_sub_province": self.location_sub_province,
            "location_province": self.location_province,
            "location_postal_code_1": self.location_postal_code_1,
            "location_nation": self.location_nation,
            "phone_meeting_number": self.phone_meeting_number,
            "virtual_meeting_link": self.virtual_meeting_link,
            "virtual_meeting_additional_info": self.virtual_meeting_additional_info,
            "contact_name_1": self.contact_name_1,
            "contact_name_2": self.contact_name_2,
            "contact_phone_1": self.contact_phone_1,
            "contact_phone_2": self.contact_phone_2,
            "contact_email_1": self.contact_email_1,
            "contact_email_2": self.contact_email_2,
            "bus_lines": self.bus_lines,
            "train_lines": self.train_lines,
            "comments": self.comments,
        }


@dataclass(frozen=True)
class MappingResult:
    meeting: MeetingCreateRequest | None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FormatStats:
    found: list[str]
    missing: list[str]


@dataclass(frozen=True)
class ServiceBodyCreateRequest:
    name: str
    world_id: str
    type: str
    admin_user_id: int
    parent_id: int | None = None
    description: str = ""
    email: str = ""
    helpline: str = ""
    url: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "parentId": self.parent_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "adminUserId": self.admin_user_id,
            "assignedUserIds": [self.admin_user_id],
            "worldId": self.world_id,
            "email": self.email,
            "helpline": self.helpline,
            "url": self.url,
        }


@dataclass(frozen=True)
class RequiredServiceBody:
    world_id: str
    name: str


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Outcome of creating missing service bodies.

    ``lookup`` is a new snapshot containing every created or reused body.
    """

    created_count: int
    lookup: LookupTables
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class CappedList(Generic[T]):
    """
    Append-only list that stops storing items once ``capacity`` is reached.
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = max(0, capacity)
        self.dropped = 0
        self._items: list[T] = []

    def append(self, item: T) -> bool:
        if len(self._items) >= self.capacity:
            self.dropped += 1
            return False
        self._items.append(item)
        return True

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.append(item)

    def to_list(self) -> list[T]:
        return list(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]


@dataclass
class ImportOutcome:
    """
    End-of-run import summary.

    Counters are exact. ``created_meetings`` and ``errors`` keep only the
    first entries up to their capacity.
    """

    max_stored_meetings: int = 10
    max_stored_errors: int = 50
    success: bool = False
    cancelled: bool = False
    total_processed: int = 0
    successful_imports: int = 0
    failed_imports: int = 0
    skipped_imports: int = 0
    service_bodies_created: int = 0
    duration_seconds: float = 0.0
    warnings: list[str] = field(default_factory=list)
    errors: CappedList[str] = field(init=False)
    created_meetings: CappedList[dict[str, Any]] = field(init=False)

    def __post_init__(self) -> None:
        self.errors = CappedList(self.max_stored_errors)
        self.created_meetings = CappedList(self.max_stored_meetings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "cancelled": self.cancelled,
            "total_processed": self.total_processed,
            "successful_imports": self.successful_imports,
            "failed_imports": self.failed_imports,
            "skipped_imports": self.skipped_imports,
            "service_bodies_created": self.service_bodies_created,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors.to_list(),
            "warnings": list(self.warnings),
            "created_meetings": self.created_meetings.to_list(),
        }


@dataclass(frozen=True)
class ImportProgress:
    phase: str
    current_step: int
    total_steps: int
    message: str
    percentage: float


@dataclass(frozen=True)
class FilePreview:
    total_rows: int
    valid_rows: int
    sample_rows: list[NormalizedRecord] = field(default_factory=list)


@dataclass(frozen=True)
class FileValidationResult:
    """
    Pre-check result for a file, produced without any server writes.
    """

    valid: bool
    errors: list[str]
    warnings: list[str]
    preview: FilePreview
