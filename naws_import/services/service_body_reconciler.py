"""
naws_import/services/service_body_reconciler.py

Detects service bodies referenced by a spreadsheet that are missing from the
server and creates them before any meeting is submitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Iterable

from naws_import.connectors.base import MeetingServerClient, describe_error
from naws_import.domain.errors import IdentityResolutionError
from naws_import.domain.meeting_import import (
    LookupTables,
    NormalizedRecord,
    ReconciliationResult,
    RequiredServiceBody,
    ServiceBody,
    ServiceBodyCreateRequest,
)

logger = logging.getLogger(__name__)

AREA_WORLD_ID_PREFIX = "AR"
AREA_SERVICE_BODY_TYPE = "AS"
REGION_SERVICE_BODY_TYPE = "RS"

ServiceBodyProgressCallback = Callable[[int, int, str], None]


def determine_service_body_type(world_id: str) -> str:
    """
    Return ``AS`` (area) for codes starting with ``AR``, otherwise ``RS`` (region).
    """

    if world_id.strip().upper().startswith(AREA_WORLD_ID_PREFIX):
        return AREA_SERVICE_BODY_TYPE
    return REGION_SERVICE_BODY_TYPE


class ServiceBodyReconciler:
    """
    Plans and performs service body creation for one import run.
    """

    def __init__(self, *, client: MeetingServerClient) -> None:
        self._client = client

    @staticmethod
    def extract_required_references(records: Iterable[NormalizedRecord]) -> list[RequiredServiceBody]:
        """
        Collect distinct area/region codes with their parent name.

        Codes are uppercased; the first name seen for a code wins. Deleted
        rows and rows missing either the code or the name are ignored.
        """

        names_by_world_id: dict[str, str] = {}
        for record in records:
            if record.is_deleted:
                continue
            world_id = record.arearegion.strip()
            name = record.parentname.strip()
            if not world_id or not name:
                continue
            names_by_world_id.setdefault(world_id.upper(), name)

        return [
            RequiredServiceBody(world_id=world_id, name=name)
            for world_id, name in names_by_world_id.items()
        ]

    @staticmethod
    def find_missing(
        required: Iterable[RequiredServiceBody],
        lookup: LookupTables,
    ) -> list[RequiredServiceBody]:
        return [item for item in required if lookup.service_body_id(item.world_id) is None]

    async def create_missing(
        self,
        missing: list[RequiredServiceBody],
        lookup: LookupTables,
        *,
        admin_user_id: int | None = None,
        on_progress: ServiceBodyProgressCallback | None = None,
    ) -> ReconciliationResult:
        """
        Create each missing service body in order, reusing any that appeared meanwhile.

        Raises IdentityResolutionError when no acting user can be resolved;
        a failure for one entry is recorded and the remaining entries continue.
        """

        if not missing:
            return ReconciliationResult(created_count=0, lookup=lookup)

        if admin_user_id is None:
            admin_user_id = await self._resolve_admin_user_id()

        created_count = 0
        errors: list[str] = []
        resolved: list[ServiceBody] = []
        total = len(missing)

        for ordinal, item in enumerate(missing, start=1):
            if on_progress is not None:
                on_progress(ordinal, total, item.name)

            try:
                service_body, is_new = await self._create_or_reuse(item=item, admin_user_id=admin_user_id)
            except Exception as exc:  # noqa: BLE001
                message = describe_error(exc)
                logger.warning(
                    "Service body creation failed world_id=%s name=%r error=%s",
                    item.world_id,
                    item.name,
                    message,
                )
                errors.append(f"Failed to create service body for {item.name} ({item.world_id}): {message}")
                continue

            resolved.append(service_body)
            if is_new:
                created_count += 1

        return ReconciliationResult(
            created_count=created_count,
            lookup=lookup.with_service_bodies(resolved),
            errors=errors,
        )

    async def _resolve_admin_user_id(self) -> int:
        try:
            return await self._client.get_current_identity()
        except Exception as exc:
            raise IdentityResolutionError(
                f"Failed to get current user for service body admin: {describe_error(exc)}"
            ) from exc

    async def _create_or_reuse(
        self,
        *,
        item: RequiredServiceBody,
        admin_user_id: int,
    ) -> tuple[ServiceBody, bool]:
        existing = self._find_existing(await self._client.list_service_bodies(), item.world_id)
        if existing is not None:
            logger.info(
                "Service body already exists world_id=%s id=%s",
                item.world_id,
                existing.id,
            )
            return existing, False

        request = ServiceBodyCreateRequest(
            name=item.name,
            description=item.name,
            world_id=item.world_id,
            type=determine_service_body_type(item.world_id),
            admin_user_id=admin_user_id,
        )
        service_body = await self._client.create_service_body(request)
        if not service_body.world_id:
            service_body = replace(service_body, world_id=item.world_id)
        logger.info(
            "Service body created world_id=%s id=%s type=%s admin_user_id=%s",
            item.world_id,
            service_body.id,
            request.type,
            admin_user_id,
        )
        return service_body, True

    @staticmethod
    def _find_existing(service_bodies: Iterable[ServiceBody], world_id: str) -> ServiceBody | None:
        target = world_id.strip().upper()
        for service_body in service_bodies:
            if service_body.world_id and service_body.world_id.strip().upper() == target:
                return service_body
        return None
