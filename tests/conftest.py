"""
tests/conftest.py

Shared fixtures for the meeting import tests.
"""

from __future__ import annotations

import pytest

from naws_import.domain.meeting_import import Format, ServiceBody
from tests.factories import FakeServerClient, SleepRecorder


@pytest.fixture()
def area_one() -> ServiceBody:
    return ServiceBody(id=10, name="Area One", world_id="AR1", type="AS")


@pytest.fixture()
def server(area_one: ServiceBody) -> FakeServerClient:
    return FakeServerClient(
        service_bodies=[area_one],
        formats=[
            Format(id=1, world_id="CLOSED", key_string="C"),
            Format(id=2, world_id="OPEN", key_string="O"),
            Format(id=3, world_id="WCHR", key_string="WC"),
        ],
    )


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
