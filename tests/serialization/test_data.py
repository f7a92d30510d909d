import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Optional

import pytest
from cattrs import BaseValidationError, Converter
from huskytrack.registration.models.registration import (
    Registration,
    RegistrationStatus,
)
from huskytrack.registration.views.registration import AttendanceRequest
from huskytrack.registration.views.responses import ExceptionDetails


@pytest.fixture
def converter():
    from huskytrack.registration.serialization.data import converter

    return converter


@pytest.mark.parametrize(
    "input_, type_, expected",
    [
        (1, int, 1),
        (1.5, float, 1.5),
        (True, bool, True),
        (1, float, 1.0),
        (1, Optional[int], 1),
        (
            ["a", "b", "c"],
            Sequence[str],
            ("a", "b", "c"),
        ),
        ({}, AttendanceRequest, AttendanceRequest(attended=True)),
        ({"attended": False}, AttendanceRequest, AttendanceRequest(attended=False)),
    ],
)
def test_structure(converter: Converter, input_, type_, expected):
    result = converter.structure(input_, type_)
    assert result == expected


@pytest.mark.parametrize(
    "input_, type_",
    [
        ("1", int),
        ("true", bool),
        (1, bool),
        (123, str),
        ({"attended": "yes"}, AttendanceRequest),
    ],
)
def test_structure_no_cast(converter: Converter, input_, type_):
    with pytest.raises((TypeError, BaseValidationError)):
        converter.structure(input_, type_)


def test_unstructure_registration(converter: Converter):
    id_ = uuid.UUID("534e683b-499e-4fd4-838a-f706083d4a7c")
    created = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    reg = Registration(
        id=id_,
        participant_id="p1",
        event_id="example",
        status=RegistrationStatus.waitlisted,
        version=1,
        date_created=created,
        waitlist_position=2,
    )

    data = converter.unstructure(reg)
    assert data["status"] == "waitlisted"
    assert data["waitlist_position"] == 2

    assert converter.loads(converter.dumps(reg), Registration) == reg


def test_unstructure_exception_details(converter: Converter):
    details = ExceptionDetails(exception="NotOwner", detail="Not yours")
    assert converter.unstructure(details) == {
        "exception": "NotOwner",
        "detail": "Not yours",
    }
