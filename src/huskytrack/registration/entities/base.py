"""Base entity objects."""
import uuid
from datetime import datetime
from typing import Annotated
from uuid import UUID

from sqlalchemy import UUID as SqlUUID
from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, mapped_column

DEFAULT_MAX_STRING_LENGTH = 300
"""Default maximum length of a string."""

DEFAULT_MAX_ENUM_LENGTH = 16
"""Default length of an enum string value."""

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=naming_convention)

PKUUID = Annotated[
    UUID,
    mapped_column(
        SqlUUID(as_uuid=True), primary_key=True, default=lambda: uuid.uuid4()
    ),
]
"""UUID primary key type."""


class Base(DeclarativeBase):
    """Entity base class."""

    metadata = metadata
    type_annotation_map = {
        UUID: SqlUUID(as_uuid=True),
        datetime: DateTime(timezone=True),
        str: String(DEFAULT_MAX_STRING_LENGTH),
    }


def import_entities():
    """Import all modules that contain entities."""
    from huskytrack.registration.entities import event_capacity  # noqa
    from huskytrack.registration.entities import registration  # noqa
