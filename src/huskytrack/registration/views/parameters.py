"""Parameter binding utilities."""
from typing import Any, Optional, TypeVar

from blacksheep import FromHeader, Request
from blacksheep.server.bindings import BodyBinder, BoundValue, QueryBinder
from cattrs import BaseValidationError
from huskytrack.registration.serialization import get_converter
from huskytrack.registration.serialization.json import json_loads
from huskytrack.registration.views.responses import BodyValidationError
from loguru import logger

T = TypeVar("T")


class AttrsBody(BoundValue[T]):
    """Parse an attrs class from the request body."""

    pass


class AttrsBinder(BodyBinder):
    """Binder for :class:`AttrsBody`."""

    handle = AttrsBody

    @property
    def content_type(self) -> str:
        return "application/json"

    def matches_content_type(self, request: Request) -> bool:
        return request.declares_json()

    async def read_data(self, request: Request) -> Any:
        return await request.json(loads=json_loads)

    def parse_value(self, data: dict) -> Any:
        try:
            return get_converter().structure(data, self.expected_type)
        except BaseValidationError as e:
            logger.opt(exception=e).debug("Invalid request")
            raise BodyValidationError(e)


class ParticipantID(FromHeader[str]):
    """The acting participant, as set by the authenticating gateway."""

    name = "X-Participant-ID"


class Page(BoundValue[int]):
    """The 0-based page number."""

    pass


class PerPage(BoundValue[int]):
    """The number of results per page."""

    pass


class PageBinder(QueryBinder):
    """Binds the ``page`` parameter, defaulting to the first page."""

    handle = Page
    name_alias = "page"

    def __init__(self, expected_type=int, param_name="page", implicit=True):
        super().__init__(expected_type, param_name, implicit)

    async def get_value(self, request: Request) -> Optional[Any]:
        value = await super().get_value(request)
        return max(value, 0) if value is not None else 0


class PerPageBinder(QueryBinder):
    """Binds the ``per_page`` parameter, clamped to ``1..limit``."""

    handle = PerPage
    name_alias = "per_page"
    limit = 50

    def __init__(self, expected_type=int, param_name="per_page", implicit=True):
        super().__init__(expected_type, param_name, implicit)

    async def get_value(self, request: Request) -> Optional[Any]:
        value = await super().get_value(request)
        if value is None:
            return self.limit
        return min(max(value, 1), self.limit)
