"""Docs helpers."""
import functools
from collections.abc import Sequence
from typing import Optional, Type, cast

from attrs import fields
from blacksheep.server.openapi.common import ContentInfo, ResponseInfo
from blacksheep.server.openapi.v3 import FieldInfo, ObjectTypeHandler, OpenAPIHandler
from huskytrack.registration.serialization import get_converter
from openapidocs.v3 import Info

docs = OpenAPIHandler(
    info=Info(
        title="HuskyTrack Registration API",
        version="0.1",
    ),
)
"""Docs object."""


class AttrsTypeHandler(ObjectTypeHandler):
    """Schema generator for the attrs response models."""

    def handles_type(self, object_type) -> bool:
        return hasattr(object_type, "__attrs_attrs__")

    def get_type_fields(self, object_type) -> list[FieldInfo]:
        return [FieldInfo(field.name, field.type) for field in fields(object_type)]


docs.object_types_handlers.append(AttrsTypeHandler())


def serialize(type_: object):
    """Unstructure the handler's return value as ``type_``."""
    converter = get_converter()

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            response = await fn(*args, **kwargs)
            return converter.unstructure(response, unstructure_as=type_)

        return wrapper

    return decorator


def docs_helper(
    *,
    response_type: object,
    response_summary: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
):
    """Document a view handler and serialize its response as ``response_type``."""
    docs_decorator = docs(
        responses={
            200: ResponseInfo(
                description=response_summary or "The result",
                content=[ContentInfo(type=cast(Type, response_type))],
            )
        },
        tags=tags,
    )

    def decorator(fn):
        return docs_decorator(serialize(response_type)(fn))

    return decorator
