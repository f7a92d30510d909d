"""Common converters."""
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Tuple, Type, TypeVar, Union, get_args, get_origin
from uuid import UUID

from cattrs import Converter
from huskytrack.registration.serialization.json import json_dumps, json_loads

T = TypeVar("T")


class CustomConverter(Converter):
    """Converter that uses orjson."""

    def dumps(self, obj: object, unstructure_as=None) -> bytes:
        unstructured = self.unstructure(obj, unstructure_as)
        return json_dumps(unstructured)

    def loads(self, value: Union[str, bytes], cl: Type[T]) -> T:
        obj = json_loads(value)
        return self.structure(obj, cl)


def structure_datetime(v: object) -> datetime:
    if isinstance(v, datetime):
        dt = v
    elif isinstance(v, (float, int)):
        dt = datetime.fromtimestamp(v, tz=timezone.utc)
    elif isinstance(v, str):
        dt = datetime.fromisoformat(v)
    else:
        raise TypeError(f"Invalid datetime: {v!r}")

    if dt.tzinfo is None:
        dt = dt.astimezone()

    return dt


def structure_uuid(v: object) -> UUID:
    if isinstance(v, UUID):
        return v
    elif isinstance(v, str):
        return UUID(v)
    else:
        raise TypeError(f"Invalid UUID: {v!r}")


converter = CustomConverter()

structure_funcs = {
    lambda cls: cls is UUID: lambda v, t: structure_uuid(v),
    lambda cls: cls is datetime: lambda v, t: structure_datetime(v),
}


def structure_sequence(c: Converter, v: object, t: object) -> tuple:
    """Structure ``Sequence[T]`` as ``tuple[T, ...]``."""
    args = get_args(t)
    return c.structure(v, Tuple[args[0], ...])


def configure_converter(c: Converter):
    for test_func, func in structure_funcs.items():
        c.register_structure_hook_func(test_func, func)

    c.register_structure_hook_func(
        lambda cls: get_origin(cls) is Sequence,
        lambda v, t: structure_sequence(c, v, t),
    )


configure_converter(converter)
