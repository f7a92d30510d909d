"""Converter for working with user input."""
from builtins import issubclass
from enum import Enum

from cattrs import Converter
from cattrs.gen import make_dict_unstructure_fn
from huskytrack.registration.serialization.common import CustomConverter
from huskytrack.registration.serialization.common import (
    configure_converter as configure_common,
)
from huskytrack.registration.views.responses import ExceptionDetails

converter = CustomConverter()
configure_common(converter)


def structure_without_cast(v, t):
    """Structure a type without attempting to cast the value."""
    if isinstance(v, t):
        return v
    elif (
        issubclass(t, (int, float))
        and isinstance(v, (int, float))
        and not isinstance(v, bool)
        or issubclass(t, Enum)
        and isinstance(v, (int, str))
    ):
        return t(v)
    else:
        raise TypeError(f"Invalid type: {v!r}")


def configure_converter(c: Converter):
    for t in (float, int, bool, str):
        c.register_structure_hook(t, structure_without_cast)

    # Exception details
    c.register_unstructure_hook_factory(
        lambda cls: isinstance(cls, type) and issubclass(cls, ExceptionDetails),
        lambda cls: make_dict_unstructure_fn(
            ExceptionDetails,
            c,
            _cattrs_omit_if_default=True,
        ),
    )


configure_converter(converter)
