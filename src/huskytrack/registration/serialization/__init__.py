"""Serialization package."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from huskytrack.registration.serialization.common import CustomConverter


def get_config_converter() -> CustomConverter:
    """Get a :class:`Converter` for configuration files.

    Unlike :func:`get_converter`, values are cast to the declared types.
    """
    from huskytrack.registration.serialization.common import converter

    return converter


def get_converter() -> CustomConverter:
    """Get a :class:`Converter` suitable for validating external data."""
    from huskytrack.registration.serialization.data import converter

    return converter
