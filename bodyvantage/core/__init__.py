"""Core configuration and shared constants."""

from bodyvantage.core.config import Settings, get_settings
from bodyvantage.core.constants import (
    DEFAULT_SPECIALISATION,
    ELLIPSIS,
    EMPTY_SUCCESS_PAYLOAD,
    SPECIALISATION_SLOTS,
)

__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_SPECIALISATION",
    "ELLIPSIS",
    "EMPTY_SUCCESS_PAYLOAD",
    "SPECIALISATION_SLOTS",
]
