"""
Constants for messaging.

Import example:
    from messaging.constants import MESSAGE_CONFIG
"""

from typing import Final


class MESSAGE_CONFIG:
    """Message validation and listing limits."""

    MAX_CONTENT_LENGTH: Final[int] = 1000
    PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100


class GROUP_CONFIG:
    """Group validation limits."""

    MAX_NAME_LENGTH: Final[int] = 100
    MAX_DESCRIPTION_LENGTH: Final[int] = 500
