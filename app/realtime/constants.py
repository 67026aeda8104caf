"""
Constants for realtime delivery and presence.

Import example:
    from realtime.constants import EVENTS, PRESENCE_CONFIG
"""

from typing import Final


class EVENTS:
    """Server to client event names."""

    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGE_READ: Final[str] = "message_read"
    USER_TYPING: Final[str] = "user_typing"
    USER_STOPPED_TYPING: Final[str] = "user_stopped_typing"
    USER_STATUS_CHANGED: Final[str] = "user_status_changed"

    # Change feed mirrors of model writes
    MESSAGE_CHANGE: Final[str] = "message_change"
    CONVERSATION_CHANGE: Final[str] = "conversation_change"
    USER_CHANGE: Final[str] = "user_change"

    # Direct replies to the socket that sent the request
    MESSAGE_SENT: Final[str] = "message_sent"
    MESSAGE_ERROR: Final[str] = "message_error"
    HEARTBEAT_ACK: Final[str] = "heartbeat_ack"
    JOINED: Final[str] = "joined"
    LEFT: Final[str] = "left"
    ERROR: Final[str] = "error"


class PRESENCE_CONFIG:
    """Presence tunables."""

    HEARTBEAT_INTERVAL_SECONDS: Final[int] = 30
    # Online users with no heartbeat for this long are expired to offline
    GRACE_PERIOD_SECONDS: Final[int] = 90


class WS_CLOSE_CODES:
    """Application close codes for the chat socket."""

    UNAUTHENTICATED: Final[int] = 4001


# Channel layer group that every connected socket joins
ALL_USERS_GROUP: Final[str] = "all_users"
