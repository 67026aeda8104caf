"""
Realtime broadcaster.

Services publish events through a Broadcaster instead of touching the
channel layer directly, so the pipeline and presence tracker can be handed a
recording implementation in tests.

Scopes map to channel layer groups:
    Scope.conversation(id) -> "conversation_<id>"
    Scope.group(id)        -> "group_<id>"
    Scope.user(id)         -> "user_<id>"
    Scope.all_users()      -> "all_users"

Delivery is at-most-once. Nothing is stored for sockets that are not
connected; clients re-fetch state over REST after reconnecting.

Usage:
    from realtime.broadcaster import Scope, get_broadcaster
    from realtime.constants import EVENTS

    get_broadcaster().publish(
        EVENTS.NEW_MESSAGE,
        Scope.conversation(conversation.id),
        {"message": payload},
    )
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

from core.exceptions import TransportError

from realtime.constants import ALL_USERS_GROUP

logger = logging.getLogger(__name__)

# Consumer handler invoked for every published event (ChatConsumer.broadcast_event)
CHANNEL_EVENT_TYPE = "broadcast.event"


@dataclass(frozen=True)
class Scope:
    """Audience of an event."""

    kind: str
    key: str | None = None

    @classmethod
    def conversation(cls, conversation_id) -> Scope:
        return cls("conversation", str(conversation_id))

    @classmethod
    def group(cls, group_id) -> Scope:
        return cls("group", str(group_id))

    @classmethod
    def user(cls, user_id) -> Scope:
        return cls("user", str(user_id))

    @classmethod
    def all_users(cls) -> Scope:
        return cls("all_users")

    @property
    def group_name(self) -> str:
        """Channel layer group for this scope."""
        if self.key is None:
            return ALL_USERS_GROUP
        return f"{self.kind}_{self.key}"


def to_wire(payload: dict[str, Any]) -> dict[str, Any]:
    """Make ``payload`` JSON-safe (UUIDs, datetimes) for the channel layer."""
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def channel_event(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Channel layer message that ChatConsumer.broadcast_event forwards to clients."""
    return {"type": CHANNEL_EVENT_TYPE, "event": event, "data": to_wire(payload)}


class Broadcaster:
    """Publishes events to every socket subscribed to a scope."""

    def publish(self, event: str, scope: Scope, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class ChannelLayerBroadcaster(Broadcaster):
    """
    Broadcaster backed by the Django Channels layer.

    Callable from synchronous code only (services, signal handlers, Celery
    tasks). Async code sends ``channel_event(...)`` with ``group_send``.

    Raises:
        TransportError: The channel layer is missing or the send failed
    """

    def publish(self, event: str, scope: Scope, payload: dict[str, Any]) -> None:
        layer = get_channel_layer()
        if layer is None:
            raise TransportError("No channel layer configured")

        try:
            async_to_sync(layer.group_send)(scope.group_name, channel_event(event, payload))
        except Exception as e:
            raise TransportError(
                f"Failed to publish {event} to {scope.group_name}",
                details={"event": event, "group": scope.group_name},
            ) from e

        logger.debug(f"Published {event} to {scope.group_name}")


class NullBroadcaster(Broadcaster):
    """Discards every event."""

    def publish(self, event: str, scope: Scope, payload: dict[str, Any]) -> None:
        return None


def get_broadcaster() -> Broadcaster:
    """
    Default broadcaster for services that were not given one.

    The class is taken from ``settings.REALTIME_BROADCASTER`` (dotted path),
    defaulting to ChannelLayerBroadcaster.
    """
    path = getattr(settings, "REALTIME_BROADCASTER", "realtime.broadcaster.ChannelLayerBroadcaster")
    return import_string(path)()


def publish_safely(
    broadcaster: Broadcaster, event: str, scope: Scope, payload: dict[str, Any]
) -> bool:
    """
    Publish after a successful write.

    A TransportError is logged and reported as False; the write that produced
    the event stays committed and clients catch up on their next fetch.
    """
    try:
        broadcaster.publish(event, scope, payload)
    except TransportError:
        logger.exception(f"Broadcast of {event} to {scope.group_name} failed")
        return False
    return True
