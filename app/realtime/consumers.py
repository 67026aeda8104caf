"""
WebSocket consumer for the chat.

One socket per client. On connect the socket joins its user room
(``user_<id>``) and ``all_users``; conversation and group rooms are joined
with explicit events after a membership check.

Client events ({"type": ..., ...}):
    join_conversation / leave_conversation   {conversation_id}
    join_group / leave_group                 {group_id}
    typing_start / typing_stop               {conversation_id | group_id}
    send_message   {content, message_type, recipient_id? | conversation_id?, group_id?, client_id?}
    mark_read      {message_id}
    heartbeat
    user_online / user_offline

Server events ({"type": <event>, "data": {...}}):
    new_message, message_read, user_typing, user_stopped_typing,
    user_status_changed, message_change, conversation_change, user_change,
    message_sent, message_error, heartbeat_ack, joined, left, error

Close codes:
    4001: No valid token
"""

from __future__ import annotations

import logging
from uuid import UUID

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.utils import timezone

from core.services import ServiceResult

from messaging.serializers import MessageSendSerializer
from messaging.services import (
    ConversationService,
    GroupService,
    MessageService,
    MessageTarget,
    message_payload,
    message_scope,
)
from realtime.broadcaster import Scope, channel_event
from realtime.constants import ALL_USERS_GROUP, EVENTS, PRESENCE_CONFIG, WS_CLOSE_CODES
from realtime.presence import PresenceService

logger = logging.getLogger(__name__)


def _parse_uuid(value) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    Chat socket for an authenticated user.

    Attributes:
        user: The authenticated user
        rooms: Channel layer groups this socket has joined
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.rooms: set[str] = set()

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            logger.warning("Rejected unauthenticated chat socket")
            await self.close(code=WS_CLOSE_CODES.UNAUTHENTICATED)
            return

        self.user = user
        await self._join(Scope.user(user.id).group_name)
        await self._join(ALL_USERS_GROUP)

        subprotocols = self.scope.get("subprotocols") or []
        await self.accept(subprotocol="jwt" if "jwt" in subprotocols else None)

        await database_sync_to_async(PresenceService.set_online)(user.id)
        logger.info(f"User {user.id} connected")

    async def disconnect(self, close_code):
        for room in list(self.rooms):
            await self.channel_layer.group_discard(room, self.channel_name)
        self.rooms.clear()

        if self.user is not None:
            await database_sync_to_async(PresenceService.set_offline)(self.user.id)
            logger.info(f"User {self.user.id} disconnected ({close_code})")

    async def receive_json(self, content, **kwargs):
        event_type = content.get("type") if isinstance(content, dict) else None
        handler = self.handlers.get(event_type)
        if handler is None:
            await self.reply(
                EVENTS.ERROR,
                {"error": f"Unknown event type: {event_type}", "error_code": "VALIDATION_ERROR"},
            )
            return
        await handler(self, content)

    async def reply(self, event: str, data: dict):
        await self.send_json({"type": event, "data": data})

    async def reply_failure(self, result: ServiceResult, event: str = EVENTS.ERROR):
        await self.reply(event, result.to_response())

    # =========================================================================
    # Rooms
    # =========================================================================

    async def _join(self, room: str):
        await self.channel_layer.group_add(room, self.channel_name)
        self.rooms.add(room)

    async def _leave(self, room: str):
        await self.channel_layer.group_discard(room, self.channel_name)
        self.rooms.discard(room)

    def _scope_from(self, content) -> tuple[Scope | None, ServiceResult | None]:
        """Conversation or group scope named by ``content``."""
        if content.get("conversation_id"):
            conversation_id = _parse_uuid(content["conversation_id"])
            if conversation_id is None:
                return None, _invalid("conversation_id", "Invalid conversation_id")
            return Scope.conversation(conversation_id), None
        if content.get("group_id"):
            group_id = _parse_uuid(content["group_id"])
            if group_id is None:
                return None, _invalid("group_id", "Invalid group_id")
            return Scope.group(group_id), None
        return None, _invalid("conversation_id", "conversation_id or group_id is required")

    async def join_conversation(self, content):
        await self._join_room(content, "conversation_id", ConversationService.get_for_participant)

    async def join_group(self, content):
        await self._join_room(content, "group_id", GroupService.get_for_member)

    async def _join_room(self, content, key, loader):
        room_id = _parse_uuid(content.get(key))
        if room_id is None:
            await self.reply_failure(_invalid(key, f"Invalid {key}"))
            return

        result = await database_sync_to_async(loader)(room_id, self.user)
        if not result.success:
            await self.reply_failure(result)
            return

        scope = Scope.conversation(room_id) if key == "conversation_id" else Scope.group(room_id)
        await self._join(scope.group_name)
        await self.reply(EVENTS.JOINED, {key: str(room_id)})

    async def leave_room(self, content):
        scope, error = self._scope_from(content)
        if error is not None:
            await self.reply_failure(error)
            return
        await self._leave(scope.group_name)
        await self.reply(EVENTS.LEFT, {f"{scope.kind}_id": scope.key})

    # =========================================================================
    # Typing
    # =========================================================================

    async def typing_start(self, content):
        await self._typing(content, EVENTS.USER_TYPING)

    async def typing_stop(self, content):
        await self._typing(content, EVENTS.USER_STOPPED_TYPING)

    async def _typing(self, content, event):
        scope, error = self._scope_from(content)
        if error is not None:
            await self.reply_failure(error)
            return
        if scope.group_name not in self.rooms:
            await self.reply(
                EVENTS.ERROR,
                {"error": "Join the room before typing", "error_code": "MEMBERSHIP_REQUIRED"},
            )
            return

        message = channel_event(
            event,
            {"user_id": str(self.user.id), f"{scope.kind}_id": scope.key},
        )
        message["exclude"] = self.channel_name
        await self.channel_layer.group_send(scope.group_name, message)

    # =========================================================================
    # Messages
    # =========================================================================

    async def send_message(self, content):
        client_id = content.get("client_id")
        serializer = MessageSendSerializer(data=content)
        if not serializer.is_valid():
            await self.reply(
                EVENTS.MESSAGE_ERROR,
                {
                    "error": "Invalid message",
                    "error_code": "VALIDATION_ERROR",
                    "details": serializer.errors,
                    "client_id": client_id,
                },
            )
            return

        data = serializer.validated_data
        result, payload = await self._send(data["content"], MessageTarget.from_data(data))
        if not result.success:
            await self.reply(EVENTS.MESSAGE_ERROR, {**result.to_response(), "client_id": client_id})
            return

        # The sender follows the room it just wrote to
        await self._join(message_scope(result.data).group_name)
        await self.reply(EVENTS.MESSAGE_SENT, {"message": payload, "client_id": client_id})

    @database_sync_to_async
    def _send(self, content, target):
        result = MessageService.send_message(sender=self.user, content=content, target=target)
        payload = message_payload(result.data) if result.success else None
        return result, payload

    async def mark_read(self, content):
        message_id = _parse_uuid(content.get("message_id"))
        if message_id is None:
            await self.reply_failure(_invalid("message_id", "Invalid message_id"))
            return

        result = await database_sync_to_async(MessageService.mark_read)(message_id, self.user)
        if not result.success:
            await self.reply_failure(result)

    # =========================================================================
    # Presence
    # =========================================================================

    async def heartbeat(self, content):
        await database_sync_to_async(PresenceService.heartbeat)(self.user.id)
        await self.reply(
            EVENTS.HEARTBEAT_ACK,
            {
                "server_time": timezone.now().isoformat(),
                "interval": PRESENCE_CONFIG.HEARTBEAT_INTERVAL_SECONDS,
            },
        )

    async def user_online(self, content):
        await database_sync_to_async(PresenceService.set_online)(self.user.id)

    async def user_offline(self, content):
        await database_sync_to_async(PresenceService.set_offline)(self.user.id)

    handlers = {
        "join_conversation": join_conversation,
        "leave_conversation": leave_room,
        "join_group": join_group,
        "leave_group": leave_room,
        "typing_start": typing_start,
        "typing_stop": typing_stop,
        "send_message": send_message,
        "mark_read": mark_read,
        "heartbeat": heartbeat,
        "user_online": user_online,
        "user_offline": user_offline,
    }

    # =========================================================================
    # Channel layer
    # =========================================================================

    async def broadcast_event(self, event):
        """Forward a published event (type ``broadcast.event``) to the client."""
        if event.get("exclude") == self.channel_name:
            return
        await self.reply(event["event"], event["data"])


def _invalid(field: str, message: str) -> ServiceResult:
    return ServiceResult.failure(
        message,
        error_code="VALIDATION_ERROR",
        errors={field: [message]},
    )
