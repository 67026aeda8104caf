"""
Views for the messaging API.

URL Structure:
    /api/v1/chat/conversations/                      GET, POST (get-or-create)
    /api/v1/chat/conversations/{id}/                 GET, DELETE
    /api/v1/chat/conversations/{id}/messages/        GET
    /api/v1/chat/groups/                             GET, POST
    /api/v1/chat/groups/{id}/                        GET
    /api/v1/chat/groups/{id}/members/                POST
    /api/v1/chat/groups/{id}/members/{user_id}/      DELETE
    /api/v1/chat/groups/{id}/leave/                  POST
    /api/v1/chat/groups/{id}/messages/               GET
    /api/v1/chat/messages/                           POST (send)
    /api/v1/chat/messages/{id}/                      DELETE
    /api/v1/chat/messages/{id}/read/                 POST
    /api/v1/chat/quota/                              GET
    /api/v1/chat/presence/{heartbeat,online,offline}/ POST

Design Decisions:
    - Views translate HTTP to service calls; every rule lives in the services
    - Failures render as {"error", "error_code", "details"?} with the status
      from ServiceResult.http_status
    - Sending goes through MessageService.send_message, the same pipeline the
      WebSocket consumer uses
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from messaging.models import Message
from messaging.pagination import MessageCursorPagination
from messaging.serializers import (
    ConversationOpenSerializer,
    ConversationSerializer,
    GroupCreateSerializer,
    GroupDetailSerializer,
    GroupMemberAddSerializer,
    GroupMembershipSerializer,
    GroupSerializer,
    MessageSendSerializer,
    MessageSerializer,
    QuotaStatusSerializer,
)
from messaging.services import (
    ConversationService,
    GroupService,
    MessageService,
    MessageTarget,
)
from realtime.presence import PresenceService


UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"


def failure_response(result) -> Response:
    return Response(result.to_response(), status=result.http_status)


class MessageHistoryMixin:
    """Paginated message history for a conversation or group."""

    def message_history(self, request, **scope):
        messages = MessageService.list_messages(**scope)
        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(messages, request, view=self)
        return paginator.get_paginated_response(MessageSerializer(page, many=True).data)


# =============================================================================
# Conversations
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List my conversations",
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="open_conversation",
        summary="Get or create a conversation with a user",
        tags=["Chat - Conversations"],
        request=ConversationOpenSerializer,
        responses={200: ConversationSerializer},
    ),
    destroy=extend_schema(
        operation_id="delete_conversation",
        summary="Delete conversation and its messages",
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(MessageHistoryMixin, viewsets.GenericViewSet):
    """
    One-to-one conversations of the current user.

    list:
        Conversations ordered by latest activity, each with the other
        participant's profile and the last message.

    create:
        Get or create the conversation with ``user_id``. Requires that the
        caller's role may message that user's role.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ConversationSerializer
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        return ConversationService.list_for_user(self.request.user)

    def list(self, request):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def create(self, request):
        serializer = ConversationOpenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ConversationService.open(request.user, serializer.validated_data["user_id"])
        if not result.success:
            return failure_response(result)
        return Response(self.get_serializer(result.data).data)

    def retrieve(self, request, pk=None):
        result = ConversationService.get_for_participant(pk, request.user)
        if not result.success:
            return failure_response(result)
        return Response(self.get_serializer(result.data).data)

    def destroy(self, request, pk=None):
        result = ConversationService.get_for_participant(pk, request.user)
        if not result.success:
            return failure_response(result)

        result = ConversationService.delete(result.data, request.user)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="list_conversation_messages",
        summary="Conversation message history",
        tags=["Chat - Messages"],
        responses={200: MessageSerializer(many=True)},
    )
    @action(detail=True, methods=["get"])
    def messages(self, request, pk=None):
        result = ConversationService.get_for_participant(pk, request.user)
        if not result.success:
            return failure_response(result)
        return self.message_history(request, conversation=result.data)


# =============================================================================
# Groups
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_groups",
        summary="List my groups",
        tags=["Chat - Groups"],
    ),
    retrieve=extend_schema(
        operation_id="get_group",
        summary="Get group with members",
        tags=["Chat - Groups"],
        responses={200: GroupDetailSerializer},
    ),
    create=extend_schema(
        operation_id="create_group",
        summary="Create group",
        tags=["Chat - Groups"],
        request=GroupCreateSerializer,
        responses={201: GroupDetailSerializer},
    ),
)
class GroupViewSet(MessageHistoryMixin, viewsets.GenericViewSet):
    """Groups the current user belongs to."""

    permission_classes = [IsAuthenticated]
    serializer_class = GroupSerializer
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        return GroupService.list_for_user(self.request.user)

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(GroupSerializer(page, many=True).data)

    def create(self, request):
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = GroupService.create(creator=request.user, **serializer.validated_data)
        if not result.success:
            return failure_response(result)
        return Response(GroupDetailSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        result = GroupService.get_for_member(pk, request.user)
        if not result.success:
            return failure_response(result)
        return Response(GroupDetailSerializer(result.data).data)

    @extend_schema(
        operation_id="add_group_member",
        summary="Add member (group admins)",
        tags=["Chat - Groups"],
        request=GroupMemberAddSerializer,
        responses={201: GroupMembershipSerializer},
    )
    @action(detail=True, methods=["post"])
    def members(self, request, pk=None):
        result = GroupService.get_for_member(pk, request.user)
        if not result.success:
            return failure_response(result)
        group = result.data

        serializer = GroupMemberAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = get_object_or_404(User, id=serializer.validated_data["user_id"], is_active=True)

        result = GroupService.add_member(group, request.user, user)
        if not result.success:
            return failure_response(result)
        return Response(
            GroupMembershipSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="remove_group_member",
        summary="Remove member (group admins, or yourself)",
        tags=["Chat - Groups"],
        responses={204: OpenApiResponse(description="Member removed")},
    )
    def remove_member(self, request, pk=None, user_id=None):
        result = GroupService.get_for_member(pk, request.user)
        if not result.success:
            return failure_response(result)

        user = get_object_or_404(User, id=user_id)
        result = GroupService.remove_member(result.data, request.user, user)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="leave_group",
        summary="Leave group",
        tags=["Chat - Groups"],
        request=None,
        responses={204: OpenApiResponse(description="Left group")},
    )
    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        result = GroupService.get_for_member(pk, request.user)
        if not result.success:
            return failure_response(result)

        result = GroupService.leave(result.data, request.user)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="list_group_messages",
        summary="Group message history",
        tags=["Chat - Messages"],
        responses={200: MessageSerializer(many=True)},
    )
    @action(detail=True, methods=["get"], url_path="messages")
    def group_messages(self, request, pk=None):
        result = GroupService.get_for_member(pk, request.user)
        if not result.success:
            return failure_response(result)
        return self.message_history(request, group=result.data)


# =============================================================================
# Messages
# =============================================================================


@extend_schema_view(
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        tags=["Chat - Messages"],
        request=MessageSendSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="VALIDATION_ERROR"),
            403: OpenApiResponse(description="PERMISSION_DENIED or MEMBERSHIP_REQUIRED"),
            404: OpenApiResponse(description="NOT_FOUND"),
            429: OpenApiResponse(description="QUOTA_EXCEEDED"),
        },
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(viewsets.GenericViewSet):
    """
    Sending, deleting and reading messages.

    create:
        Runs the send pipeline. Content is 1..1000 characters after
        trimming. Target is ``recipient_id`` or ``conversation_id`` for
        conversation messages, ``group_id`` for group messages.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        return Message.objects.select_related("sender", "conversation")

    def create(self, request):
        serializer = MessageSendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.send_message(
            sender=request.user,
            content=data["content"],
            target=MessageTarget.from_data(data),
        )
        if not result.success:
            return failure_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        message = get_object_or_404(self.get_queryset(), pk=pk)
        result = MessageService.delete_message(message, request.user)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="mark_message_read",
        summary="Mark message as read",
        tags=["Chat - Messages"],
        request=None,
        responses={200: MessageSerializer},
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        result = MessageService.mark_read(pk, request.user)
        if not result.success:
            return failure_response(result)
        message = Message.objects.select_related("sender").prefetch_related("reads").get(
            id=result.data.id
        )
        return Response(MessageSerializer(message).data)


class QuotaStatusView(APIView):
    """
    The current user's daily message quota.

    URL: /api/v1/chat/quota/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_quota_status",
        summary="Get my daily message quota",
        tags=["Chat - Messages"],
        responses={200: QuotaStatusSerializer},
    )
    def get(self, request):
        return Response(QuotaStatusSerializer(MessageService.quota_status(request.user)).data)


# =============================================================================
# Presence
# =============================================================================


class PresenceView(APIView):
    """
    Presence transitions over HTTP, for clients without an open socket.

    URLs:
        /api/v1/chat/presence/heartbeat/
        /api/v1/chat/presence/online/
        /api/v1/chat/presence/offline/
    """

    permission_classes = [IsAuthenticated]
    transition = "heartbeat"

    @extend_schema(
        summary="Update my presence",
        tags=["Chat - Presence"],
        request=None,
    )
    def post(self, request):
        handler = {
            "heartbeat": PresenceService.heartbeat,
            "online": PresenceService.set_online,
            "offline": PresenceService.set_offline,
        }[self.transition]

        result = handler(request.user.id)
        if not result.success:
            return failure_response(result)
        return Response(result.data)
