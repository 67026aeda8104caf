"""
Messaging service layer.

Services:
    ConversationService: Resolve, list and delete one-to-one conversations
    GroupService: Group creation and membership
    MessageService: The send pipeline, read receipts, history and deletion

Send pipeline (MessageService.send_message), strictly in order:
    1. Validate content and target shape
    2. Authorize the sender/recipient role pair (conversations only)
    3. Pre-check the daily quota
    4. Resolve the target: get-or-create the conversation, or check group
       membership
    5. Persist in one transaction: lock sender, re-check quota, insert,
       bump last_message_at
    6. Fan out ``new_message`` to the conversation/group room

A failure in stages 1-5 leaves nothing persisted. A broadcast failure in
stage 6 is logged and the message stays saved.

Usage:
    from messaging.services import MessageService, MessageTarget

    result = MessageService.send_message(
        sender=teacher,
        content="Hello Alice!",
        target=MessageTarget.to_user(alice.id),
    )
    if not result.success:
        result.error_code  # VALIDATION_ERROR, PERMISSION_DENIED, QUOTA_EXCEEDED, ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q

from core.exceptions import (
    BaseApplicationError,
    MembershipRequiredError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    ValidationError,
)
from core.services import BaseService, ServiceResult

from access.constants import CAPABILITIES
from access.services import AccessService
from accounts.models import User
from messaging.constants import GROUP_CONFIG, MESSAGE_CONFIG
from messaging.models import (
    Conversation,
    Group,
    GroupMembership,
    GroupRole,
    Message,
    MessageRead,
    MessageType,
)
from messaging.quota import QuotaTracker
from realtime.broadcaster import Scope, get_broadcaster, publish_safely
from realtime.constants import EVENTS

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from realtime.broadcaster import Broadcaster


# =============================================================================
# Payloads
# =============================================================================


def message_payload(message: Message) -> dict[str, Any]:
    """Message as sent to clients, with the sender's public profile attached."""
    return {
        "id": str(message.id),
        "sender_id": str(message.sender_id),
        "sender": message.sender.public_profile(),
        "content": message.content,
        "message_type": message.message_type,
        "conversation_id": str(message.conversation_id) if message.conversation_id else None,
        "group_id": str(message.group_id) if message.group_id else None,
        "is_read": message.is_read,
        "read_by": [
            {"user_id": str(read.user_id), "read_at": read.read_at.isoformat()}
            for read in message.reads.all()
        ],
        "created_at": message.created_at.isoformat(),
    }


def message_scope(message: Message) -> Scope:
    if message.message_type == MessageType.GROUP:
        return Scope.group(message.group_id)
    return Scope.conversation(message.conversation_id)


@dataclass(frozen=True)
class MessageTarget:
    """
    Where a message goes.

    Conversation messages name the counterpart (``recipient_id``) or an
    existing conversation (``conversation_id``). Group messages name
    ``group_id``.
    """

    message_type: str
    recipient_id: Any = None
    conversation_id: Any = None
    group_id: Any = None

    @classmethod
    def to_user(cls, recipient_id) -> MessageTarget:
        return cls(MessageType.CONVERSATION, recipient_id=recipient_id)

    @classmethod
    def to_conversation(cls, conversation_id) -> MessageTarget:
        return cls(MessageType.CONVERSATION, conversation_id=conversation_id)

    @classmethod
    def to_group(cls, group_id) -> MessageTarget:
        return cls(MessageType.GROUP, group_id=group_id)

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> MessageTarget:
        """Build from wire input ``{message_type, recipient_id?, conversation_id?, group_id?}``."""
        return cls(
            message_type=data.get("message_type") or "",
            recipient_id=data.get("recipient_id"),
            conversation_id=data.get("conversation_id"),
            group_id=data.get("group_id"),
        )


# =============================================================================
# ConversationService
# =============================================================================


class ConversationService(BaseService):
    """
    Service for one-to-one conversations.

    Methods:
        resolve: Get or create the conversation for a user pair (raises)
        get_or_create: resolve wrapped in a ServiceResult
        open: get_or_create on behalf of a requester, with a role check
        list_for_user: Conversations a user takes part in
        get_for_participant: Load a conversation the user may read
        delete: Delete a conversation and its messages
    """

    @staticmethod
    def canonical_pair(a: User, b: User) -> tuple[User, User]:
        return (a, b) if a.id < b.id else (b, a)

    @classmethod
    def resolve(cls, a: User, b: User) -> Conversation:
        """
        Return the conversation between ``a`` and ``b``, creating it if needed.

        The pair is unordered. Concurrent calls for the same pair converge on
        one row: the loser's insert hits the unique constraint and re-reads
        the winner. ``last_message_at`` is never touched here.

        Raises:
            ValidationError: ``a`` and ``b`` are the same user
        """
        if a.id == b.id:
            raise ValidationError(
                "Cannot start a conversation with yourself",
                details={"user_id": str(a.id)},
            )

        first, second = cls.canonical_pair(a, b)
        existing = Conversation.objects.filter(participant_1=first, participant_2=second).first()
        if existing is not None:
            return existing

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    participant_1=first, participant_2=second
                )
        except IntegrityError:
            cls.get_logger().info(
                f"Conversation race for {first.id}/{second.id}, using existing row"
            )
            return Conversation.objects.get(participant_1=first, participant_2=second)

        cls.get_logger().info(f"Created conversation {conversation.id}")
        return conversation

    @classmethod
    def get_or_create(cls, a: User, b: User) -> ServiceResult[Conversation]:
        try:
            return ServiceResult.success(cls.resolve(a, b))
        except ValidationError as e:
            return ServiceResult.from_error(e)

    @classmethod
    def open(cls, requester: User, other_user_id) -> ServiceResult[Conversation]:
        """
        Get or create the requester's conversation with another user.

        Error codes:
            VALIDATION_ERROR: Other user is the requester
            NOT_FOUND: Other user does not exist or is inactive
            PERMISSION_DENIED: Requester's role may not message the other role
        """
        other = User.objects.filter(id=other_user_id, is_active=True).first()
        if other is None:
            return ServiceResult.failure("User not found", error_code="NOT_FOUND")
        if other.id != requester.id and not AccessService.can_communicate(requester, other):
            return ServiceResult.from_error(_role_denied(requester, other))
        return cls.get_or_create(requester, other)

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Conversation]:
        """Conversations of ``user``, most recent activity first."""
        return Conversation.objects.filter(
            Q(participant_1=user) | Q(participant_2=user)
        ).select_related("participant_1", "participant_2")

    @classmethod
    def get_for_participant(cls, conversation_id, user: User) -> ServiceResult[Conversation]:
        """
        Load a conversation ``user`` may read.

        Participants may always read. Holders of view_all_conversations may
        read any conversation.

        Error codes:
            NOT_FOUND: No such conversation
            MEMBERSHIP_REQUIRED: User is not a participant
        """
        conversation = (
            Conversation.objects.select_related("participant_1", "participant_2")
            .filter(id=conversation_id)
            .first()
        )
        if conversation is None:
            return ServiceResult.failure("Conversation not found", error_code="NOT_FOUND")

        if not conversation.has_participant(user) and not AccessService.can_perform_action(
            user.role, CAPABILITIES.VIEW_ALL_CONVERSATIONS
        ):
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code="MEMBERSHIP_REQUIRED",
            )
        return ServiceResult.success(conversation)

    @classmethod
    def delete(cls, conversation: Conversation, actor: User) -> ServiceResult[None]:
        """
        Delete ``conversation`` and all of its messages.

        Error codes:
            PERMISSION_DENIED: Actor is neither a participant nor allowed to
                delete messages
        """
        if not conversation.has_participant(actor) and not AccessService.can_perform_action(
            actor.role, CAPABILITIES.DELETE_MESSAGES
        ):
            return ServiceResult.failure(
                "You cannot delete this conversation",
                error_code="PERMISSION_DENIED",
            )

        conversation_id = conversation.id
        conversation.delete()
        cls.get_logger().info(f"User {actor.id} deleted conversation {conversation_id}")
        return ServiceResult.success(None)


# =============================================================================
# GroupService
# =============================================================================


class GroupService(BaseService):
    """
    Service for groups and memberships.

    The creator becomes the group's first admin. Only group admins add or
    remove other members, and only users whose role the admin may message
    can be added. Any member may leave.
    """

    @classmethod
    def create(
        cls,
        creator: User,
        name: str,
        description: str = "",
        avatar_url: str = "",
        member_ids: list | tuple = (),
    ) -> ServiceResult[Group]:
        """
        Create a group with ``creator`` as admin and ``member_ids`` as members.

        Error codes:
            VALIDATION_ERROR: Missing/too long name or unknown member ids
            PERMISSION_DENIED: Creator may not message one of the members
        """
        invalid = cls.validate_required(name=name)
        if invalid:
            return invalid

        name = name.strip()
        if len(name) > GROUP_CONFIG.MAX_NAME_LENGTH:
            return ServiceResult.failure(
                "Group name is too long",
                error_code="VALIDATION_ERROR",
                errors={"name": [f"At most {GROUP_CONFIG.MAX_NAME_LENGTH} characters."]},
            )

        wanted = {str(member_id) for member_id in member_ids} - {str(creator.id)}
        members = list(User.objects.filter(id__in=wanted, is_active=True))
        missing = wanted - {str(member.id) for member in members}
        if missing:
            return ServiceResult.failure(
                "Some members do not exist",
                error_code="VALIDATION_ERROR",
                errors={"member_ids": [f"Unknown user: {member_id}" for member_id in sorted(missing)]},
            )

        for member in members:
            if not AccessService.can_communicate(creator, member):
                return ServiceResult.from_error(_role_denied(creator, member))

        with cls.atomic():
            group = Group.objects.create(
                name=name,
                description=description,
                avatar_url=avatar_url,
                created_by=creator,
            )
            GroupMembership.objects.create(group=group, user=creator, role=GroupRole.ADMIN)
            GroupMembership.objects.bulk_create(
                [GroupMembership(group=group, user=member) for member in members]
            )

        cls.get_logger().info(
            f"User {creator.id} created group {group.id} with {len(members) + 1} members"
        )
        return ServiceResult.success(group)

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Group]:
        return Group.objects.filter(memberships__user=user).order_by("name")

    @staticmethod
    def membership(group_id, user: User) -> GroupMembership | None:
        return GroupMembership.objects.filter(group_id=group_id, user=user).first()

    @classmethod
    def is_member(cls, group_id, user: User) -> bool:
        return GroupMembership.objects.filter(group_id=group_id, user=user).exists()

    @classmethod
    def get_for_member(cls, group_id, user: User) -> ServiceResult[Group]:
        """
        Error codes:
            NOT_FOUND: No such group
            MEMBERSHIP_REQUIRED: User is not a member
        """
        group = Group.objects.filter(id=group_id).first()
        if group is None:
            return ServiceResult.failure("Group not found", error_code="NOT_FOUND")
        if not cls.is_member(group_id, user) and not AccessService.can_perform_action(
            user.role, CAPABILITIES.VIEW_ALL_CONVERSATIONS
        ):
            return ServiceResult.failure(
                "You are not a member of this group",
                error_code="MEMBERSHIP_REQUIRED",
            )
        return ServiceResult.success(group)

    @classmethod
    def add_member(cls, group: Group, actor: User, user: User) -> ServiceResult[GroupMembership]:
        """
        Add ``user`` to ``group`` (idempotent).

        Error codes:
            PERMISSION_DENIED: Actor is not a group admin, or may not message
                the user's role
        """
        actor_membership = cls.membership(group.id, actor)
        if actor_membership is None or actor_membership.role != GroupRole.ADMIN:
            return ServiceResult.failure(
                "Only group admins can add members",
                error_code="PERMISSION_DENIED",
            )
        if not AccessService.can_communicate(actor, user):
            return ServiceResult.from_error(_role_denied(actor, user))

        membership, created = GroupMembership.objects.get_or_create(group=group, user=user)
        if created:
            cls.get_logger().info(f"User {actor.id} added {user.id} to group {group.id}")
        return ServiceResult.success(membership)

    @classmethod
    def remove_member(cls, group: Group, actor: User, user: User) -> ServiceResult[None]:
        """
        Remove ``user`` from ``group``. Members may remove themselves.

        When the last admin leaves, the longest-standing remaining member
        becomes admin.

        Error codes:
            PERMISSION_DENIED: Actor is not a group admin and not ``user``
            NOT_FOUND: ``user`` is not a member
        """
        if actor.id != user.id:
            actor_membership = cls.membership(group.id, actor)
            if actor_membership is None or actor_membership.role != GroupRole.ADMIN:
                return ServiceResult.failure(
                    "Only group admins can remove members",
                    error_code="PERMISSION_DENIED",
                )

        with cls.atomic():
            membership = cls.membership(group.id, user)
            if membership is None:
                return ServiceResult.failure(
                    "User is not a member of this group",
                    error_code="NOT_FOUND",
                )
            membership.delete()

            remaining = GroupMembership.objects.filter(group=group)
            if remaining.exists() and not remaining.filter(role=GroupRole.ADMIN).exists():
                successor = remaining.order_by("joined_at").first()
                successor.role = GroupRole.ADMIN
                successor.save(update_fields=["role", "updated_at"])

        cls.get_logger().info(f"User {actor.id} removed {user.id} from group {group.id}")
        return ServiceResult.success(None)

    @classmethod
    def leave(cls, group: Group, user: User) -> ServiceResult[None]:
        return cls.remove_member(group, user, user)


# =============================================================================
# MessageService
# =============================================================================


def _role_denied(sender: User, recipient: User) -> PermissionDeniedError:
    return PermissionDeniedError(
        f"{sender.role} users cannot message {recipient.role} users",
        details={"sender_role": sender.role, "recipient_role": recipient.role},
    )


class MessageService(BaseService):
    """
    Service for messages.

    Methods:
        send_message: The send pipeline
        mark_read: Idempotent read receipt
        list_messages: History of a conversation or group
        delete_message: Delete one message
        quota_status: The sender's daily quota
    """

    @classmethod
    def send_message(
        cls,
        sender: User,
        content: str,
        target: MessageTarget,
        broadcaster: Broadcaster | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a message.

        Args:
            sender: Authenticated sender
            content: Message text (stripped; 1..MAX_CONTENT_LENGTH chars)
            target: Conversation counterpart/conversation or group
            broadcaster: Fan-out; defaults to get_broadcaster()

        Returns:
            ServiceResult with the persisted Message

        Error codes:
            VALIDATION_ERROR: Bad content or target shape, self-target
            NOT_FOUND: Recipient, conversation or group missing
            PERMISSION_DENIED: Role pair may not communicate
                (details: sender_role, recipient_role)
            MEMBERSHIP_REQUIRED: Sender not in the conversation/group
            QUOTA_EXCEEDED: Daily limit reached (details: limit)
            TRANSPORT_ERROR: The database write failed
        """
        try:
            content = cls._validate(sender, content, target)
            recipient, conversation = cls._authorize(sender, target)
            cls._check_quota(sender)

            with cls.atomic():
                if target.message_type == MessageType.GROUP:
                    group = cls._resolve_group(sender, target.group_id)
                    conversation = None
                else:
                    group = None
                    conversation = conversation or ConversationService.resolve(sender, recipient)

                QuotaTracker.consume(sender)
                message = Message.objects.create(
                    sender=sender,
                    content=content,
                    message_type=target.message_type,
                    conversation=conversation,
                    group=group,
                )
                if conversation is not None:
                    # Monotonic: a slower concurrent send never moves it back
                    Conversation.objects.filter(id=conversation.id).filter(
                        Q(last_message_at__isnull=True)
                        | Q(last_message_at__lt=message.created_at)
                    ).update(last_message_at=message.created_at)

        except BaseApplicationError as e:
            return cls.handle_exception(
                e, context=f"send_message by {sender.id}", log_level=logging.INFO
            )
        except DatabaseError:
            cls.get_logger().exception(f"Failed to persist message from {sender.id}")
            return ServiceResult.failure(
                "The message could not be saved, please retry",
                error_code="TRANSPORT_ERROR",
            )

        publish_safely(
            broadcaster or get_broadcaster(),
            EVENTS.NEW_MESSAGE,
            message_scope(message),
            {"message": message_payload(message)},
        )
        return ServiceResult.success(message)

    @staticmethod
    def _validate(sender: User, content, target: MessageTarget) -> str:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Message content cannot be empty")
        content = content.strip()
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            raise ValidationError(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                details={"max_length": MESSAGE_CONFIG.MAX_CONTENT_LENGTH},
            )

        if target.message_type not in MessageType.values:
            raise ValidationError(
                "message_type must be 'conversation' or 'group'",
                details={"message_type": target.message_type},
            )

        has_conversation_target = (
            target.recipient_id is not None or target.conversation_id is not None
        )
        has_group_target = target.group_id is not None
        if has_conversation_target and has_group_target:
            raise ValidationError("A message cannot target both a conversation and a group")
        if target.message_type == MessageType.CONVERSATION:
            if not has_conversation_target:
                raise ValidationError("recipient_id or conversation_id is required")
            if target.recipient_id is not None and target.conversation_id is not None:
                raise ValidationError("Provide recipient_id or conversation_id, not both")
            if target.recipient_id is not None and str(target.recipient_id) == str(sender.id):
                raise ValidationError("Cannot send a message to yourself")
        elif not has_group_target:
            raise ValidationError("group_id is required for group messages")

        return content

    @staticmethod
    def _authorize(sender: User, target: MessageTarget) -> tuple[User | None, Conversation | None]:
        """Resolve the counterpart and check the role pair. Groups skip this stage."""
        if target.message_type == MessageType.GROUP:
            return None, None

        conversation = None
        if target.conversation_id is not None:
            conversation = (
                Conversation.objects.select_related("participant_1", "participant_2")
                .filter(id=target.conversation_id)
                .first()
            )
            if conversation is None:
                raise NotFoundError(
                    "Conversation not found",
                    details={"conversation_id": str(target.conversation_id)},
                )
            if not conversation.has_participant(sender):
                raise MembershipRequiredError("You are not a participant in this conversation")
            recipient = conversation.other_participant(sender)
        else:
            recipient = User.objects.filter(id=target.recipient_id, is_active=True).first()
            if recipient is None:
                raise NotFoundError(
                    "Recipient not found",
                    details={"recipient_id": str(target.recipient_id)},
                )

        if not AccessService.can_communicate(sender, recipient):
            raise _role_denied(sender, recipient)
        return recipient, conversation

    @staticmethod
    def _check_quota(sender: User) -> None:
        remaining = QuotaTracker.remaining_quota(sender.id, role=sender.role)
        if remaining is not None and remaining <= 0:
            limit = AccessService.daily_limit_for(sender.role)
            raise QuotaExceededError(
                f"Daily message limit of {limit} reached",
                details={"limit": limit},
            )

    @staticmethod
    def _resolve_group(sender: User, group_id) -> Group:
        group = Group.objects.filter(id=group_id).first()
        if group is None:
            raise NotFoundError("Group not found", details={"group_id": str(group_id)})
        if not GroupService.is_member(group.id, sender):
            raise MembershipRequiredError(
                "You are not a member of this group",
                details={"group_id": str(group.id)},
            )
        return group

    @classmethod
    def can_access(cls, message: Message, user: User) -> bool:
        if message.message_type == MessageType.GROUP:
            return GroupService.is_member(message.group_id, user)
        return user.id in (
            message.conversation.participant_1_id,
            message.conversation.participant_2_id,
        )

    @classmethod
    def mark_read(
        cls,
        message_id,
        reader: User,
        broadcaster: Broadcaster | None = None,
    ) -> ServiceResult[Message]:
        """
        Record that ``reader`` has read a message.

        Idempotent: a second call adds no receipt and publishes nothing.
        Conversation messages become ``is_read`` once every participant
        other than the sender has a receipt. The sender reading their own
        message is a no-op.

        Error codes:
            NOT_FOUND: No such message
            MEMBERSHIP_REQUIRED: Reader cannot see the message
        """
        message = (
            Message.objects.select_related("sender", "conversation")
            .filter(id=message_id)
            .first()
        )
        if message is None:
            return ServiceResult.failure("Message not found", error_code="NOT_FOUND")
        if not cls.can_access(message, reader):
            return ServiceResult.failure(
                "You cannot read this message",
                error_code="MEMBERSHIP_REQUIRED",
            )
        if message.sender_id == reader.id:
            return ServiceResult.success(message)

        with cls.atomic():
            receipt, created = MessageRead.objects.get_or_create(message=message, user=reader)
            if created and message.message_type == MessageType.CONVERSATION:
                others = {
                    message.conversation.participant_1_id,
                    message.conversation.participant_2_id,
                } - {message.sender_id}
                readers = set(
                    MessageRead.objects.filter(message=message, user_id__in=others).values_list(
                        "user_id", flat=True
                    )
                )
                if others <= readers:
                    Message.objects.filter(id=message.id, is_read=False).update(is_read=True)
                    message.is_read = True

        if created:
            publish_safely(
                broadcaster or get_broadcaster(),
                EVENTS.MESSAGE_READ,
                message_scope(message),
                {
                    "message_id": str(message.id),
                    "user_id": str(reader.id),
                    "read_at": receipt.read_at.isoformat(),
                    "is_read": message.is_read,
                },
            )
        return ServiceResult.success(message)

    @classmethod
    def list_messages(
        cls,
        conversation: Conversation | None = None,
        group: Group | None = None,
    ) -> QuerySet[Message]:
        """History in display order: (created_at, id) ascending."""
        messages = Message.objects.select_related("sender").prefetch_related("reads")
        if conversation is not None:
            messages = messages.filter(conversation=conversation)
        elif group is not None:
            messages = messages.filter(group=group)
        else:
            return messages.none()
        return messages.order_by("created_at", "id")

    @classmethod
    def delete_message(cls, message: Message, actor: User) -> ServiceResult[None]:
        """
        Delete ``message``. Allowed for its sender and for roles that may
        delete messages.

        Error codes:
            PERMISSION_DENIED: Actor is neither
        """
        if message.sender_id != actor.id and not AccessService.can_perform_action(
            actor.role, CAPABILITIES.DELETE_MESSAGES
        ):
            return ServiceResult.failure(
                "You cannot delete this message",
                error_code="PERMISSION_DENIED",
            )

        message_id = message.id
        message.delete()
        cls.get_logger().info(f"User {actor.id} deleted message {message_id}")
        return ServiceResult.success(None)

    @classmethod
    def quota_status(cls, user: User) -> dict[str, int | None]:
        """``{limit, used, remaining}``; limit and remaining are None when unlimited."""
        limit = AccessService.daily_limit_for(user.role)
        used = QuotaTracker.used_today(user.id)
        remaining = None if limit is None else max(limit - used, 0)
        return {"limit": limit, "used": used, "remaining": remaining}
